"""Integration tests for the customer address book endpoints."""

import pytest
from tests.factories import address_payload


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_and_list_addresses(customer_client):
    first = await customer_client.post(
        "/store/addresses", json=address_payload(type="SHIPPING", is_default=True)
    )
    second = await customer_client.post(
        "/store/addresses", json=address_payload(type="SHIPPING", is_default=True)
    )
    assert first.status_code == 201, first.text
    assert second.status_code == 201

    listing = await customer_client.get("/store/addresses")

    assert listing.status_code == 200
    defaults = [a["id"] for a in listing.json() if a["is_default"]]
    assert defaults == [second.json()["id"]]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_address(customer_client):
    created = await customer_client.post("/store/addresses", json=address_payload())
    address_id = created.json()["id"]

    response = await customer_client.patch(
        f"/store/addresses/{address_id}", json={"city": "Capital City", "type": "BOTH"}
    )

    assert response.status_code == 200, response.text
    assert response.json()["city"] == "Capital City"
    assert response.json()["type"] == "BOTH"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_address(customer_client):
    created = await customer_client.post("/store/addresses", json=address_payload())
    address_id = created.json()["id"]

    deleted = await customer_client.delete(f"/store/addresses/{address_id}")
    missing = await customer_client.get(f"/store/addresses/{address_id}")

    assert deleted.status_code == 204
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_address_requires_fields(customer_client):
    response = await customer_client.post("/store/addresses", json={"first_name": "A"})

    assert response.status_code == 400
    fields = {e["field"] for e in response.json()["errors"]}
    assert {"last_name", "address1", "city"} <= fields
