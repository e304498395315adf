"""Unit tests for the address book and its one-default-per-scope rule."""

import uuid

import pytest
from libs.common.errors import NotFoundError
from services.store_service.models import AddressType
from services.store_service.services.address_ops import (
    create_address,
    delete_address,
    get_address,
    list_addresses,
    update_address,
)
from tests.factories import UserFactory, address_payload


def _defaults(addresses):
    return {a.id for a in addresses if a.is_default}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_new_default_clears_previous_default_of_same_type(db_session, customer):
    a1 = await create_address(
        db_session, customer.id, address_payload(type=AddressType.SHIPPING, is_default=True)
    )
    a2 = await create_address(
        db_session, customer.id, address_payload(type=AddressType.SHIPPING, is_default=True)
    )

    addresses = await list_addresses(db_session, customer.id)
    assert _defaults(addresses) == {a2.id}
    await db_session.refresh(a1)
    assert a1.is_default is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_billing_default_does_not_touch_shipping_default(db_session, customer):
    ship = await create_address(
        db_session, customer.id, address_payload(type=AddressType.SHIPPING, is_default=True)
    )
    bill = await create_address(
        db_session, customer.id, address_payload(type=AddressType.BILLING, is_default=True)
    )

    addresses = await list_addresses(db_session, customer.id)
    assert _defaults(addresses) == {ship.id, bill.id}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_both_default_clears_shipping_and_billing_defaults(db_session, customer):
    await create_address(
        db_session, customer.id, address_payload(type=AddressType.SHIPPING, is_default=True)
    )
    await create_address(
        db_session, customer.id, address_payload(type=AddressType.BILLING, is_default=True)
    )
    both = await create_address(
        db_session, customer.id, address_payload(type=AddressType.BOTH, is_default=True)
    )

    assert _defaults(await list_addresses(db_session, customer.id)) == {both.id}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_default_rule_is_per_user(db_session, customer):
    other = UserFactory.create()
    db_session.add(other)
    await db_session.commit()

    mine = await create_address(db_session, customer.id, address_payload(is_default=True))
    theirs = await create_address(db_session, other.id, address_payload(is_default=True))

    assert _defaults(await list_addresses(db_session, customer.id)) == {mine.id}
    assert _defaults(await list_addresses(db_session, other.id)) == {theirs.id}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_to_default_clears_others(db_session, customer):
    first = await create_address(db_session, customer.id, address_payload(is_default=True))
    second = await create_address(db_session, customer.id, address_payload())

    await update_address(db_session, customer.id, second.id, {"is_default": True})

    assert _defaults(await list_addresses(db_session, customer.id)) == {second.id}
    await db_session.refresh(first)
    assert first.is_default is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_puts_default_first(db_session, customer):
    default = await create_address(db_session, customer.id, address_payload(is_default=True))
    await create_address(db_session, customer.id, address_payload(city="Newer"))

    addresses = await list_addresses(db_session, customer.id)

    assert addresses[0].id == default.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_other_users_address_is_not_found(db_session, customer):
    other = UserFactory.create()
    db_session.add(other)
    await db_session.commit()
    theirs = await create_address(db_session, other.id, address_payload())

    with pytest.raises(NotFoundError):
        await get_address(db_session, customer.id, theirs.id)
    with pytest.raises(NotFoundError):
        await delete_address(db_session, customer.id, theirs.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_address(db_session, customer):
    address = await create_address(db_session, customer.id, address_payload())
    await delete_address(db_session, customer.id, address.id)

    with pytest.raises(NotFoundError):
        await get_address(db_session, customer.id, address.id)
    with pytest.raises(NotFoundError):
        await get_address(db_session, customer.id, uuid.uuid4())
