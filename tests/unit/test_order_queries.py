"""Unit tests for order listing, lookups and stats."""

from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.datetime_utils import utc_now
from libs.common.errors import NotFoundError
from services.store_service.models import OrderStatus, PaymentStatus
from services.store_service.services.order_queries import (
    OrderFilters,
    get_stats,
    get_user_order_by_number,
    list_orders,
)
from tests.factories import OrderFactory, UserFactory


async def _seed(db, *orders):
    for order in orders:
        db.add(order)
    await db.commit()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_orders_newest_first_with_pagination(db_session):
    now = utc_now()
    orders = [
        OrderFactory.create(created_at=now - timedelta(hours=i)) for i in range(5)
    ]
    await _seed(db_session, *orders)

    first = await list_orders(db_session, OrderFilters(page=1, limit=2))
    last = await list_orders(db_session, OrderFilters(page=3, limit=2))

    assert first.total == 5
    assert first.pages == 3
    assert [o.id for o in first.orders] == [orders[0].id, orders[1].id]
    assert [o.id for o in last.orders] == [orders[4].id]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_orders_filters_by_status_and_payment(db_session):
    await _seed(
        db_session,
        OrderFactory.create(status=OrderStatus.SHIPPED, payment_status=PaymentStatus.PAID),
        OrderFactory.create(status=OrderStatus.SHIPPED),
        OrderFactory.create(status=OrderStatus.PENDING, payment_status=PaymentStatus.PAID),
    )

    result = await list_orders(
        db_session,
        OrderFilters(status=OrderStatus.SHIPPED, payment_status=PaymentStatus.PAID),
    )

    assert result.total == 1
    assert result.orders[0].status == OrderStatus.SHIPPED
    assert result.orders[0].payment_status == PaymentStatus.PAID


@pytest.mark.asyncio
@pytest.mark.unit
async def test_search_matches_order_number_or_email_case_insensitively(db_session):
    by_number = OrderFactory.create(order_number="ORD-123456-ABCDEF")
    by_email = OrderFactory.create(email="Grace.Hopper@example.com")
    await _seed(db_session, by_number, by_email, OrderFactory.create())

    numbers = await list_orders(db_session, OrderFilters(search="abcdef"))
    emails = await list_orders(db_session, OrderFilters(search="grace.hopper"))

    assert [o.id for o in numbers.orders] == [by_number.id]
    assert [o.id for o in emails.orders] == [by_email.id]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_search_matches_customer_name(db_session):
    grace = UserFactory.create(name="Grace Hopper")
    db_session.add(grace)
    await db_session.commit()
    placed = OrderFactory.create(user_id=grace.id)
    await _seed(db_session, placed, OrderFactory.create())

    result = await list_orders(db_session, OrderFilters(search="hopper"))

    assert result.total == 1
    assert [o.id for o in result.orders] == [placed.id]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_date_range_filter(db_session):
    now = utc_now()
    await _seed(db_session, OrderFactory.create(created_at=now - timedelta(days=10)))

    recent = await list_orders(
        db_session, OrderFilters(date_from=now - timedelta(days=1))
    )
    older = await list_orders(
        db_session,
        OrderFilters(date_from=now - timedelta(days=30), date_to=now - timedelta(days=5)),
    )

    assert recent.total == 0
    assert older.total == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_user_order_lookup_is_scoped_to_owner(db_session, customer):
    mine = OrderFactory.create(user_id=customer.id)
    theirs = OrderFactory.create()
    await _seed(db_session, mine, theirs)

    found = await get_user_order_by_number(db_session, customer.id, mine.order_number)
    assert found.id == mine.id

    with pytest.raises(NotFoundError):
        await get_user_order_by_number(db_session, customer.id, theirs.order_number)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stats_counts_and_paid_revenue(db_session):
    await _seed(
        db_session,
        OrderFactory.create(total=Decimal("50.00"), payment_status=PaymentStatus.PAID),
        OrderFactory.create(
            status=OrderStatus.DELIVERED,
            total=Decimal("25.50"),
            payment_status=PaymentStatus.PAID,
        ),
        OrderFactory.create(total=Decimal("999.00")),
        OrderFactory.create(status=OrderStatus.CANCELLED, payment_status=PaymentStatus.FAILED),
    )

    stats = await get_stats(db_session)

    assert stats["total"] == 4
    assert stats["pending"] == 2
    assert stats["delivered"] == 1
    assert stats["cancelled"] == 1
    assert stats["shipped"] == 0
    assert stats["pending_payments"] == 1
    assert stats["by_payment_status"]["PAID"] == 2
    assert stats["by_payment_status"]["REFUNDED"] == 0
    assert stats["total_revenue"] == Decimal("75.50")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stats_on_empty_store(db_session):
    stats = await get_stats(db_session)
    assert stats["total"] == 0
    assert stats["total_revenue"] == Decimal("0.00")
