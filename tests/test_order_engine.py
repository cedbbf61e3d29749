from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from app.core import clock
from app.core.errors import InvalidArgumentError, InvalidStateError, NotFoundError
from app.models.order import Order, OrderStatus
from app.models.shop import ShopStatus
from app.models.shop_queue_counter import ShopQueueCounter
from app.services import menu as menu_service
from app.services import orders as order_service
from app.services import queue_numbers


@pytest.fixture
def canteen(db, make_user, make_shop, make_item):
    owner = make_user()
    customer = make_user()
    shop = make_shop(owner)
    latte = make_item(shop, name="Latte", price="120.00")
    return owner, customer, shop, latte


@pytest.fixture
def fixed_now(monkeypatch):
    current = {"value": datetime(2026, 3, 2, 10, 30)}
    monkeypatch.setattr(order_service, "local_now", lambda: current["value"])
    return current


def _order(db, customer, shop, item, quantity=1, **kwargs):
    return order_service.create_order(
        db,
        customer.id,
        shop.id,
        [{"menu_item_id": item.id, "quantity": quantity}],
        **kwargs,
    )


def test_create_order_snapshots_price_and_totals(db, canteen):
    _, customer, shop, latte = canteen

    order = _order(db, customer, shop, latte, quantity=2, notes="less ice")

    assert order.status == OrderStatus.PENDING.value
    assert order.total_amount == Decimal("240.00")
    assert order.queue_number == 1
    assert order.notes == "less ice"
    assert [(i.menu_item_id, i.quantity, i.price_at_purchase) for i in order.items] == [
        (latte.id, 2, Decimal("120.00"))
    ]


def test_total_is_sum_of_line_subtotals(db, canteen, make_item):
    _, customer, shop, latte = canteen
    cake = make_item(shop, name="Cake", price="85.50")

    order = order_service.create_order(
        db,
        customer.id,
        shop.id,
        [{"menu_item_id": latte.id, "quantity": 1}, {"menu_item_id": cake.id, "quantity": 3}],
    )

    assert order.total_amount == Decimal("376.50")
    assert sum(item.subtotal for item in order.items) == order.total_amount


def test_price_change_does_not_affect_existing_order(db, canteen):
    _, customer, shop, latte = canteen
    order = _order(db, customer, shop, latte)

    menu_service.update_item(db, latte.id, {"price": "150.00"})

    reloaded = order_service.get_order(db, order.id)
    assert reloaded.items[0].price_at_purchase == Decimal("120.00")
    assert reloaded.total_amount == Decimal("120.00")


def test_queue_numbers_are_sequential_per_shop(db, canteen, make_user, make_shop, make_item):
    _, customer, shop, latte = canteen
    other_shop = make_shop(make_user(), name="Rice Bowl Express")
    rice = make_item(other_shop, name="Adobo", price="95.00")

    first = _order(db, customer, shop, latte)
    second = _order(db, customer, shop, latte)
    elsewhere = _order(db, customer, other_shop, rice)

    assert (first.queue_number, second.queue_number) == (1, 2)
    assert elsewhere.queue_number == 1


def test_queue_number_resets_on_next_business_day(db, canteen, fixed_now):
    _, customer, shop, latte = canteen
    _order(db, customer, shop, latte)
    _order(db, customer, shop, latte)

    fixed_now["value"] = fixed_now["value"] + timedelta(days=1)
    next_day = _order(db, customer, shop, latte)

    assert next_day.queue_number == 1
    assert next_day.queue_date == date(2026, 3, 3)


def test_counter_seeds_from_existing_orders(db, canteen, fixed_now):
    _, customer, shop, latte = canteen
    db.add(
        Order(
            customer_id=customer.id,
            shop_id=shop.id,
            total_amount=Decimal("120.00"),
            status=OrderStatus.COMPLETED.value,
            queue_number=7,
            queue_date=fixed_now["value"].date(),
            order_date_time=fixed_now["value"] - timedelta(hours=1),
        )
    )
    db.commit()

    order = _order(db, customer, shop, latte)

    assert order.queue_number == 8
    counter = db.get(ShopQueueCounter, (shop.id, fixed_now["value"].date()))
    assert counter.last_number == 8


def test_queue_collision_is_retried(db, canteen, monkeypatch):
    _, customer, shop, latte = canteen
    real_allocate = queue_numbers.allocate_queue_number
    calls = {"n": 0}

    def flaky_allocate(session, shop_id, business_date):
        calls["n"] += 1
        if calls["n"] == 1:
            raise IntegrityError("INSERT INTO shop_queue_counters", {}, Exception("duplicate key"))
        return real_allocate(session, shop_id, business_date)

    monkeypatch.setattr(order_service, "allocate_queue_number", flaky_allocate)

    order = _order(db, customer, shop, latte)

    assert calls["n"] == 2
    assert order.queue_number == 1


def test_queue_collision_gives_up_after_max_attempts(db, canteen, monkeypatch):
    _, customer, shop, latte = canteen

    def always_collides(*_args):
        raise IntegrityError("INSERT INTO shop_queue_counters", {}, Exception("duplicate key"))

    monkeypatch.setattr(order_service, "allocate_queue_number", always_collides)

    with pytest.raises(IntegrityError):
        _order(db, customer, shop, latte)
    assert db.query(Order).count() == 0


def test_item_from_another_shop_is_rejected(db, canteen, make_user, make_shop, make_item):
    _, customer, shop, _ = canteen
    foreign_item = make_item(make_shop(make_user(), name="Other"), name="Adobo")

    with pytest.raises(InvalidArgumentError):
        _order(db, customer, shop, foreign_item)
    assert db.query(Order).count() == 0


def test_order_lines_are_checked_with_menu_membership(db, canteen, monkeypatch):
    _, customer, shop, latte = canteen
    calls = []

    def fake_membership(session, item_id, shop_id):
        calls.append((item_id, shop_id))
        return False

    monkeypatch.setattr(order_service, "is_menu_item_in_shop", fake_membership)

    with pytest.raises(InvalidArgumentError):
        _order(db, customer, shop, latte)
    assert calls == [(latte.id, shop.id)]


def test_unavailable_item_is_rejected(db, canteen):
    _, customer, shop, latte = canteen
    menu_service.update_availability(db, latte.id, False)

    with pytest.raises(InvalidArgumentError):
        _order(db, customer, shop, latte)


@pytest.mark.parametrize("quantity", [0, -2])
def test_quantity_must_be_positive(db, canteen, quantity):
    _, customer, shop, latte = canteen

    with pytest.raises(InvalidArgumentError):
        _order(db, customer, shop, latte, quantity=quantity)


def test_empty_order_and_unknown_item(db, canteen):
    _, customer, shop, _ = canteen

    with pytest.raises(InvalidArgumentError):
        order_service.create_order(db, customer.id, shop.id, [])
    with pytest.raises(NotFoundError):
        order_service.create_order(db, customer.id, shop.id, [{"menu_item_id": 9999, "quantity": 1}])


@pytest.mark.parametrize(
    "status,is_open",
    [(ShopStatus.ACTIVE, False), (ShopStatus.SUSPENDED, False), (ShopStatus.PENDING, False)],
)
def test_shop_must_be_operational(db, make_user, make_shop, make_item, status, is_open):
    shop = make_shop(make_user(), status=ShopStatus.ACTIVE, is_open=True)
    latte = make_item(shop)
    shop.status = status.value
    shop.is_open = is_open
    db.commit()

    with pytest.raises(InvalidStateError):
        _order(db, make_user(), shop, latte)


def test_customer_cancel_records_reason(db, canteen):
    _, customer, shop, latte = canteen
    order = _order(db, customer, shop, latte)

    cancelled = order_service.cancel_order(db, order.id, "  ")

    assert cancelled.status == OrderStatus.CANCELLED.value
    assert cancelled.cancellation_reason == order_service.DEFAULT_CANCEL_REASON
    assert cancelled.cancelled_at is not None


def test_status_follows_lifecycle(db, canteen):
    _, customer, shop, latte = canteen
    order = _order(db, customer, shop, latte)

    for status in ("PREPARING", "READY", "COMPLETED"):
        order = order_service.update_order_status(db, order.id, status)
    assert order.status == OrderStatus.COMPLETED.value

    with pytest.raises(InvalidStateError):
        order_service.update_order_status(db, order.id, "PREPARING")
    with pytest.raises(InvalidStateError):
        order_service.cancel_order(db, order.id)


def test_status_cannot_skip_steps(db, canteen):
    _, customer, shop, latte = canteen
    order = _order(db, customer, shop, latte)

    with pytest.raises(InvalidStateError):
        order_service.update_order_status(db, order.id, OrderStatus.COMPLETED)
    with pytest.raises(InvalidArgumentError):
        order_service.update_order_status(db, order.id, "SHIPPED")


def test_cancel_through_status_update_uses_reason(db, canteen):
    _, customer, shop, latte = canteen
    order = _order(db, customer, shop, latte)
    order_service.update_order_status(db, order.id, "PREPARING")

    cancelled = order_service.update_order_status(db, order.id, "cancelled", reason="Out of milk")

    assert cancelled.status == OrderStatus.CANCELLED.value
    assert cancelled.cancellation_reason == "Out of milk"


def test_revenue_counts_completed_orders_in_range(db, canteen, fixed_now):
    _, customer, shop, latte = canteen
    done = _order(db, customer, shop, latte, quantity=2)
    for status in ("PREPARING", "READY", "COMPLETED"):
        order_service.update_order_status(db, done.id, status)
    _order(db, customer, shop, latte)
    order_service.cancel_order(db, _order(db, customer, shop, latte).id)

    start = fixed_now["value"] - timedelta(hours=1)
    end = fixed_now["value"] + timedelta(hours=1)

    assert order_service.calculate_revenue(db, shop.id, start, end) == Decimal("240.00")
    assert order_service.calculate_revenue(db, shop.id, end, end + timedelta(hours=1)) == Decimal("0.00")


def test_order_listings(db, canteen, make_user):
    owner, customer, shop, latte = canteen
    other_customer = make_user()
    first = _order(db, customer, shop, latte)
    second = _order(db, other_customer, shop, latte)
    third = _order(db, customer, shop, latte)
    order_service.update_order_status(db, first.id, "PREPARING")
    order_service.cancel_order(db, second.id)

    assert [o.id for o in order_service.list_active_orders(db, shop.id)] == [first.id, third.id]
    assert {o.id for o in order_service.list_customer_orders(db, customer.id)} == {first.id, third.id}
    assert [o.id for o in order_service.list_shop_orders(db, shop.id, OrderStatus.CANCELLED)] == [second.id]
    assert [o.id for o in order_service.list_customer_orders(db, customer.id, OrderStatus.PREPARING)] == [first.id]
    assert order_service.list_customer_orders(db, customer.id, OrderStatus.CANCELLED) == []
    assert len(order_service.list_orders_for_owner(db, owner.id)) == 3


def test_to_local_naive_converts_aware_values(monkeypatch):
    monkeypatch.setattr(clock, "APP_TIMEZONE", "Asia/Manila")
    naive = datetime(2026, 3, 2, 10, 30)

    assert clock.to_local_naive(naive) is naive
    assert clock.to_local_naive(datetime(2026, 3, 2, 2, 30, tzinfo=timezone.utc)) == naive
    assert clock.to_local_naive(datetime.fromisoformat("2026-03-02T10:30:00+08:00")) == naive


def test_revenue_with_aware_bounds_uses_local_time(db, canteen, fixed_now, monkeypatch):
    monkeypatch.setattr(clock, "APP_TIMEZONE", "Asia/Manila")
    _, customer, shop, latte = canteen
    done = _order(db, customer, shop, latte, quantity=2)
    for status in ("PREPARING", "READY", "COMPLETED"):
        order_service.update_order_status(db, done.id, status)

    # 10:30 em Manila é 02:30Z
    utc_start = datetime.fromisoformat("2026-03-02T02:00:00+00:00")
    utc_end = datetime.fromisoformat("2026-03-02T03:00:00+00:00")
    manila_start = datetime.fromisoformat("2026-03-02T10:00:00+08:00")
    manila_end = datetime.fromisoformat("2026-03-02T11:00:00+08:00")

    assert order_service.calculate_revenue(db, shop.id, utc_start, utc_end) == Decimal("240.00")
    assert order_service.calculate_revenue(db, shop.id, manila_start, manila_end) == Decimal("240.00")
    assert order_service.calculate_revenue(db, shop.id, manila_start, utc_end) == Decimal("240.00")
    assert order_service.calculate_revenue(
        db, shop.id, utc_end, utc_end + timedelta(hours=1)
    ) == Decimal("0.00")
