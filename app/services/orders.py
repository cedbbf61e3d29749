from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import local_now, to_local_naive
from app.core.errors import InvalidArgumentError, InvalidStateError, NotFoundError
from app.core.money import ZERO, to_money
from app.models.menu_item import MenuItem
from app.models.order import Order, OrderStatus, TERMINAL_ORDER_STATUSES
from app.models.order_item import OrderItem
from app.models.shop import Shop
from app.services.menu import is_menu_item_in_shop
from app.services.queue_numbers import allocate_queue_number
from app.services.shops import get_shop
from app.services.users import get_user

logger = logging.getLogger(__name__)

ORDER_TRANSITIONS: Dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

DEFAULT_CANCEL_REASON = "No reason provided"
QUEUE_ALLOCATION_ATTEMPTS = 3


@dataclass(frozen=True)
class _PricedLine:
    menu_item_id: int
    quantity: int
    price_at_purchase: Decimal


def parse_order_status(value: Any) -> OrderStatus:
    try:
        return OrderStatus(str(getattr(value, "value", value) or "").strip().upper())
    except ValueError as exc:
        raise InvalidArgumentError(f"Status de pedido inválido: {value}") from exc


def _line_value(line: Any, key: str) -> Any:
    if isinstance(line, dict):
        return line.get(key)
    return getattr(line, key, None)


def _price_lines(db: Session, shop: Shop, items: Iterable[Any]) -> List[_PricedLine]:
    lines: List[_PricedLine] = []
    for line in items:
        menu_item_id = _line_value(line, "menu_item_id")
        quantity = _line_value(line, "quantity")
        if quantity is None:
            quantity = 1
        if not isinstance(quantity, int) or quantity < 1:
            raise InvalidArgumentError("Quantidade deve ser pelo menos 1")

        menu_item = db.query(MenuItem).filter(MenuItem.id == menu_item_id).first()
        if not menu_item:
            raise NotFoundError(f"Item do cardápio não encontrado: {menu_item_id}")
        if not is_menu_item_in_shop(db, menu_item.id, shop.id):
            raise InvalidArgumentError(f"Item {menu_item.id} não pertence a esta loja")
        if not menu_item.is_available:
            raise InvalidArgumentError(f"Item indisponível: {menu_item.name}")

        # snapshot do preço agora; mudanças futuras no cardápio não afetam o pedido
        lines.append(
            _PricedLine(
                menu_item_id=menu_item.id,
                quantity=quantity,
                price_at_purchase=to_money(menu_item.price),
            )
        )

    if not lines:
        raise InvalidArgumentError("Pedido sem itens")
    return lines


def _build_order(
    customer_id: int,
    shop_id: int,
    lines: List[_PricedLine],
    notes: Optional[str],
    now: datetime,
) -> Order:
    order = Order(
        customer_id=customer_id,
        shop_id=shop_id,
        status=OrderStatus.PENDING.value,
        order_date_time=now,
        queue_date=now.date(),
        notes=notes,
    )
    order.items = [
        OrderItem(
            menu_item_id=line.menu_item_id,
            quantity=line.quantity,
            price_at_purchase=line.price_at_purchase,
        )
        for line in lines
    ]
    order.total_amount = sum((line.price_at_purchase * line.quantity for line in lines), ZERO)
    return order


def create_order(
    db: Session,
    customer_id: int,
    shop_id: int,
    items: Iterable[Any],
    notes: Optional[str] = None,
) -> Order:
    get_user(db, customer_id)
    shop = get_shop(db, shop_id)
    if not shop.is_operational:
        raise InvalidStateError("Loja não está aceitando pedidos")

    lines = _price_lines(db, shop, items)

    attempt = 0
    while True:
        attempt += 1
        now = local_now()
        order = _build_order(customer_id, shop_id, lines, notes, now)
        try:
            order.queue_number = allocate_queue_number(db, shop_id, now.date())
            db.add(order)
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempt >= QUEUE_ALLOCATION_ATTEMPTS:
                logger.error("Queue number allocation failed shop_id=%s attempts=%s", shop_id, attempt)
                raise
            logger.warning("Queue number collision shop_id=%s attempt=%s, retrying", shop_id, attempt)
            continue
        except Exception:
            db.rollback()
            raise

        db.refresh(order)
        logger.info(
            "Order created order_id=%s shop_id=%s queue_number=%s total=%s",
            order.id,
            shop_id,
            order.queue_number,
            order.total_amount,
        )
        return order


def get_order(db: Session, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError("Pedido não encontrado")
    return order


def cancel_order(db: Session, order_id: int, reason: Optional[str] = None) -> Order:
    order = get_order(db, order_id)
    current = OrderStatus(order.status)
    if current in TERMINAL_ORDER_STATUSES:
        raise InvalidStateError(f"Pedido {current.value} não pode ser cancelado")

    order.status = OrderStatus.CANCELLED.value
    order.cancelled_at = local_now()
    order.cancellation_reason = (reason or "").strip() or DEFAULT_CANCEL_REASON
    db.commit()
    db.refresh(order)
    logger.info("Order cancelled order_id=%s previous=%s", order.id, current.value)
    return order


def update_order_status(
    db: Session,
    order_id: int,
    new_status: Any,
    reason: Optional[str] = None,
) -> Order:
    target = parse_order_status(new_status)
    if target == OrderStatus.CANCELLED:
        return cancel_order(db, order_id, reason)

    order = get_order(db, order_id)
    current = OrderStatus(order.status)
    if target not in ORDER_TRANSITIONS[current]:
        raise InvalidStateError(f"Transição de pedido inválida: {current.value} -> {target.value}")

    order.status = target.value
    db.commit()
    db.refresh(order)
    logger.info("Order status changed order_id=%s %s -> %s", order.id, current.value, target.value)
    return order


def calculate_revenue(db: Session, shop_id: int, start: datetime, end: datetime) -> Decimal:
    start, end = to_local_naive(start), to_local_naive(end)
    total = (
        db.query(func.sum(Order.total_amount))
        .filter(
            Order.shop_id == shop_id,
            Order.status == OrderStatus.COMPLETED.value,
            Order.order_date_time >= start,
            Order.order_date_time <= end,
        )
        .scalar()
    )
    return to_money(total) if total is not None else ZERO


def list_customer_orders(db: Session, customer_id: int, status: Optional[OrderStatus] = None) -> List[Order]:
    query = db.query(Order).filter(Order.customer_id == customer_id)
    if status is not None:
        query = query.filter(Order.status == status.value)
    return query.order_by(Order.order_date_time.desc(), Order.id.desc()).all()


def list_shop_orders(db: Session, shop_id: int, status: Optional[OrderStatus] = None) -> List[Order]:
    query = db.query(Order).filter(Order.shop_id == shop_id)
    if status is not None:
        query = query.filter(Order.status == status.value)
    return query.order_by(Order.order_date_time.desc(), Order.id.desc()).all()


def list_active_orders(db: Session, shop_id: int) -> List[Order]:
    return (
        db.query(Order)
        .filter(
            Order.shop_id == shop_id,
            Order.status.notin_([status.value for status in TERMINAL_ORDER_STATUSES]),
        )
        .order_by(Order.queue_date, Order.queue_number)
        .all()
    )


def list_orders_for_owner(db: Session, owner_id: int) -> List[Order]:
    return (
        db.query(Order)
        .join(Shop, Shop.id == Order.shop_id)
        .filter(Shop.owner_id == owner_id)
        .order_by(Order.order_date_time.desc(), Order.id.desc())
        .all()
    )
