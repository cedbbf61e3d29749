from __future__ import annotations

from datetime import date

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.core.clock import day_bounds
from app.models.order import Order
from app.models.shop_queue_counter import ShopQueueCounter


def _max_queue_number_for_day(db: Session, shop_id: int, business_date: date) -> int:
    start, end = day_bounds(business_date)
    current = (
        db.query(func.max(Order.queue_number))
        .filter(
            Order.shop_id == shop_id,
            Order.order_date_time >= start,
            Order.order_date_time <= end,
        )
        .scalar()
    )
    return int(current or 0)


def allocate_queue_number(db: Session, shop_id: int, business_date: date) -> int:
    """Reserva a próxima senha do dia para a loja, dentro da transação do chamador.

    O UPDATE atômico trava a linha do contador até o commit, então dois pedidos
    simultâneos da mesma loja nunca leem o mesmo valor. Se o contador do dia
    ainda não existe, ele nasce a partir do maior número já usado hoje; um
    INSERT concorrente estoura IntegrityError na chave primária e o chamador
    refaz a unidade inteira.
    """
    result = db.execute(
        update(ShopQueueCounter)
        .where(
            ShopQueueCounter.shop_id == shop_id,
            ShopQueueCounter.business_date == business_date,
        )
        .values(last_number=ShopQueueCounter.last_number + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        return (
            db.query(ShopQueueCounter.last_number)
            .filter(
                ShopQueueCounter.shop_id == shop_id,
                ShopQueueCounter.business_date == business_date,
            )
            .scalar()
        )

    next_number = _max_queue_number_for_day(db, shop_id, business_date) + 1
    db.add(ShopQueueCounter(shop_id=shop_id, business_date=business_date, last_number=next_number))
    db.flush()
    return next_number
