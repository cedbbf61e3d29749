import enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from app.core.database import Base


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_ORDER_STATUSES = {OrderStatus.COMPLETED, OrderStatus.CANCELLED}


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("shop_id", "queue_date", "queue_number", name="uq_orders_shop_day_queue"),
    )

    id = Column(Integer, primary_key=True)

    customer_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    shop_id = Column(Integer, ForeignKey("shops.id"), index=True, nullable=False)

    total_amount = Column(Numeric(10, 2), nullable=False, default=0)
    # PENDING / PREPARING / READY / COMPLETED / CANCELLED
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)

    # senha do balcão: sequencial por loja por dia
    queue_number = Column(Integer, nullable=False)
    queue_date = Column(Date, nullable=False)
    order_date_time = Column(DateTime, nullable=False, index=True)

    notes = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    customer = relationship("User", lazy="joined")
    shop = relationship("Shop", lazy="joined")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )
