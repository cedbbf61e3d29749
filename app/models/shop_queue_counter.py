from sqlalchemy import Column, Date, ForeignKey, Integer

from app.core.database import Base


class ShopQueueCounter(Base):
    __tablename__ = "shop_queue_counters"

    shop_id = Column(Integer, ForeignKey("shops.id", ondelete="CASCADE"), primary_key=True)
    business_date = Column(Date, primary_key=True)
    last_number = Column(Integer, nullable=False, default=0)
