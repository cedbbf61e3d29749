from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.clock import local_now
from app.core.database import Base


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, ForeignKey("shops.id"), index=True, nullable=False)

    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String(500), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=local_now, nullable=False)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now, nullable=False)

    shop = relationship("Shop", back_populates="menu_items")

    # opções pertencem ao item: somem junto com ele
    variants = relationship("MenuItemVariant", cascade="all, delete-orphan", order_by="MenuItemVariant.id")
    addons = relationship("MenuItemAddon", cascade="all, delete-orphan", order_by="MenuItemAddon.id")
    flavors = relationship("MenuItemFlavor", cascade="all, delete-orphan", order_by="MenuItemFlavor.id")
