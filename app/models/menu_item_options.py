from sqlalchemy import Column, ForeignKey, Integer, Numeric, String

from app.core.database import Base


class MenuItemVariant(Base):
    __tablename__ = "menu_item_variants"

    id = Column(Integer, primary_key=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id", ondelete="CASCADE"), index=True, nullable=False)
    label = Column(String(80), nullable=False)


class MenuItemAddon(Base):
    __tablename__ = "menu_item_addons"

    id = Column(Integer, primary_key=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id", ondelete="CASCADE"), index=True, nullable=False)
    label = Column(String(80), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)


class MenuItemFlavor(Base):
    __tablename__ = "menu_item_flavors"

    id = Column(Integer, primary_key=True)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(80), nullable=False)
