import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.core.clock import local_now
from app.core.database import Base


class ShopStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"
    CLOSED = "CLOSED"


class ShopLocation(str, enum.Enum):
    JHS_CANTEEN = "JHS_CANTEEN"
    MAIN_CANTEEN = "MAIN_CANTEEN"
    PRESCHOOL_CANTEEN = "PRESCHOOL_CANTEEN"
    FRONTGATE = "FRONTGATE"
    BACKGATE = "BACKGATE"

    @property
    def display_name(self) -> str:
        return _LOCATION_DISPLAY_NAMES[self]


_LOCATION_DISPLAY_NAMES = {
    ShopLocation.JHS_CANTEEN: "JHS Canteen",
    ShopLocation.MAIN_CANTEEN: "Main Canteen",
    ShopLocation.PRESCHOOL_CANTEEN: "Preschool Canteen",
    ShopLocation.FRONTGATE: "Frontgate",
    ShopLocation.BACKGATE: "Backgate",
}


class Shop(Base):
    __tablename__ = "shops"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, default="")
    address = Column(String(200), nullable=False, default="")
    location = Column(String(30), nullable=False)
    contact_number = Column(String(20), nullable=False, default="")
    image_url = Column(String(500), nullable=True)

    # PENDING / ACTIVE / REJECTED / SUSPENDED / CLOSED
    status = Column(String(20), nullable=False, default=ShopStatus.PENDING.value, index=True)
    is_open = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=local_now, nullable=False)
    updated_at = Column(DateTime, default=local_now, onupdate=local_now, nullable=False)

    owner = relationship("User", lazy="joined")
    menu_items = relationship("MenuItem", back_populates="shop")

    @property
    def is_operational(self) -> bool:
        return self.status == ShopStatus.ACTIVE.value and bool(self.is_open)
