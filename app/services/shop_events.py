from __future__ import annotations

from app.models.shop import Shop
from app.services.event_bus import event_bus

SHOP_APPROVED = "shop.approved"
SHOP_REJECTED = "shop.rejected"


def build_shop_payload(shop: Shop) -> dict:
    return {
        "shop_id": shop.id,
        "shop_name": shop.name,
        "owner_id": shop.owner_id,
        "status": shop.status,
    }


def emit_shop_approved(shop: Shop) -> None:
    event_bus.emit(SHOP_APPROVED, build_shop_payload(shop))


def emit_shop_rejected(shop: Shop) -> None:
    event_bus.emit(SHOP_REJECTED, build_shop_payload(shop))
