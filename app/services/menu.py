from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import InvalidArgumentError, InvalidStateError, NotFoundError
from app.core.money import money_str, to_money
from app.models.menu_item import MenuItem
from app.models.menu_item_options import MenuItemAddon, MenuItemFlavor, MenuItemVariant
from app.models.order_item import OrderItem
from app.models.shop import ShopStatus
from app.services.shops import get_shop

logger = logging.getLogger(__name__)

ITEM_FIELDS = ("name", "description", "image_url", "price", "is_available")


def _validated_price(value: Any) -> Decimal:
    price = to_money(value)
    if price < 0:
        raise InvalidArgumentError("Preço não pode ser negativo")
    return price


def get_item(db: Session, item_id: int) -> MenuItem:
    item = db.query(MenuItem).filter(MenuItem.id == item_id).first()
    if not item:
        raise NotFoundError("Item do cardápio não encontrado")
    return item


def is_menu_item_in_shop(db: Session, item_id: int, shop_id: int) -> bool:
    return (
        db.query(MenuItem.id)
        .filter(MenuItem.id == item_id, MenuItem.shop_id == shop_id)
        .first()
        is not None
    )


def list_items(db: Session, shop_id: int) -> List[MenuItem]:
    return db.query(MenuItem).filter(MenuItem.shop_id == shop_id).order_by(MenuItem.name).all()


def list_available_items(db: Session, shop_id: int) -> List[MenuItem]:
    return (
        db.query(MenuItem)
        .filter(MenuItem.shop_id == shop_id, MenuItem.is_available.is_(True))
        .order_by(MenuItem.name)
        .all()
    )


def search_items(db: Session, shop_id: int, query: str) -> List[MenuItem]:
    term = (query or "").strip().lower()
    return (
        db.query(MenuItem)
        .filter(MenuItem.shop_id == shop_id, func.lower(MenuItem.name).contains(term, autoescape=True))
        .order_by(MenuItem.name)
        .all()
    )


def filter_by_max_price(db: Session, shop_id: int, max_price: Any) -> List[MenuItem]:
    limit = to_money(max_price)
    return (
        db.query(MenuItem)
        .filter(MenuItem.shop_id == shop_id, MenuItem.price <= limit)
        .order_by(MenuItem.price, MenuItem.name)
        .all()
    )


def count_available_items(db: Session, shop_id: int) -> int:
    return (
        db.query(func.count(MenuItem.id))
        .filter(MenuItem.shop_id == shop_id, MenuItem.is_available.is_(True))
        .scalar()
        or 0
    )


def _replace_options(item: MenuItem, options: Mapping[str, Any]) -> None:
    variants: Optional[Iterable[Any]] = options.get("variants")
    addons: Optional[Iterable[Any]] = options.get("addons")
    flavors: Optional[Iterable[Any]] = options.get("flavors")

    if variants is not None:
        item.variants = [MenuItemVariant(label=str(v["label"])) for v in variants]
    if addons is not None:
        item.addons = [
            MenuItemAddon(label=str(a["label"]), price=_validated_price(a.get("price", 0)))
            for a in addons
        ]
    if flavors is not None:
        item.flavors = [MenuItemFlavor(name=str(f["name"])) for f in flavors]


def _apply_fields(item: MenuItem, fields: Mapping[str, Any]) -> None:
    for field in ITEM_FIELDS:
        if field not in fields or fields[field] is None:
            continue
        value = fields[field]
        if field == "price":
            value = _validated_price(value)
        setattr(item, field, value)


def create_menu_item(db: Session, shop_id: int, fields: Mapping[str, Any]) -> MenuItem:
    shop = get_shop(db, shop_id)
    if shop.status != ShopStatus.ACTIVE.value:
        raise InvalidStateError("Só lojas ativas podem cadastrar itens")
    if not fields.get("name"):
        raise InvalidArgumentError("Nome do item é obrigatório")
    if fields.get("price") is None:
        raise InvalidArgumentError("Preço é obrigatório")

    item = MenuItem(shop_id=shop.id, is_available=True)
    _apply_fields(item, fields)
    _replace_options(item, fields)
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("Menu item created item_id=%s shop_id=%s", item.id, shop.id)
    return item


def update_item(db: Session, item_id: int, fields: Mapping[str, Any]) -> MenuItem:
    item = get_item(db, item_id)
    _apply_fields(item, fields)
    _replace_options(item, fields)
    db.commit()
    db.refresh(item)
    return item


def update_availability(db: Session, item_id: int, is_available: bool) -> MenuItem:
    item = get_item(db, item_id)
    item.is_available = bool(is_available)
    db.commit()
    db.refresh(item)
    return item


def delete_item(db: Session, item_id: int) -> None:
    item = get_item(db, item_id)
    if db.query(OrderItem.id).filter(OrderItem.menu_item_id == item.id).first() is not None:
        raise InvalidStateError("Item já usado em pedidos; marque como indisponível")
    db.delete(item)
    db.commit()
    logger.info("Menu item deleted item_id=%s", item_id)


def get_item_options(db: Session, item_id: int) -> Dict[str, list]:
    item = get_item(db, item_id)
    return {
        "variants": [variant.label for variant in item.variants],
        "addons": [{"label": addon.label, "price": money_str(addon.price)} for addon in item.addons],
        "flavors": [flavor.name for flavor in item.flavors],
    }
