from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from sqlalchemy.orm import Session

from app.core.errors import InvalidArgumentError, InvalidStateError, NotFoundError
from app.models.shop import Shop, ShopLocation, ShopStatus
from app.models.user import Role
from app.services.roles import RoleName
from app.services.shop_events import emit_shop_approved, emit_shop_rejected
from app.services.users import get_user

logger = logging.getLogger(__name__)

SHOP_TRANSITIONS: Dict[ShopStatus, set[ShopStatus]] = {
    ShopStatus.PENDING: {ShopStatus.ACTIVE, ShopStatus.REJECTED, ShopStatus.CLOSED},
    ShopStatus.ACTIVE: {ShopStatus.SUSPENDED, ShopStatus.CLOSED},
    ShopStatus.SUSPENDED: {ShopStatus.ACTIVE, ShopStatus.CLOSED},
    ShopStatus.REJECTED: {ShopStatus.CLOSED},
    ShopStatus.CLOSED: set(),
}

# campos que o dono pode alterar; owner/status/created_at/is_open nunca vêm do payload
EDITABLE_FIELDS = ("name", "description", "address", "location", "contact_number", "image_url")


def parse_shop_status(value: str) -> ShopStatus:
    try:
        return ShopStatus((value or "").strip().upper())
    except ValueError as exc:
        raise InvalidArgumentError(f"Status de loja inválido: {value}") from exc


def parse_location(value: Any) -> str:
    raw = str(getattr(value, "value", value) or "").strip()
    for location in ShopLocation:
        if raw.upper().replace(" ", "_") == location.value or raw.lower() == location.display_name.lower():
            return location.value
    raise InvalidArgumentError(f"Localização inválida: {raw}")


def get_shop(db: Session, shop_id: int) -> Shop:
    shop = db.query(Shop).filter(Shop.id == shop_id).first()
    if not shop:
        raise NotFoundError("Loja não encontrada")
    return shop


def is_owned_by(db: Session, user_id: int, shop_id: int) -> bool:
    return (
        db.query(Shop.id)
        .filter(Shop.id == shop_id, Shop.owner_id == user_id)
        .first()
        is not None
    )


def list_operational_shops(db: Session) -> List[Shop]:
    return (
        db.query(Shop)
        .filter(Shop.status == ShopStatus.ACTIVE.value, Shop.is_open.is_(True))
        .order_by(Shop.name)
        .all()
    )


def list_shops_by_status(db: Session, status: ShopStatus) -> List[Shop]:
    return db.query(Shop).filter(Shop.status == status.value).order_by(Shop.id).all()


def list_shops_by_owner(db: Session, owner_id: int) -> List[Shop]:
    return db.query(Shop).filter(Shop.owner_id == owner_id).order_by(Shop.id).all()


def list_applications(db: Session, owner_id: int) -> List[Shop]:
    return (
        db.query(Shop)
        .filter(
            Shop.owner_id == owner_id,
            Shop.status.in_([ShopStatus.PENDING.value, ShopStatus.REJECTED.value]),
        )
        .order_by(Shop.created_at.desc(), Shop.id.desc())
        .all()
    )


def list_all_shops(db: Session) -> List[Shop]:
    return db.query(Shop).order_by(Shop.id).all()


def _apply_fields(shop: Shop, fields: Mapping[str, Any]) -> None:
    for field in EDITABLE_FIELDS:
        if field not in fields or fields[field] is None:
            continue
        value = fields[field]
        if field == "location":
            value = parse_location(value)
        setattr(shop, field, value)


def create_shop(db: Session, owner_id: int, fields: Mapping[str, Any]) -> Shop:
    get_user(db, owner_id)
    if not fields.get("location"):
        raise InvalidArgumentError("Localização é obrigatória")

    shop = Shop(owner_id=owner_id)
    _apply_fields(shop, fields)
    # toda loja nasce pendente e fechada, independente do que o cliente mandar
    shop.status = ShopStatus.PENDING.value
    shop.is_open = False

    db.add(shop)
    db.commit()
    db.refresh(shop)
    logger.info("Shop application created shop_id=%s owner_id=%s", shop.id, owner_id)
    return shop


def update_shop(db: Session, shop_id: int, fields: Mapping[str, Any]) -> Shop:
    shop = get_shop(db, shop_id)
    _apply_fields(shop, fields)
    db.commit()
    db.refresh(shop)
    return shop


def _transition(shop: Shop, target: ShopStatus) -> ShopStatus:
    current = ShopStatus(shop.status)
    if target not in SHOP_TRANSITIONS[current]:
        raise InvalidStateError(f"Transição de loja inválida: {current.value} -> {target.value}")
    shop.status = target.value
    if target != ShopStatus.ACTIVE:
        shop.is_open = False
    return current


def _grant_seller_role(db: Session, shop: Shop) -> bool:
    owner = shop.owner
    if RoleName.SELLER.value in owner.role_names:
        return False
    seller_role = db.query(Role).filter(Role.name == RoleName.SELLER.value).first()
    if not seller_role:
        raise NotFoundError("Role não encontrada: SELLER")
    owner.roles.append(seller_role)
    return True


def approve_shop(db: Session, shop_id: int) -> Shop:
    shop = get_shop(db, shop_id)
    if ShopStatus(shop.status) not in {ShopStatus.PENDING, ShopStatus.SUSPENDED}:
        raise InvalidStateError(f"Loja não pode ser aprovada no status {shop.status}")

    try:
        previous = _transition(shop, ShopStatus.ACTIVE)
        granted = _grant_seller_role(db, shop)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(shop)
    logger.info(
        "Shop approved shop_id=%s previous=%s seller_granted=%s",
        shop.id,
        previous.value,
        granted,
    )
    # depois do commit: falha na notificação não desfaz a aprovação
    emit_shop_approved(shop)
    return shop


def reject_shop(db: Session, shop_id: int) -> Shop:
    shop = get_shop(db, shop_id)
    if shop.status != ShopStatus.PENDING.value:
        raise InvalidStateError(f"Loja não pode ser rejeitada no status {shop.status}")
    _transition(shop, ShopStatus.REJECTED)
    db.commit()
    db.refresh(shop)
    logger.info("Shop rejected shop_id=%s", shop.id)
    emit_shop_rejected(shop)
    return shop


def suspend_shop(db: Session, shop_id: int) -> Shop:
    shop = get_shop(db, shop_id)
    if shop.status != ShopStatus.ACTIVE.value:
        raise InvalidStateError(f"Loja não pode ser suspensa no status {shop.status}")
    _transition(shop, ShopStatus.SUSPENDED)
    db.commit()
    db.refresh(shop)
    logger.info("Shop suspended shop_id=%s", shop.id)
    return shop


def close_shop(db: Session, shop_id: int) -> Shop:
    shop = get_shop(db, shop_id)
    if shop.status not in {ShopStatus.ACTIVE.value, ShopStatus.SUSPENDED.value}:
        raise InvalidStateError(f"Loja não pode ser encerrada no status {shop.status}")
    _transition(shop, ShopStatus.CLOSED)
    db.commit()
    db.refresh(shop)
    logger.info("Shop closed shop_id=%s", shop.id)
    return shop


def soft_delete_shop(db: Session, shop_id: int) -> Shop:
    shop = get_shop(db, shop_id)
    _transition(shop, ShopStatus.CLOSED)
    db.commit()
    db.refresh(shop)
    logger.info("Shop soft-deleted by owner shop_id=%s", shop.id)
    return shop


def toggle_open_status(db: Session, shop_id: int) -> Shop:
    shop = get_shop(db, shop_id)
    if shop.status != ShopStatus.ACTIVE.value:
        raise InvalidStateError("Só é possível abrir/fechar uma loja ativa")
    shop.is_open = not bool(shop.is_open)
    db.commit()
    db.refresh(shop)
    logger.info("Shop open flag toggled shop_id=%s is_open=%s", shop.id, shop.is_open)
    return shop
