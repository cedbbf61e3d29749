# app/routers/shops.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import get_current_user, get_optional_user, require_admin
from app.models.shop import Shop, ShopLocation, ShopStatus
from app.models.user import User
from app.services import shops as shop_service
from app.services.authorization_service import AuthorizationService

router = APIRouter(prefix="/api/shops", tags=["shops"])

PH_MOBILE_PATTERN = r"^(09|\+639)\d{9}$"


def _location_name(value: str) -> str:
    try:
        return ShopLocation(value).display_name
    except ValueError:
        return value


def shop_to_dict(shop: Shop) -> Dict[str, Any]:
    return {
        "id": shop.id,
        "name": shop.name,
        "description": shop.description,
        "address": shop.address,
        "location": shop.location,
        "location_name": _location_name(shop.location),
        "contact_number": shop.contact_number,
        "image_url": shop.image_url,
        "status": shop.status,
        "is_open": bool(shop.is_open),
        "is_operational": shop.is_operational,
        "owner_id": shop.owner_id,
        "owner_name": shop.owner.full_name if shop.owner else None,
        "created_at": shop.created_at.isoformat() if shop.created_at else None,
        "updated_at": shop.updated_at.isoformat() if shop.updated_at else None,
    }


class ShopCreatePayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    address: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1)
    contact_number: str = Field(..., pattern=PH_MOBILE_PATTERN)
    image_url: Optional[str] = None


class ShopUpdatePayload(BaseModel):
    # status/owner/created_at ficam de fora; campos extras são ignorados
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    address: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = None
    contact_number: Optional[str] = Field(None, pattern=PH_MOBILE_PATTERN)
    image_url: Optional[str] = None


@router.get("")
def list_operational_shops(db: Session = Depends(get_db)):
    return [shop_to_dict(s) for s in shop_service.list_operational_shops(db)]


@router.get("/status/{status}")
def list_shops_by_status(status: str, db: Session = Depends(get_db)):
    shop_status = shop_service.parse_shop_status(status)
    return [shop_to_dict(s) for s in shop_service.list_shops_by_status(db, shop_status)]


@router.get("/my-shops")
def list_my_shops(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [shop_to_dict(s) for s in shop_service.list_shops_by_owner(db, user.id)]


@router.get("/my-applications")
def list_my_applications(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [shop_to_dict(s) for s in shop_service.list_applications(db, user.id)]


@router.get("/admin/all")
def list_all_shops(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    return [shop_to_dict(s) for s in shop_service.list_all_shops(db)]


@router.get("/{shop_id}")
def get_shop(
    shop_id: int,
    request: Request,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    shop = shop_service.get_shop(db, shop_id)
    if shop.status != ShopStatus.ACTIVE.value and not AuthorizationService.can_view_shop(user, shop):
        raise HTTPException(status_code=403, detail="Loja não está ativa")
    return shop_to_dict(shop)


@router.post("", status_code=201)
def create_shop(
    payload: ShopCreatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shop = shop_service.create_shop(db, user.id, payload.model_dump())
    return shop_to_dict(shop)


@router.put("/{shop_id}")
def update_shop(
    shop_id: int,
    payload: ShopUpdatePayload,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shop_service.get_shop(db, shop_id)
    AuthorizationService.ensure_shop_owner(request=request, db=db, user=user, shop_id=shop_id)
    shop = shop_service.update_shop(db, shop_id, payload.model_dump(exclude_unset=True))
    return shop_to_dict(shop)


@router.put("/{shop_id}/toggle-status")
def toggle_open_status(
    shop_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shop_service.get_shop(db, shop_id)
    AuthorizationService.ensure_shop_owner(request=request, db=db, user=user, shop_id=shop_id)
    return shop_to_dict(shop_service.toggle_open_status(db, shop_id))


@router.delete("/{shop_id}")
def delete_shop(
    shop_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shop_service.get_shop(db, shop_id)
    AuthorizationService.ensure_shop_owner(request=request, db=db, user=user, shop_id=shop_id)
    return shop_to_dict(shop_service.soft_delete_shop(db, shop_id))


@router.put("/{shop_id}/approve")
def approve_shop(shop_id: int, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    return shop_to_dict(shop_service.approve_shop(db, shop_id))


@router.put("/{shop_id}/reject")
def reject_shop(shop_id: int, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    return shop_to_dict(shop_service.reject_shop(db, shop_id))


@router.put("/{shop_id}/suspend")
def suspend_shop(shop_id: int, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    return shop_to_dict(shop_service.suspend_shop(db, shop_id))


@router.put("/{shop_id}/close")
def close_shop(shop_id: int, db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    return shop_to_dict(shop_service.close_shop(db, shop_id))
