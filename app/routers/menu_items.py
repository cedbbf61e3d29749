# app/routers/menu_items.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.money import money_str
from app.deps import get_current_user
from app.models.menu_item import MenuItem
from app.models.shop import ShopStatus
from app.models.user import User
from app.services import menu as menu_service
from app.services import shops as shop_service
from app.services.authorization_service import AuthorizationService

router = APIRouter(prefix="/api/menu-items", tags=["menu"])


def menu_item_to_dict(item: MenuItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "shop_id": item.shop_id,
        "name": item.name,
        "description": item.description,
        "image_url": item.image_url,
        "price": money_str(item.price),
        "is_available": bool(item.is_available),
        "created_at": item.created_at.isoformat() if item.created_at else None,
        "updated_at": item.updated_at.isoformat() if item.updated_at else None,
    }


class VariantIn(BaseModel):
    label: str = Field(..., min_length=1, max_length=80)


class AddonIn(BaseModel):
    label: str = Field(..., min_length=1, max_length=80)
    price: Decimal = Field(Decimal("0"), ge=0)


class FlavorIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=80)


class MenuItemCreatePayload(BaseModel):
    shop_id: int
    name: str = Field(..., min_length=1, max_length=120)
    description: str = ""
    image_url: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    variants: Optional[List[VariantIn]] = None
    addons: Optional[List[AddonIn]] = None
    flavors: Optional[List[FlavorIn]] = None


class MenuItemUpdatePayload(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    is_available: Optional[bool] = None
    variants: Optional[List[VariantIn]] = None
    addons: Optional[List[AddonIn]] = None
    flavors: Optional[List[FlavorIn]] = None


class AvailabilityPayload(BaseModel):
    is_available: bool


def _ensure_public_shop(db: Session, shop_id: int) -> None:
    shop = shop_service.get_shop(db, shop_id)
    if shop.status != ShopStatus.ACTIVE.value:
        raise HTTPException(status_code=404, detail="Loja não encontrada ou inativa")


def _ensure_item_owner(request: Request, db: Session, user: User, item_id: int) -> MenuItem:
    item = menu_service.get_item(db, item_id)
    AuthorizationService.ensure_shop_owner(request=request, db=db, user=user, shop_id=item.shop_id)
    return item


@router.get("/shop/{shop_id}")
def list_shop_menu(shop_id: int, db: Session = Depends(get_db)):
    _ensure_public_shop(db, shop_id)
    return [menu_item_to_dict(i) for i in menu_service.list_available_items(db, shop_id)]


@router.get("/shop/{shop_id}/all")
def list_shop_menu_for_owner(
    shop_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shop_service.get_shop(db, shop_id)
    AuthorizationService.ensure_shop_owner(request=request, db=db, user=user, shop_id=shop_id)
    return [menu_item_to_dict(i) for i in menu_service.list_items(db, shop_id)]


@router.get("/shop/{shop_id}/search")
def search_shop_menu(shop_id: int, q: str = Query("", max_length=120), db: Session = Depends(get_db)):
    _ensure_public_shop(db, shop_id)
    return [menu_item_to_dict(i) for i in menu_service.search_items(db, shop_id, q)]


@router.get("/shop/{shop_id}/price")
def filter_shop_menu_by_price(
    shop_id: int,
    max_price: Decimal = Query(..., ge=0),
    db: Session = Depends(get_db),
):
    _ensure_public_shop(db, shop_id)
    return [menu_item_to_dict(i) for i in menu_service.filter_by_max_price(db, shop_id, max_price)]


@router.get("/shop/{shop_id}/count")
def count_shop_menu(shop_id: int, db: Session = Depends(get_db)):
    _ensure_public_shop(db, shop_id)
    return {"shop_id": shop_id, "count": menu_service.count_available_items(db, shop_id)}


@router.get("/{item_id}")
def get_menu_item(item_id: int, db: Session = Depends(get_db)):
    return menu_item_to_dict(menu_service.get_item(db, item_id))


@router.get("/{item_id}/options")
def get_menu_item_options(item_id: int, db: Session = Depends(get_db)):
    return menu_service.get_item_options(db, item_id)


@router.post("", status_code=201)
def create_menu_item(
    payload: MenuItemCreatePayload,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shop_service.get_shop(db, payload.shop_id)
    AuthorizationService.ensure_shop_owner(request=request, db=db, user=user, shop_id=payload.shop_id)
    fields = payload.model_dump(exclude={"shop_id"}, exclude_none=True)
    item = menu_service.create_menu_item(db, payload.shop_id, fields)
    return menu_item_to_dict(item)


@router.put("/{item_id}")
def update_menu_item(
    item_id: int,
    payload: MenuItemUpdatePayload,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_item_owner(request, db, user, item_id)
    item = menu_service.update_item(db, item_id, payload.model_dump(exclude_unset=True))
    return menu_item_to_dict(item)


@router.put("/{item_id}/availability")
def update_menu_item_availability(
    item_id: int,
    payload: AvailabilityPayload,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_item_owner(request, db, user, item_id)
    return menu_item_to_dict(menu_service.update_availability(db, item_id, payload.is_available))


@router.delete("/{item_id}")
def delete_menu_item(
    item_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_item_owner(request, db, user, item_id)
    menu_service.delete_item(db, item_id)
    return {"message": "Item removido"}
