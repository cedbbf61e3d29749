# app/routers/orders.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.clock import to_local_naive
from app.core.database import get_db
from app.core.money import money_str
from app.deps import get_current_user, require_customer
from app.models.order import Order, OrderStatus
from app.models.order_item import OrderItem
from app.models.user import User
from app.services import orders as order_service
from app.services import shops as shop_service
from app.services.authorization_service import AuthorizationService

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _order_item_to_dict(item: OrderItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "menu_item_id": item.menu_item_id,
        "name": item.menu_item.name if item.menu_item else None,
        "quantity": item.quantity,
        "price_at_purchase": money_str(item.price_at_purchase),
        "subtotal": money_str(item.subtotal),
    }


def order_to_dict(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "customer_id": order.customer_id,
        "customer_name": order.customer.full_name if order.customer else None,
        "shop_id": order.shop_id,
        "shop_name": order.shop.name if order.shop else None,
        "status": order.status,
        "queue_number": order.queue_number,
        "total_amount": money_str(order.total_amount),
        "notes": order.notes,
        "order_date_time": order.order_date_time.isoformat() if order.order_date_time else None,
        "cancelled_at": order.cancelled_at.isoformat() if order.cancelled_at else None,
        "cancellation_reason": order.cancellation_reason,
        "items": [_order_item_to_dict(i) for i in order.items],
    }


class OrderLineIn(BaseModel):
    menu_item_id: int
    quantity: int = Field(..., ge=1)


class OrderCreatePayload(BaseModel):
    shop_id: int
    items: List[OrderLineIn] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=500)


class OrderStatusPayload(BaseModel):
    status: str
    reason: Optional[str] = Field(None, max_length=500)


class CancelPayload(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


def _ensure_owner_of_shop(request: Request, db: Session, user: User, shop_id: int) -> None:
    shop_service.get_shop(db, shop_id)
    AuthorizationService.ensure_shop_owner(request=request, db=db, user=user, shop_id=shop_id)


@router.post("", status_code=201)
def create_order(
    payload: OrderCreatePayload,
    user: User = Depends(require_customer),
    db: Session = Depends(get_db),
):
    # o cliente é sempre quem está autenticado
    order = order_service.create_order(
        db,
        customer_id=user.id,
        shop_id=payload.shop_id,
        items=[line.model_dump() for line in payload.items],
        notes=payload.notes,
    )
    return order_to_dict(order)


@router.get("/my-orders")
def list_my_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [order_to_dict(o) for o in order_service.list_customer_orders(db, user.id)]


@router.get("/status/{status}")
def list_my_orders_by_status(status: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    order_status = order_service.parse_order_status(status)
    return [order_to_dict(o) for o in order_service.list_customer_orders(db, user.id, order_status)]


@router.get("/my-shop-orders")
def list_my_shop_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [order_to_dict(o) for o in order_service.list_orders_for_owner(db, user.id)]


@router.get("/shop/{shop_id}")
def list_shop_orders(
    shop_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_owner_of_shop(request, db, user, shop_id)
    return [order_to_dict(o) for o in order_service.list_shop_orders(db, shop_id)]


@router.get("/shop/{shop_id}/active")
def list_active_shop_orders(
    shop_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_owner_of_shop(request, db, user, shop_id)
    return [order_to_dict(o) for o in order_service.list_active_orders(db, shop_id)]


@router.get("/shop/{shop_id}/status/{status}")
def list_shop_orders_by_status(
    shop_id: int,
    status: str,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order_status = order_service.parse_order_status(status)
    _ensure_owner_of_shop(request, db, user, shop_id)
    return [order_to_dict(o) for o in order_service.list_shop_orders(db, shop_id, order_status)]


@router.get("/shop/{shop_id}/revenue")
def shop_revenue(
    shop_id: int,
    request: Request,
    start: datetime = Query(...),
    end: datetime = Query(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    start, end = to_local_naive(start), to_local_naive(end)
    if end < start:
        raise HTTPException(status_code=400, detail="Período inválido")
    _ensure_owner_of_shop(request, db, user, shop_id)
    revenue = order_service.calculate_revenue(db, shop_id, start, end)
    return {
        "shop_id": shop_id,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "revenue": money_str(revenue),
    }


@router.get("/{order_id}")
def get_order(
    order_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = order_service.get_order(db, order_id)
    if not AuthorizationService.can_view_order(user, order):
        AuthorizationService.log_access_denied(
            reason="order_view_denied",
            user=user,
            request=request,
            resource=f"order:{order.id}",
        )
        raise HTTPException(status_code=403, detail="Sem permissão para ver este pedido")
    return order_to_dict(order)


@router.put("/{order_id}/status")
def update_order_status(
    order_id: int,
    payload: OrderStatusPayload,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    target = order_service.parse_order_status(payload.status)
    order = order_service.get_order(db, order_id)
    AuthorizationService.ensure_can_change_order_status(request=request, user=user, order=order, target=target)
    updated = order_service.update_order_status(db, order_id, target, reason=payload.reason)
    return order_to_dict(updated)


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    request: Request,
    payload: Optional[CancelPayload] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = order_service.get_order(db, order_id)
    AuthorizationService.ensure_can_change_order_status(
        request=request,
        user=user,
        order=order,
        target=OrderStatus.CANCELLED,
    )
    cancelled = order_service.cancel_order(db, order_id, payload.reason if payload else None)
    return order_to_dict(cancelled)
