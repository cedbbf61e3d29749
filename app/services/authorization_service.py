from __future__ import annotations

import logging
from typing import Iterable

from fastapi import Request
from sqlalchemy.orm import Session

from app.core.errors import ForbiddenError
from app.models.order import Order, OrderStatus
from app.models.shop import Shop
from app.models.user import User
from app.services.roles import RoleName, has_role
from app.services.shops import is_owned_by

logger = logging.getLogger(__name__)


class AuthorizationService:
    """Centraliza checagens de papel e de dono (loja/pedido) feitas nos routers."""

    @staticmethod
    def log_access_denied(*, reason: str, user: User, request: Request | None, resource: str | None = None) -> None:
        endpoint = f"{request.method} {request.url.path}" if request is not None else None
        logger.warning(
            "Access denied (%s): user_id=%s user_roles=%s resource=%s endpoint=%s",
            reason,
            getattr(user, "id", None),
            sorted(getattr(user, "role_names", set())),
            resource,
            endpoint,
        )

    @classmethod
    def ensure_role(cls, *, request: Request | None, user: User, roles: Iterable[RoleName]) -> None:
        allowed = list(roles)
        if not any(has_role(user, role) for role in allowed):
            cls.log_access_denied(reason="role_denied", user=user, request=request)
            raise ForbiddenError("Permissão insuficiente")

    @classmethod
    def ensure_shop_owner(cls, *, request: Request | None, db: Session, user: User, shop_id: int) -> None:
        if not is_owned_by(db, user.id, shop_id):
            cls.log_access_denied(
                reason="not_shop_owner",
                user=user,
                request=request,
                resource=f"shop:{shop_id}",
            )
            raise ForbiddenError("Você não é o dono desta loja")

    @staticmethod
    def can_view_shop(user: User | None, shop: Shop) -> bool:
        if user is None:
            return False
        return shop.owner_id == user.id or has_role(user, RoleName.ADMIN)

    @staticmethod
    def can_view_order(user: User, order: Order) -> bool:
        return (
            order.customer_id == user.id
            or order.shop.owner_id == user.id
            or has_role(user, RoleName.ADMIN)
        )

    @staticmethod
    def can_change_order_status(user: User, order: Order, target: OrderStatus) -> bool:
        is_shop_owner = order.shop.owner_id == user.id
        if target == OrderStatus.CANCELLED:
            return order.customer_id == user.id or is_shop_owner
        return is_shop_owner

    @classmethod
    def ensure_can_change_order_status(
        cls,
        *,
        request: Request | None,
        user: User,
        order: Order,
        target: OrderStatus,
    ) -> None:
        if not cls.can_change_order_status(user, order, target):
            cls.log_access_denied(
                reason="order_status_denied",
                user=user,
                request=request,
                resource=f"order:{order.id}",
            )
            raise ForbiddenError("Sem permissão para alterar este pedido")
