# app/routers/users.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import get_current_user, require_admin
from app.models.user import User
from app.services import users as user_service
from app.services.roles import RoleName, has_role, primary_role
from app.services.authorization_service import AuthorizationService

router = APIRouter(prefix="/api/users", tags=["users"])


def user_to_dict(user: User) -> Dict[str, Any]:
    roles = sorted(user.role_names)
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "name": user.full_name,
        "avatar_url": user.avatar_url,
        "roles": roles,
        "primary_role": primary_role(roles),
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


class ProfileUpdatePayload(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    avatar_url: Optional[str] = None


class PasswordChangePayload(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class PasswordConfirmPayload(BaseModel):
    password: str


class RolePayload(BaseModel):
    role: str


def _parse_role(value: str) -> RoleName:
    try:
        return RoleName.parse(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Role inválida: {value}")


@router.get("/profile")
def get_profile(user: User = Depends(get_current_user)):
    return user_to_dict(user)


@router.put("/profile")
def update_profile(
    payload: ProfileUpdatePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = user_service.update_profile(db, user.id, **payload.model_dump(exclude_unset=True))
    return user_to_dict(updated)


@router.put("/profile/password")
def change_password(
    payload: PasswordChangePayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not user_service.change_password(db, user.id, payload.current_password, payload.new_password):
        raise HTTPException(status_code=400, detail="Senha atual incorreta")
    return {"message": "Senha alterada com sucesso"}


@router.delete("/profile")
def delete_profile(
    payload: PasswordConfirmPayload,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not user_service.delete_account(db, user.id, payload.password):
        raise HTTPException(status_code=400, detail="Senha incorreta")
    return {"message": "Conta removida"}


@router.get("")
def list_users(db: Session = Depends(get_db), _admin: User = Depends(require_admin)) -> List[Dict[str, Any]]:
    return [user_to_dict(u) for u in user_service.list_users(db)]


@router.get("/customers")
def list_customers(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    return [user_to_dict(u) for u in user_service.list_users_with_role(db, RoleName.CUSTOMER)]


@router.get("/sellers")
def list_sellers(db: Session = Depends(get_db), _admin: User = Depends(require_admin)):
    return [user_to_dict(u) for u in user_service.list_users_with_role(db, RoleName.SELLER)]


@router.get("/{user_id}")
def get_user(
    user_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if user.id != user_id and not has_role(user, RoleName.ADMIN):
        AuthorizationService.log_access_denied(reason="not_self", user=user, request=request)
        raise HTTPException(status_code=403, detail="Permissão insuficiente")
    return user_to_dict(user_service.get_user(db, user_id))


@router.put("/{user_id}")
def admin_update_user(
    user_id: int,
    payload: ProfileUpdatePayload,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    updated = user_service.update_profile(db, user_id, **payload.model_dump(exclude_unset=True))
    return user_to_dict(updated)


@router.delete("/{user_id}")
def admin_delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user_service.delete_user(db, user_id, acting_user_id=admin.id)
    return {"message": "Usuário removido"}


@router.post("/{user_id}/roles")
def add_role(
    user_id: int,
    payload: RolePayload,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return user_to_dict(user_service.add_role(db, user_id, _parse_role(payload.role)))


@router.delete("/{user_id}/roles/{role_name}")
def remove_role(
    user_id: int,
    role_name: str,
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return user_to_dict(user_service.remove_role(db, user_id, _parse_role(role_name)))
