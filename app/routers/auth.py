# app/routers/auth.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.deps import get_current_user, get_optional_user
from app.models.user import User
from app.routers.users import user_to_dict
from app.services import users as user_service
from app.services.auth import extract_claims, issue_token, validate_token
from app.services.roles import primary_role

router = APIRouter(prefix="/api/auth", tags=["auth"])

logger = logging.getLogger(__name__)


class RegisterPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginPayload(BaseModel):
    email: EmailStr
    password: str


class TokenPayload(BaseModel):
    token: str


def _token_response(user: User) -> dict:
    role = primary_role(user.role_names)
    token = issue_token(user.id, user.email, role, extra={"roles": sorted(user.role_names)})
    return {
        "access_token": token,
        "token_type": "bearer",
        "user": user_to_dict(user),
    }


@router.post("/register", status_code=201)
def register(payload: RegisterPayload, db: Session = Depends(get_db)):
    user = user_service.register_user(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
    )
    logger.info("User registered user_id=%s", user.id)
    return _token_response(user)


@router.post("/login")
def login(payload: LoginPayload, db: Session = Depends(get_db)):
    user = user_service.authenticate(db, payload.email, payload.password)
    if not user:
        logger.info("Login failed for email=%s", payload.email)
        raise HTTPException(status_code=401, detail="Credenciais inválidas")
    return _token_response(user)


@router.post("/token")
def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """Endpoint usado pelo botão Authorize do Swagger UI.

    Ele manda form-data com campos: username e password.
    """
    user = user_service.authenticate(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Credenciais inválidas",
            headers={"WWW-Authenticate": "Bearer"},
        )
    response = _token_response(user)
    return {"access_token": response["access_token"], "token_type": "bearer"}


@router.get("/check")
def check(user: Optional[User] = Depends(get_optional_user)):
    if user is None:
        return {"authenticated": False}
    return {"authenticated": True, "user": user_to_dict(user)}


@router.post("/logout")
def logout():
    # JWT é stateless: o cliente descarta o token
    return {"message": "Logout realizado"}


@router.post("/verify-token")
def verify_token(payload: TokenPayload):
    if not validate_token(payload.token):
        return {"valid": False}
    return {"valid": True, "claims": extract_claims(payload.token)}


@router.post("/refresh-token")
def refresh_token(user: User = Depends(get_current_user)):
    return _token_response(user)
