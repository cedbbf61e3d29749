# app/deps.py
from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.request_context import set_request_context
from app.models.user import User
from app.services.auth import decode_access_token
from app.services.authorization_service import AuthorizationService
from app.services.roles import RoleName

# Swagger "Authorize" (OAuth2 password flow) vai chamar este endpoint:
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")
oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)

logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_user_id(payload: dict) -> Optional[int]:
    raw = payload.get("sub")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        raw = raw.strip()
        if raw.isdigit():
            return int(raw)
    return None


def _resolve_user(request: Request, token: str, db: Session) -> User:
    try:
        payload = decode_access_token(token)
    except ValueError:
        raise _unauthorized("Token inválido ou expirado")

    user_id = _extract_user_id(payload)
    if user_id is None:
        raise _unauthorized("Token inválido (sem user_id)")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise _unauthorized("Usuário não encontrado")

    request.state.user = user
    set_request_context(user_id=str(user.id))
    return user


def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Lê o JWT, valida e retorna o usuário do banco."""
    return _resolve_user(request, token, db)


def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme_optional),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if not token:
        return None
    return _resolve_user(request, token, db)


def require_role(roles: Iterable[RoleName]):
    allowed = list(roles)

    def _dependency(request: Request, user: User = Depends(get_current_user)) -> User:
        AuthorizationService.ensure_role(request=request, user=user, roles=allowed)
        return user

    return _dependency


require_admin = require_role([RoleName.ADMIN])
require_customer = require_role([RoleName.CUSTOMER])
require_seller = require_role([RoleName.SELLER])
