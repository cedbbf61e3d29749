from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ForbiddenError, InvalidArgumentError, InvalidStateError, NotFoundError
from app.models.notification import Notification
from app.models.order import Order
from app.models.shop import Shop
from app.models.user import Role, User
from app.services.passwords import hash_password, unusable_password_hash, verify_password
from app.services.roles import RoleName

logger = logging.getLogger(__name__)

SELLER_EMAIL_PREFIX = "shop."


def _require_role(db: Session, role_name: RoleName | str) -> Role:
    try:
        name = RoleName.parse(str(getattr(role_name, "value", role_name))).value
    except ValueError as exc:
        raise NotFoundError(f"Role não encontrada: {role_name}") from exc
    role = db.query(Role).filter(Role.name == name).first()
    if not role:
        raise NotFoundError(f"Role não encontrada: {name}")
    return role


def _commit_user(db: Session, user: User) -> User:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise InvalidArgumentError("E-mail já cadastrado") from exc
    db.refresh(user)
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("Usuário não encontrado")
    return user


def find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.id).all()


def list_users_with_role(db: Session, role_name: RoleName) -> List[User]:
    return (
        db.query(User)
        .join(User.roles)
        .filter(Role.name == role_name.value)
        .order_by(User.id)
        .all()
    )


def create_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str = "",
    role_names: Optional[Iterable[RoleName]] = None,
    avatar_url: Optional[str] = None,
    password_hash: Optional[str] = None,
) -> User:
    if find_by_email(db, email):
        raise InvalidArgumentError("E-mail já cadastrado")

    requested_roles = list(role_names or []) or [RoleName.CUSTOMER]
    user = User(
        email=email,
        password_hash=password_hash or hash_password(password),
        first_name=first_name,
        last_name=last_name,
        avatar_url=avatar_url,
    )
    user.roles = [_require_role(db, role) for role in requested_roles]
    db.add(user)
    _commit_user(db, user)
    logger.info("User created user_id=%s roles=%s", user.id, sorted(user.role_names))
    return user


def split_full_name(name: str) -> tuple[str, str]:
    parts = (name or "").strip().split(None, 1)
    if not parts:
        return "", ""
    first_name = parts[0]
    last_name = parts[1] if len(parts) > 1 else ""
    return first_name, last_name


def register_user(db: Session, *, name: str, email: str, password: str) -> User:
    first_name, last_name = split_full_name(name)
    roles = [RoleName.CUSTOMER]
    # contas "shop.*" já nascem vendedoras
    if email.lower().startswith(SELLER_EMAIL_PREFIX):
        roles = [RoleName.SELLER, RoleName.CUSTOMER]
    return create_user(
        db,
        email=email,
        password=password,
        first_name=first_name,
        last_name=last_name,
        role_names=roles,
    )


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = find_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def add_role(db: Session, user_id: int, role_name: RoleName | str) -> User:
    user = get_user(db, user_id)
    role = _require_role(db, role_name)
    if role.name not in user.role_names:
        user.roles.append(role)
        db.commit()
        db.refresh(user)
        logger.info("Role added user_id=%s role=%s", user.id, role.name)
    return user


def remove_role(db: Session, user_id: int, role_name: RoleName | str) -> User:
    user = get_user(db, user_id)
    role = _require_role(db, role_name)
    if role.name in user.role_names:
        user.roles = [r for r in user.roles if r.name != role.name]
        db.commit()
        db.refresh(user)
        logger.info("Role removed user_id=%s role=%s", user.id, role.name)
    return user


def update_profile(
    db: Session,
    user_id: int,
    *,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    email: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> User:
    user = get_user(db, user_id)
    if email and email != user.email:
        if find_by_email(db, email):
            raise InvalidArgumentError("E-mail já cadastrado")
        user.email = email
    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name
    if avatar_url is not None:
        user.avatar_url = avatar_url
    return _commit_user(db, user)


def change_password(db: Session, user_id: int, current_password: str, new_password: str) -> bool:
    user = get_user(db, user_id)
    if not verify_password(current_password, user.password_hash):
        return False
    user.password_hash = hash_password(new_password)
    db.commit()
    logger.info("Password changed user_id=%s", user.id)
    return True


def _hard_delete(db: Session, user: User) -> None:
    owns_shop = db.query(Shop.id).filter(Shop.owner_id == user.id).first() is not None
    has_orders = db.query(Order.id).filter(Order.customer_id == user.id).first() is not None
    if owns_shop or has_orders:
        raise InvalidStateError("Usuário possui lojas ou pedidos e não pode ser removido")

    db.query(Notification).filter(Notification.user_id == user.id).delete(synchronize_session=False)
    db.delete(user)
    db.commit()
    logger.info("User deleted user_id=%s", user.id)


def delete_account(db: Session, user_id: int, password: str) -> bool:
    user = get_user(db, user_id)
    if not verify_password(password, user.password_hash):
        return False
    _hard_delete(db, user)
    return True


def delete_user(db: Session, user_id: int, *, acting_user_id: int) -> None:
    if user_id == acting_user_id:
        raise ForbiddenError("Você não pode excluir a própria conta")
    _hard_delete(db, get_user(db, user_id))


def get_or_create_oauth_user(
    db: Session,
    *,
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> User:
    """Primeiro login via OAuth: cria conta CUSTOMER ou atualiza o avatar."""
    user = find_by_email(db, email)
    if user:
        if avatar_url and avatar_url != user.avatar_url:
            user.avatar_url = avatar_url
            db.commit()
            db.refresh(user)
        return user

    return create_user(
        db,
        email=email,
        password="",
        first_name=first_name or "User",
        last_name=last_name or "",
        avatar_url=avatar_url,
        password_hash=unusable_password_hash(),
    )
