from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from app.models.menu_item import MenuItem
from app.models.shop import Shop, ShopLocation, ShopStatus
from app.models.user import Role, User
from app.services.passwords import hash_password
from app.services.roles import RoleName
from app.services.users import find_by_email

logger = logging.getLogger(__name__)
BOOTSTRAP_PREFIX = "[BOOTSTRAP]"


def ensure_default_roles(db: Session) -> list[Role]:
    existing = {role.name for role in db.query(Role).all()}
    created = []
    for role_name in RoleName:
        if role_name.value not in existing:
            role = Role(name=role_name.value)
            db.add(role)
            created.append(role)
    if created:
        db.commit()
        logger.info("%s roles created=%s", BOOTSTRAP_PREFIX, [role.name for role in created])
    return created


def _password_looks_hashed(password: str) -> bool:
    return password.startswith(("$2a$", "$2b$", "$2y$"))


def upsert_user(
    db: Session,
    *,
    email: str,
    first_name: str,
    last_name: str,
    roles: list[RoleName],
    password: str | None,
) -> tuple[User, bool]:
    role_rows = db.query(Role).filter(Role.name.in_([role.value for role in roles])).all()
    existing = find_by_email(db, email)
    if existing:
        missing = [role for role in role_rows if role.name not in existing.role_names]
        existing.roles.extend(missing)
        if password:
            existing.password_hash = password if _password_looks_hashed(password) else hash_password(password)
        db.commit()
        db.refresh(existing)
        return existing, False

    if not password:
        raise ValueError("Senha é obrigatória para criar um novo usuário.")

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        password_hash=password if _password_looks_hashed(password) else hash_password(password),
    )
    user.roles = role_rows
    db.add(user)
    db.commit()
    db.refresh(user)
    return user, True


def bootstrap_admin(db: Session, *, email: str, password: str) -> User | None:
    if not password:
        logger.warning("%s admin skipped: configure DEV_ADMIN_PASSWORD.", BOOTSTRAP_PREFIX)
        return None
    admin, created = upsert_user(
        db,
        email=email,
        first_name="Admin",
        last_name="",
        roles=[RoleName.ADMIN, RoleName.CUSTOMER],
        password=password if not find_by_email(db, email) else None,
    )
    logger.info("%s admin %s id=%s email=%s", BOOTSTRAP_PREFIX, "created" if created else "exists", admin.id, admin.email)
    return admin


SAMPLE_SHOPS = [
    {
        "owner_email": "shop.coffee@wildeats.com",
        "owner_name": ("Coffee", "Owner"),
        "name": "Coffee Haven",
        "description": "Coffee, tea and pastries",
        "address": "Ground floor, Main Building",
        "location": ShopLocation.MAIN_CANTEEN,
        "contact_number": "09171234567",
        "items": [("Latte", "120.00"), ("Americano", "95.00"), ("Croissant", "75.00")],
    },
    {
        "owner_email": "shop.rice@wildeats.com",
        "owner_name": ("Rice", "Owner"),
        "name": "Rice Bowl Express",
        "description": "Rice meals and silog",
        "address": "Near the JHS building",
        "location": ShopLocation.JHS_CANTEEN,
        "contact_number": "09181234567",
        "items": [("Tapsilog", "85.00"), ("Chicken Adobo Bowl", "90.00")],
    },
]


def seed_sample_data(db: Session, *, password: str) -> int:
    """Cria vendedores, lojas ativas e cardápio de exemplo. Idempotente por nome de loja."""
    ensure_default_roles(db)
    created = 0
    for sample in SAMPLE_SHOPS:
        if db.query(Shop).filter(Shop.name == sample["name"]).first():
            continue
        first_name, last_name = sample["owner_name"]
        owner, _ = upsert_user(
            db,
            email=sample["owner_email"],
            first_name=first_name,
            last_name=last_name,
            roles=[RoleName.SELLER, RoleName.CUSTOMER],
            password=password,
        )
        shop = Shop(
            owner_id=owner.id,
            name=sample["name"],
            description=sample["description"],
            address=sample["address"],
            location=sample["location"].value,
            contact_number=sample["contact_number"],
            status=ShopStatus.ACTIVE.value,
            is_open=True,
        )
        shop.menu_items = [
            MenuItem(name=name, price=Decimal(price), is_available=True) for name, price in sample["items"]
        ]
        db.add(shop)
        db.commit()
        created += 1
        logger.info("%s sample shop created name=%s", BOOTSTRAP_PREFIX, shop.name)

    upsert_user(
        db,
        email="customer@wildeats.com",
        first_name="Sample",
        last_name="Customer",
        roles=[RoleName.CUSTOMER],
        password=password,
    )
    return created
