from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.database import Base, get_db
from app.core.errors import install_error_handlers
from app.models.menu_item import MenuItem
from app.models.shop import Shop, ShopStatus
from app.routers.auth import router as auth_router
from app.routers.menu_items import router as menu_items_router
from app.routers.notifications import router as notifications_router
from app.routers.orders import router as orders_router
from app.routers.shops import router as shops_router
from app.routers.users import router as users_router
from app.services import event_handlers
from app.services import passwords
from app.services.bootstrap import ensure_default_roles
from app.services.roles import RoleName
from app.services.users import create_user
from tests.fixtures_data import DEFAULT_PASSWORD


@pytest.fixture(autouse=True)
def _fast_bcrypt(monkeypatch):
    # custo mínimo do bcrypt para a suíte não ficar lenta
    original_gensalt = passwords.bcrypt.gensalt
    monkeypatch.setattr(passwords.bcrypt, "gensalt", lambda rounds=4, prefix=b"2b": original_gensalt(4, prefix))


@pytest.fixture
def session_factory(monkeypatch):
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    # handlers do event bus abrem a própria sessão
    monkeypatch.setattr(event_handlers, "SessionLocal", TestingSessionLocal)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    ensure_default_roles(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(*roles: RoleName, email: str | None = None, password: str = DEFAULT_PASSWORD):
        counter["n"] += 1
        return create_user(
            db,
            email=email or f"user{counter['n']}@wildeats.com",
            password=password,
            first_name=f"User{counter['n']}",
            last_name="Test",
            role_names=list(roles) or None,
        )

    return _make


@pytest.fixture
def make_shop(db):
    def _make(owner, *, name="Coffee Haven", status=ShopStatus.ACTIVE, is_open=True):
        shop = Shop(
            owner_id=owner.id,
            name=name,
            description="",
            address="",
            location="MAIN_CANTEEN",
            contact_number="09171234567",
            status=status.value,
            is_open=is_open,
        )
        db.add(shop)
        db.commit()
        db.refresh(shop)
        return shop

    return _make


@pytest.fixture
def make_item(db):
    def _make(shop, *, name="Latte", price="120.00", is_available=True):
        item = MenuItem(shop_id=shop.id, name=name, price=Decimal(price), is_available=is_available)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    return _make


@pytest.fixture
def client(db) -> TestClient:
    api = FastAPI()
    install_error_handlers(api)
    for router in (
        auth_router,
        users_router,
        shops_router,
        menu_items_router,
        orders_router,
        notifications_router,
    ):
        api.include_router(router)
    api.dependency_overrides[get_db] = lambda: db
    return TestClient(api)
