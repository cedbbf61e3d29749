from __future__ import annotations

from app.models.shop import Shop, ShopStatus
from app.models.user import Role
from app.services import bootstrap
from app.services import menu as menu_service
from app.services.users import authenticate


def test_default_roles_are_idempotent(db):
    assert bootstrap.ensure_default_roles(db) == []
    assert sorted(role.name for role in db.query(Role).all()) == ["ADMIN", "CUSTOMER", "SELLER"]


def test_bootstrap_admin_requires_password(db):
    assert bootstrap.bootstrap_admin(db, email="admin@wildeats.com", password="") is None


def test_bootstrap_admin_keeps_existing_password(db):
    admin = bootstrap.bootstrap_admin(db, email="admin@wildeats.com", password="first-pass")
    again = bootstrap.bootstrap_admin(db, email="admin@wildeats.com", password="second-pass")

    assert again.id == admin.id
    assert {"ADMIN", "CUSTOMER"} <= admin.role_names
    assert authenticate(db, "admin@wildeats.com", "first-pass") is not None
    assert authenticate(db, "admin@wildeats.com", "second-pass") is None


def test_sample_data_creates_operational_shops_once(db):
    assert bootstrap.seed_sample_data(db, password="password123") == 2
    assert bootstrap.seed_sample_data(db, password="password123") == 0

    shops = db.query(Shop).order_by(Shop.name).all()
    assert [shop.name for shop in shops] == ["Coffee Haven", "Rice Bowl Express"]
    assert all(shop.status == ShopStatus.ACTIVE.value and shop.is_open for shop in shops)
    assert "SELLER" in shops[0].owner.role_names
    assert menu_service.count_available_items(db, shops[0].id) == 3
    assert authenticate(db, "customer@wildeats.com", "password123") is not None
