from __future__ import annotations

import pytest

from app.core.errors import ForbiddenError, InvalidArgumentError, InvalidStateError, NotFoundError
from app.models.user import User
from app.services import users as user_service
from app.services.roles import RoleName, primary_role
from tests.fixtures_data import DEFAULT_PASSWORD


@pytest.mark.parametrize(
    "roles, expected",
    [
        ({"CUSTOMER", "SELLER", "ADMIN"}, "ADMIN"),
        ({"CUSTOMER", "SELLER"}, "SELLER"),
        ({"CUSTOMER"}, "CUSTOMER"),
        ({"AUDITOR", "CASHIER"}, "AUDITOR"),
        (set(), "CUSTOMER"),
        ([RoleName.SELLER, RoleName.CUSTOMER], "SELLER"),
    ],
)
def test_primary_role_follows_fixed_priority(roles, expected):
    assert primary_role(roles) == expected


def test_role_name_parse_accepts_spring_style_prefix():
    assert RoleName.parse("role_seller") is RoleName.SELLER
    with pytest.raises(ValueError):
        RoleName.parse("janitor")


def test_create_user_defaults_to_customer_role(db):
    user = user_service.create_user(db, email="ana@wildeats.com", password="pw123456", first_name="Ana")

    assert user.role_names == {"CUSTOMER"}
    assert user.password_hash != "pw123456"


def test_create_user_rejects_duplicate_email(db, make_user):
    make_user(email="dup@wildeats.com")

    with pytest.raises(InvalidArgumentError):
        user_service.create_user(db, email="dup@wildeats.com", password="x" * 6, first_name="Dup")


def test_register_splits_name_and_grants_seller_for_shop_prefix(db):
    customer = user_service.register_user(db, name="Juan Dela Cruz", email="juan@wildeats.com", password="secret1")
    seller = user_service.register_user(db, name="Kape", email="shop.kape@wildeats.com", password="secret1")

    assert (customer.first_name, customer.last_name) == ("Juan", "Dela Cruz")
    assert customer.role_names == {"CUSTOMER"}
    assert seller.role_names == {"SELLER", "CUSTOMER"}
    assert seller.last_name == ""


def test_add_and_remove_role(db, make_user):
    user = make_user()

    user_service.add_role(db, user.id, RoleName.ADMIN)
    assert primary_role(user_service.get_user(db, user.id).role_names) == "ADMIN"

    user_service.remove_role(db, user.id, "admin")
    assert user_service.get_user(db, user.id).role_names == {"CUSTOMER"}


def test_add_role_fails_for_unknown_user_or_role(db, make_user):
    user = make_user()

    with pytest.raises(NotFoundError):
        user_service.add_role(db, 9999, RoleName.SELLER)
    with pytest.raises(NotFoundError):
        user_service.add_role(db, user.id, "JANITOR")


def test_change_password_returns_false_on_mismatch(db, make_user):
    user = make_user()

    assert user_service.change_password(db, user.id, "wrong-password", "newsecret") is False
    assert user_service.authenticate(db, user.email, DEFAULT_PASSWORD) is not None

    assert user_service.change_password(db, user.id, DEFAULT_PASSWORD, "newsecret") is True
    assert user_service.authenticate(db, user.email, "newsecret") is not None
    assert user_service.authenticate(db, user.email, DEFAULT_PASSWORD) is None


def test_delete_account_requires_password(db, make_user):
    user = make_user()
    user_id = user.id

    assert user_service.delete_account(db, user_id, "nope") is False
    assert db.query(User).filter(User.id == user_id).first() is not None

    assert user_service.delete_account(db, user_id, DEFAULT_PASSWORD) is True
    assert db.query(User).filter(User.id == user_id).first() is None


def test_admin_cannot_delete_self(db, make_user):
    admin = make_user(RoleName.ADMIN)

    with pytest.raises(ForbiddenError):
        user_service.delete_user(db, admin.id, acting_user_id=admin.id)


def test_user_with_shop_cannot_be_deleted(db, make_user, make_shop):
    admin = make_user(RoleName.ADMIN)
    owner = make_user(RoleName.SELLER)
    make_shop(owner)

    with pytest.raises(InvalidStateError):
        user_service.delete_user(db, owner.id, acting_user_id=admin.id)


def test_update_profile_checks_email_uniqueness(db, make_user):
    make_user(email="taken@wildeats.com")
    user = make_user()

    with pytest.raises(InvalidArgumentError):
        user_service.update_profile(db, user.id, email="taken@wildeats.com")

    updated = user_service.update_profile(db, user.id, first_name="Maria", email="maria@wildeats.com")
    assert updated.first_name == "Maria"
    assert updated.email == "maria@wildeats.com"


def test_oauth_first_login_creates_customer_then_refreshes_avatar(db):
    created = user_service.get_or_create_oauth_user(
        db,
        email="google.user@gmail.com",
        first_name=None,
        last_name="Santos",
        avatar_url="https://img/1.png",
    )
    again = user_service.get_or_create_oauth_user(db, email="google.user@gmail.com", avatar_url="https://img/2.png")

    assert created.id == again.id
    assert created.first_name == "User"
    assert again.role_names == {"CUSTOMER"}
    assert again.avatar_url == "https://img/2.png"
    assert user_service.authenticate(db, "google.user@gmail.com", "") is None


def test_list_users_with_role(db, make_user):
    make_user()
    seller = make_user(RoleName.SELLER, RoleName.CUSTOMER)

    sellers = user_service.list_users_with_role(db, RoleName.SELLER)

    assert [u.id for u in sellers] == [seller.id]
