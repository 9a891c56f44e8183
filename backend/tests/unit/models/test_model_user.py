"""Unit tests for the User model."""

from __future__ import annotations

import pytest

from sessionguard.models import User
from tests.factories.user import AdminFactory, UserFactory


def test_email_is_normalized(session):
    user = UserFactory(email="  Mixed@Example.COM ")
    assert user.email == "mixed@example.com"


def test_password_is_hashed_and_verifiable(session):
    user = UserFactory(password="hunter2!")
    assert user.password_hash != "hunter2!"
    assert user.verify_password("hunter2!")
    assert not user.verify_password("hunter3!")


def test_password_is_write_only():
    with pytest.raises(AttributeError):
        _ = User().password


@pytest.mark.parametrize("email", ["", "no-at-sign", "a@b"])
def test_invalid_email_rejected(email):
    with pytest.raises(ValueError):
        User(email=email)


def test_role_must_be_known():
    with pytest.raises(ValueError):
        User(role="superuser")


def test_is_admin(session):
    assert AdminFactory().is_admin
    assert not UserFactory().is_admin


@pytest.mark.parametrize("password", [None, "hunter2!"])
def test_factory_password_survives_rollback(session, password):
    kwargs = {"password": password} if password else {}
    user_id = UserFactory(**kwargs).id
    session.rollback()
    session.expire_all()

    stored = session.get(User, user_id)
    assert stored.verify_password(password or "Passw0rd!")
