# tests/unit/services/test_auth_service.py
from __future__ import annotations

import pytest

from sessionguard.core.wiring import get_auth
from sessionguard.services._shared.errors import (
    ConcurrentRotationError,
    ExpiredRefreshTokenError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    NotFoundError,
    ReuseDetectedError,
    RevokedRefreshTokenError,
)
from sessionguard.services._shared.ports import RefreshStatus
from sessionguard.services.auth.dto import LoginIn, LogoutIn, RefreshIn
from sessionguard.services.auth.service import load_identity
from sessionguard.services.rotation.dto import RotationOutcome, RotationStatus
from tests.factories.user import DEFAULT_PASSWORD, UserFactory


# ------------------------------ Fixtures ---------------------------------- #
@pytest.fixture()
def components(app, db):
    """Auth components wired by the app factory (SQLAlchemy refresh store)."""
    return get_auth(app)


@pytest.fixture()
def service(components):
    return components.auth


@pytest.fixture()
def user(db):
    return UserFactory(email="ana@example.com", username="ana", full_name="Ana")


# -------------------------------- Tests ----------------------------------- #
def test_login_issues_pair_and_persists_root(service, components, user):
    pair = service.login(LoginIn(email="ana@example.com", password=DEFAULT_PASSWORD, device_id="d1"))

    rec = components.store.get(pair.refresh.id)
    assert rec is not None
    assert rec.status is RefreshStatus.ACTIVE
    assert rec.user_id == str(user.id)
    assert rec.device_id == "d1"
    claims = components.tokens.codec.decode(pair.access.token)
    assert claims["sub"] == str(user.id)
    assert claims["name"] == "Ana"


def test_login_is_case_insensitive_on_email(service, user):
    assert service.login(LoginIn(email=" ANA@Example.com ", password=DEFAULT_PASSWORD))


@pytest.mark.parametrize(
    ("email", "password"),
    [("ana@example.com", "wrong"), ("nobody@example.com", DEFAULT_PASSWORD)],
)
def test_login_invalid_credentials(service, user, email, password):
    with pytest.raises(InvalidCredentialsError):
        service.login(LoginIn(email=email, password=password))


def test_refresh_rotates_and_reuse_revokes(service, components, user):
    t0 = service.login(LoginIn(email=user.email, password=DEFAULT_PASSWORD))
    t1 = service.refresh(RefreshIn(refresh_token=t0.refresh.raw))
    assert t1.refresh.raw != t0.refresh.raw

    with pytest.raises(ReuseDetectedError) as exc_info:
        service.refresh(RefreshIn(refresh_token=t0.refresh.raw))
    assert exc_info.value.revoked_count == 2

    with pytest.raises(RevokedRefreshTokenError):
        service.refresh(RefreshIn(refresh_token=t1.refresh.raw))
    assert components.store.get(t1.refresh.id).revoked_reason == "reuse-detected"


def test_refresh_with_unknown_token(service, db):
    with pytest.raises(InvalidRefreshTokenError):
        service.refresh(RefreshIn(refresh_token="nope"))


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (RotationStatus.INVALID_TOKEN, InvalidRefreshTokenError),
        (RotationStatus.EXPIRED_TOKEN, ExpiredRefreshTokenError),
        (RotationStatus.REVOKED_TOKEN, RevokedRefreshTokenError),
        (RotationStatus.CONCURRENT_ROTATION, ConcurrentRotationError),
    ],
)
def test_refresh_maps_outcomes_to_errors(service, monkeypatch, status, error):
    monkeypatch.setattr(service.engine, "rotate", lambda raw: RotationOutcome(status))
    with pytest.raises(error):
        service.refresh(RefreshIn(refresh_token="x"))


def test_repeated_logins_for_same_user(service, user):
    first = service.login(LoginIn(email=user.email, password=DEFAULT_PASSWORD, device_id="phone"))
    second = service.login(LoginIn(email=user.email, password=DEFAULT_PASSWORD, device_id="laptop"))
    assert first.refresh.id != second.refresh.id


def test_logout_revokes_only_current_device(service, components, user):
    phone = service.login(LoginIn(email=user.email, password=DEFAULT_PASSWORD, device_id="phone"))
    laptop = service.login(LoginIn(email=user.email, password=DEFAULT_PASSWORD, device_id="laptop"))

    assert service.logout(LogoutIn(user_id=str(user.id), device_id="phone")) == 1
    assert components.store.get(phone.refresh.id).status is RefreshStatus.REVOKED
    assert components.store.get(laptop.refresh.id).status is RefreshStatus.ACTIVE


def test_logout_all_sessions(service, components, user):
    for device in ("phone", "laptop"):
        service.login(LoginIn(email=user.email, password=DEFAULT_PASSWORD, device_id=device))

    assert service.logout(LogoutIn(user_id=str(user.id), all_sessions=True)) == 2
    assert service.list_sessions(str(user.id)) == []


def test_revoke_user_sessions_requires_existing_user(service, db):
    with pytest.raises(NotFoundError):
        service.revoke_user_sessions("999")


def test_whoami(service, user):
    out = service.whoami(str(user.id))
    assert out.email == "ana@example.com"
    assert out.role == "user"
    with pytest.raises(NotFoundError):
        service.whoami("999")


def test_list_sessions_shows_live_records_only(service, user):
    t0 = service.login(LoginIn(email=user.email, password=DEFAULT_PASSWORD, device_id="phone"))
    t1 = service.refresh(RefreshIn(refresh_token=t0.refresh.raw))

    sessions = service.list_sessions(str(user.id))
    assert [s.id for s in sessions] == [t1.refresh.id]
    assert sessions[0].device_id == "phone"


def test_load_identity(user, db):
    identity = load_identity(str(user.id))
    assert identity.user_id == str(user.id)
    assert identity.email == "ana@example.com"
    assert load_identity("999") is None
    assert load_identity("not-a-number") is None
