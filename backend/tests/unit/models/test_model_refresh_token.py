"""Database-level guarantees of the refresh token table."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from sessionguard.models import RefreshToken

NOW = datetime(2030, 1, 1, tzinfo=UTC)


def _row(rid: str, **overrides) -> RefreshToken:
    fields = {
        "id": rid,
        "user_id": "1",
        "token_hash": f"h-{rid}",
        "device_id": None,
        "issued_at": NOW,
        "expires_at": NOW + timedelta(days=1),
    }
    fields.update(overrides)
    return RefreshToken(**fields)


def test_defaults_to_active(session):
    session.add(_row("a"))
    session.commit()
    row = session.get(RefreshToken, "a")
    assert row.status == "active"
    assert row.issued_at == NOW
    assert row.issued_at.tzinfo is not None


def test_token_hash_is_unique(session):
    session.add_all([_row("a"), _row("b", token_hash="h-a")])
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()


@pytest.mark.parametrize(
    "overrides",
    [
        {"status": "bogus"},
        {"status": "replaced"},  # no successor
        {"status": "active", "replaced_by": "b"},  # successor on a live record
        {"status": "revoked"},  # no timestamp/reason
        {"status": "active", "revoked_at": NOW, "revoked_reason": "logout"},
    ],
)
def test_status_consistency_is_enforced(session, overrides):
    session.add(_row("a", **overrides))
    with pytest.raises(IntegrityError):
        session.commit()
    session.rollback()


def test_consistent_terminal_states_are_accepted(session):
    session.add_all(
        [
            _row("a", status="replaced", replaced_by="b"),
            _row("b", status="revoked", revoked_at=NOW, revoked_reason="logout"),
        ]
    )
    session.commit()
    assert session.get(RefreshToken, "a").replaced_by == "b"
