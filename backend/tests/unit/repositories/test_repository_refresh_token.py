"""Repository-level tests for the conditional updates behind the SQL store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from sessionguard.models import RefreshToken
from sessionguard.repositories import RefreshTokenRepository

NOW = datetime(2030, 1, 1, tzinfo=UTC)


@pytest.fixture()
def repo(session) -> RefreshTokenRepository:
    return RefreshTokenRepository(session=session)


def _add(repo, rid: str, *, user_id: str = "1", device_id: str | None = "d", offset: int = 0):
    return repo.add(
        RefreshToken(
            id=rid,
            user_id=user_id,
            token_hash=f"h-{rid}",
            device_id=device_id,
            issued_at=NOW + timedelta(seconds=offset),
            expires_at=NOW + timedelta(days=1),
        )
    )


def test_mark_replaced_if_active_is_single_shot(repo):
    _add(repo, "a")
    assert repo.mark_replaced_if_active("a", "b") is True
    assert repo.mark_replaced_if_active("a", "c") is False
    assert repo.get("a").replaced_by == "b"


def test_mark_replaced_unknown_row(repo):
    assert repo.mark_replaced_if_active("ghost", "b") is False


def test_predecessor_of(repo):
    _add(repo, "a")
    _add(repo, "b", offset=1)
    repo.mark_replaced_if_active("a", "b")
    assert repo.predecessor_of("b").id == "a"
    assert repo.predecessor_of("a") is None


def test_mark_revoked_counts_only_transitions(repo):
    _add(repo, "a")
    _add(repo, "b", offset=1)
    assert repo.mark_revoked(["a", "b"], reason="logout", now=NOW) == 2
    assert repo.mark_revoked(["a", "b", "ghost"], reason="logout", now=NOW) == 0
    assert repo.mark_revoked([], reason="logout", now=NOW) == 0
    assert repo.get("a").status == "revoked"


def test_exists_checks_id_and_hash(repo):
    _add(repo, "a")
    assert repo.exists("a", "other")
    assert repo.exists("other", "h-a")
    assert not repo.exists("other", "other")


def test_ids_for_device_handles_unbound_rows(repo):
    _add(repo, "a", device_id=None)
    _add(repo, "b", device_id="phone")
    _add(repo, "c", user_id="2", device_id=None)
    assert repo.ids_for_device("1", None) == ["a"]
    assert repo.ids_for_device("1", "phone") == ["b"]
    assert sorted(repo.ids_for_user("1")) == ["a", "b"]


def test_list_for_user_is_oldest_first(repo):
    _add(repo, "late", offset=10)
    _add(repo, "early", offset=0)
    assert [row.id for row in repo.list_for_user("1")] == ["early", "late"]
