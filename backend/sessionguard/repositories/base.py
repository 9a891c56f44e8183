"""Generic repository base for SQLAlchemy 2.x.

Persistence-only concerns shared by all repositories:
- Session resolution (injected Unit of Work session or Flask-scoped one).
- Primary-key lookups, with or without a row lock.
- Safe sorting with a whitelist mapping and a primary-key tiebreaker.
- No business logic, no commit/rollback; services own transactions.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from sessionguard.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


def parse_sort_tokens(raw: Iterable[str]) -> list[tuple[str, bool]]:
    """Parse public sort tokens (``["-issued_at", "id"]``) into ``(field, is_desc)``."""
    parsed: list[tuple[str, bool]] = []
    for token in raw:
        is_desc = token.startswith("-")
        field = (token[1:] if is_desc else token).strip()
        if field:
            parsed.append((field, is_desc))
    return parsed


def apply_sorting(
    stmt: Select[Any],
    sortable_fields: Mapping[str, InstrumentedAttribute[Any]],
    tokens: Iterable[str],
    *,
    pk_attr: InstrumentedAttribute[Any] | None,
) -> Select[Any]:
    """Apply whitelisted ``ORDER BY`` clauses.

    Unknown tokens are ignored. The primary key is appended as a final
    ascending tiebreaker so listings are deterministic.

    :param stmt: Base selectable.
    :param sortable_fields: Public field → ORM attribute mapping.
    :param tokens: Public sort tokens.
    :param pk_attr: Primary-key attribute used as a tiebreaker.
    :returns: Select with ``ORDER BY`` applied.
    """
    orders: list[Any] = []
    for field, is_desc in parse_sort_tokens(tokens):
        col = sortable_fields.get(field)
        if isinstance(col, InstrumentedAttribute):
            orders.append(col.desc() if is_desc else col.asc())
    if orders:
        stmt = stmt.order_by(*orders)
    if pk_attr is not None:
        stmt = stmt.order_by(pk_attr.asc())
    return stmt


class BaseRepository(Generic[E]):
    """Generic, persistence-only repository for a single aggregate.

    Subclasses MUST define ``model`` and MAY override ``_sortable_fields``.

    This class NEVER opens, commits or rolls back transactions.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Return the injected session, or the Flask-scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    def _pk_attr(self) -> InstrumentedAttribute[Any] | None:
        return getattr(self.model, "id", None)

    def _sortable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        return {}

    def _by_pk(self, entity_id: Any) -> Select[Any]:
        pk_attr = self._pk_attr()
        if pk_attr is None:
            raise RuntimeError(f"{type(self).__name__} requires a detectable PK attribute.")
        return select(self.model).where(pk_attr == entity_id)

    # --------------------------------- CRUD ----------------------------------

    def add(self, instance: E) -> E:
        """Stage a new entity and flush to materialize the PK."""
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        """Retrieve a single entity by primary key, refreshing stale state.

        :param entity_id: Primary-key value.
        :returns: Entity or ``None``.
        """
        stmt = self._by_pk(entity_id).execution_options(populate_existing=True)
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def get_for_update(self, entity_id: Any) -> E | None:
        """Retrieve an entity by PK with a ``FOR UPDATE`` lock (when supported)."""
        stmt = (
            self._by_pk(entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def list(
        self,
        *,
        sort: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[E]:
        """List entities with whitelisted sorting."""
        stmt = apply_sorting(
            select(self.model), self._sortable_fields(), sort or [], pk_attr=self._pk_attr()
        )
        if limit is not None:
            stmt = stmt.limit(int(limit))
        return cast(list[E], list(self.session.execute(stmt).scalars().all()))

    def flush(self) -> None:
        """Flush pending changes to the database without committing."""
        self.session.flush()
