"""User repository for persistence and credential checks."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from sessionguard.models.user import User
from sessionguard.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER issues tokens or touches refresh records; only DB-level user
    management and password verification.
    """

    model = User

    def _sortable_fields(self):
        return {
            "id": User.id,
            "email": User.email,
            "username": User.username,
            "created_at": User.created_at,
        }

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :returns: User instance or ``None`` when not found.
        """
        stmt = select(User).where(User.email == email.lower().strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email.lower().strip())
        return bool(self.session.execute(stmt).first())

    def create(
        self,
        *,
        email: str,
        username: str,
        password: str,
        role: str = "user",
        full_name: str | None = None,
    ) -> User:
        """Stage a new user with a hashed password and flush."""
        user = User(email=email, username=username, full_name=full_name, role=role)
        user.password = password
        return self.add(user)

    def authenticate(self, email: str, password: str) -> User | None:
        """Authenticate a user by email and password.

        :returns: Authenticated user or ``None`` when credentials fail.
        """
        user = self.get_by_email(email)
        if not user or not user.verify_password(password):
            return None
        return user
