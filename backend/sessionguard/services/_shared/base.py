# sessionguard/services/_shared/base.py
from __future__ import annotations

from sessionguard.core import errors as api_errors
from sessionguard.services._shared.errors import (
    AuthenticationError,
    ConcurrentRotationError,
    DuplicateIdError,
    NotFoundError,
    ServiceError,
    StoreUnavailableError,
)
from sessionguard.uow.sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork


def translate_exceptions(exc: Exception) -> Exception:
    """
    Map service-level errors to API-level (HTTP) errors.

    :param exc: Exception raised within a service.
    :returns: Translated exception ready to be raised or rendered.
    """
    if isinstance(exc, AuthenticationError):
        # → 401 with a Bearer challenge
        return api_errors.Unauthorized(exc.message, code=exc.code)

    if isinstance(exc, ConcurrentRotationError):
        # → 409, client retries the original request with the newer cookie
        return api_errors.Conflict(exc.message, code=exc.code)

    if isinstance(exc, StoreUnavailableError):
        # → 503 with Retry-After
        return api_errors.ServiceUnavailable(exc.message, code=exc.code)

    if isinstance(exc, NotFoundError):
        return api_errors.NotFound(str(exc))

    if isinstance(exc, DuplicateIdError):
        return api_errors.Conflict(exc.message, code=exc.code)

    # Any other ServiceError subclass → 400 Bad Request
    if isinstance(exc, ServiceError):
        return api_errors.APIError(message=exc.message, status_code=400, code=exc.code)

    # Fallback: return untouched (will bubble up to Flask handler)
    return exc


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide read-only units of work for queries; writes to refresh records
      go through the refresh store's own unit of work.
    * Keep services thin, orchestration-only, no web/ORM leakage.
    """

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        return SQLAlchemyReadOnlyUnitOfWork()
