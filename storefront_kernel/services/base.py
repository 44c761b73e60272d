"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service, plus the translation of store failures into
    the kernel's typed exceptions.  Services use ``session.flush()`` --
    never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Every service in ``storefront_kernel/services/`` extends this class.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback the outer transaction.
      Multi-row writes happen inside a savepoint so a failure leaves no
      partial rows behind.
    - Store errors are translated, logged and re-raised once.  Nothing in
      the kernel retries.

Failure modes:
    - ConflictError for unique-constraint collisions.
    - StoreTimeoutError for lock / statement / pool timeouts.
    - PersistenceFailedError for every other SQLAlchemy error.
"""

from abc import ABC
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import (
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from storefront_kernel.domain.clock import Clock, SystemClock
from storefront_kernel.domain.values import Principal
from storefront_kernel.exceptions import (
    ConflictError,
    PersistenceFailedError,
    StoreTimeoutError,
    UnauthorizedError,
)
from storefront_kernel.logging_config import get_logger

logger = get_logger("services.base")

# PostgreSQL: query_canceled (statement_timeout), lock_not_available
_PG_TIMEOUT_CODES = frozenset({"57014", "55P03"})
_SQLITE_TIMEOUT_MARKERS = ("database is locked", "database table is locked")


def _is_timeout(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, PoolTimeoutError):
        return True
    if not isinstance(exc, OperationalError):
        return False
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) in _PG_TIMEOUT_CODES:
        return True
    message = str(orig).lower()
    return any(marker in message for marker in _SQLITE_TIMEOUT_MARKERS)


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """
    Re-raise SQLAlchemy failures as kernel exceptions.

    Kernel exceptions raised inside the block pass through untouched.

    Usage:
        with translate_store_errors("place_order"):
            with session.begin_nested():
                ...
    """
    try:
        yield
    except IntegrityError as exc:
        logger.warning(
            "store_conflict",
            extra={"operation": operation, "error": str(exc.orig)},
        )
        raise ConflictError(resource=operation, reason=str(exc.orig)) from exc
    except SQLAlchemyError as exc:
        reason = str(getattr(exc, "orig", None) or exc)
        if _is_timeout(exc):
            logger.error(
                "store_timeout",
                extra={"operation": operation, "error": reason},
            )
            raise StoreTimeoutError(operation=operation, reason=reason) from exc
        logger.error(
            "store_operation_failed",
            extra={"operation": operation, "error": reason},
        )
        raise PersistenceFailedError(operation=operation, reason=reason) from exc


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Guarantees:
        - The service never calls ``session.commit()`` or rolls back the
          caller's transaction; only its own savepoints.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide list/report queries -- those belong in
          ``storefront_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        """
        Initialize the service.

        Preconditions:
            - ``session`` is a valid, open SQLAlchemy session.

        Args:
            session: SQLAlchemy session for database operations.
            clock: Time source for persisted timestamps.
        """
        self.session = session
        self._clock = clock or SystemClock()

    def _require_admin(self, principal: Principal, action: str) -> None:
        """Raise UnauthorizedError unless the principal carries the admin flag."""
        if principal is None or not principal.is_admin:
            actor = str(principal.actor_id) if principal is not None else "anonymous"
            logger.warning(
                "unauthorized_action_rejected",
                extra={"actor_id": actor, "action": action},
            )
            raise UnauthorizedError(actor_id=actor, action=action)

    def _expire_cached(self, model: type, pk, *attrs: str) -> None:
        """Expire an identity-map instance after a Core UPDATE changed its row."""
        cached = self.session.identity_map.get(identity_key(model, pk))
        if cached is not None:
            self.session.expire(cached, list(attrs) or None)
