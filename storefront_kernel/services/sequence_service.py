"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing sequence numbers (order numbers per
    store).  Uses a dedicated counter table with row-level locking
    (``SELECT ... FOR UPDATE``) to guarantee uniqueness and ordering under
    concurrent access.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by OrderSequencer.

Invariants enforced:
    - Sequence monotonicity: the locked counter row is the sole source of
      truth for the next value.  The SQL aggregate-max-plus-one pattern is
      FORBIDDEN for allocation.
    - Transactional: an increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and re-read).
    - Lock wait timeout: surfaces from the driver; the caller translates it.

Concurrency:
    PostgreSQL serializes on the row lock.  SQLite ignores FOR UPDATE, but
    every transaction there starts with BEGIN IMMEDIATE (db/engine.py), so
    the whole read-increment-write runs under the database write lock.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from storefront_kernel.db.base import Base
from storefront_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    Row-level locking ensures monotonicity under concurrency.
    """

    __tablename__ = "sequence_counters"

    # Sequence name (e.g., "order_number:default")
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )

    # Last value handed out
    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Contract:
        Accepts a sequence name and returns the next strictly increasing
        integer value.  The increment is committed only when the caller's
        transaction commits.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        with session.begin():
            seq = SequenceService(session).next_value("order_number:default", start=7000)
    """

    ORDER_NUMBER_PREFIX = "order_number"

    def __init__(self, session: Session):
        self._session = session

    @classmethod
    def order_number_sequence(cls, store_id: str) -> str:
        """Counter name used for a store's order numbers."""
        return f"{cls.ORDER_NUMBER_PREFIX}:{store_id}"

    def _lock_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str, start: int = 0) -> int:
        """
        Get the next value for a named sequence.

        1. Locks the sequence row (or creates it at ``start`` if absent)
        2. Increments the counter
        3. Returns the new value

        Preconditions:
            - ``sequence_name`` is a non-empty string.
            - ``start`` >= 0; it only matters when the counter is created.
            - The caller is within an active database transaction.

        Postconditions:
            - Returns an integer strictly greater than any previously
              returned value for this sequence name.
            - The counter row is locked until the transaction completes.
        """
        counter = self._lock_counter(sequence_name)

        if counter is None:
            # First use; another transaction may be creating it too.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=start + 1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.info(
                    "sequence_counter_created",
                    extra={"sequence_name": sequence_name, "start": start},
                )
                return counter.current_value
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._lock_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """
        Get the current value of a sequence without incrementing.

        Returns:
            Current value, or None if the sequence doesn't exist yet.
        """
        return self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
