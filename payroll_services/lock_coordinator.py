"""
LockCoordinator -- period-wide payroll lock.

Responsibility:
    Moves every unlocked payroll record of a period (DRAFT, SUBMITTED or
    APPROVED) to LOCKED in a single conditional bulk UPDATE, stamping who
    locked it and when.

Architecture position:
    Services -- imperative shell over ``PayrollRecordStore``.
    Called by ``UnifiedPayrollService.lock_period`` and usable on its own
    inside ``session_scope()``.

Invariants enforced:
    - Flush-only: never commits or rolls back the session.
    - Atomic: the sweep is one statement; a record concurrently recomputed
      either gets locked with its new values or is not in the sweep.
    - Records already LOCKED or PAID are left untouched and not counted.

Failure modes:
    - InvalidPayrollPeriodError: month or year out of range.

Audit relevance:
    Every sweep logs the period, actor and number of records locked.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.logging_config import get_logger
from payroll_modules.compensation.helpers import validate_period
from payroll_modules.compensation.store import PayrollRecordStore

logger = get_logger("services.lock_coordinator")


class LockCoordinator:
    """Locks a payroll period."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._store = PayrollRecordStore(session, self._clock)

    def lock_period(self, month: int, year: int, actor_id: UUID) -> int:
        """
        Lock every unlocked record of (month, year).

        Returns:
            Number of records moved to LOCKED.
        """
        validate_period(month, year)
        locked = self._store.lock_period_records(month, year, actor_id)
        logger.info(
            "payroll_period_locked",
            extra={
                "period": f"{year}-{month:02d}",
                "actor_id": str(actor_id),
                "locked_count": locked,
            },
        )
        return locked
