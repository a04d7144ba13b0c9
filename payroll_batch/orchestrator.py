"""
BatchOrchestrator -- period-wide payroll run.

Contract:
    ``process_period_payroll(month, year, actor_id)`` runs the
    single-employee pipeline for every current employee on a bounded
    ``ThreadPoolExecutor`` and returns a ``BatchReport``.

Architecture: payroll_batch (top-level).  Composes
    ``UnifiedPayrollService`` per employee; nothing below imports it.

Invariants enforced:
    - One session per employee: each unit of work commits or rolls back
      on its own, so a failed employee leaves no record behind.
    - Failures are captured, never propagated: ``PayrollError`` subclasses
      report their ``code``, anything else ``UNHANDLED_EXCEPTION``.
    - Report items are ordered by employee code.
    - Re-running a period is safe: unlocked records are recomputed,
      locked ones are reported as ``PAYROLL_LOCKED`` failures.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from payroll_config.schema import PayrollPolicy
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.exceptions import PayrollError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules.compensation.helpers import validate_period
from payroll_modules.compensation.readers import (
    AttendanceReader,
    EmployeeMasterReader,
    SqlAttendanceReader,
    SqlEmployeeMasterReader,
    WithholdingSource,
)
from payroll_modules.compensation.service import UnifiedPayrollService

from payroll_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchReport,
)

logger = get_logger("batch.orchestrator")

UNHANDLED_EXCEPTION = "UNHANDLED_EXCEPTION"


class BatchOrchestrator:
    """Runs payroll for a whole period.

    Contract:
        - ``session_factory`` is called once to list employees and once per
          employee; every session it returns is closed by the orchestrator.
        - Reader factories receive the session they should read through.

    Non-goals:
        - Does NOT retry failed employees -- re-invoke the run instead.
        - Does NOT lock the period -- see ``LockCoordinator``.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        policy: PayrollPolicy,
        clock: Clock | None = None,
        employee_reader_factory: Callable[[Session], EmployeeMasterReader] = SqlEmployeeMasterReader,
        attendance_reader_factory: Callable[[Session], AttendanceReader] = SqlAttendanceReader,
        withholding: WithholdingSource | None = None,
        max_workers: int | None = None,
    ):
        self._session_factory = session_factory
        self._policy = policy
        self._clock = clock or SystemClock()
        self._employee_reader_factory = employee_reader_factory
        self._attendance_reader_factory = attendance_reader_factory
        self._withholding = withholding
        self._max_workers = (
            max_workers if max_workers is not None else policy.batch.max_workers
        )
        if self._max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self._max_workers}")

    @property
    def max_workers(self) -> int:
        return self._max_workers

    def process_period_payroll(self, month: int, year: int, actor_id: UUID) -> BatchReport:
        """Compute payroll for every current employee of (month, year).

        Raises:
            InvalidPayrollPeriodError: month or year out of range.  Nothing
                is processed in that case.
        """
        validate_period(month, year)
        batch_id = uuid4()
        start_time = time.monotonic()
        started_at = self._clock.now()

        with LogContext.bind(
            batch_id=str(batch_id),
            actor_id=str(actor_id),
            period=f"{year}-{month:02d}",
        ):
            codes = self._employee_codes()
            logger.info(
                "payroll_batch_started",
                extra={
                    "month": month,
                    "year": year,
                    "employee_count": len(codes),
                    "max_workers": self._max_workers,
                },
            )

            if self._max_workers == 1 or len(codes) <= 1:
                results = [
                    self._process_one(code, month, year, actor_id, batch_id) for code in codes
                ]
            else:
                with ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="payroll-batch",
                ) as pool:
                    results = list(
                        pool.map(
                            lambda code: self._process_one(code, month, year, actor_id, batch_id),
                            codes,
                        )
                    )

            items = tuple(sorted(results, key=lambda item: item.employee_code))
            succeeded = sum(1 for item in items if item.succeeded)
            failed = len(items) - succeeded
            report = BatchReport(
                batch_id=batch_id,
                month=month,
                year=year,
                status=BatchReport.status_for(succeeded, failed),
                total=len(items),
                succeeded=succeeded,
                failed=failed,
                items=items,
                started_at=started_at,
                completed_at=self._clock.now(),
                duration_ms=int((time.monotonic() - start_time) * 1000),
            )
            logger.info(
                "payroll_batch_completed",
                extra={
                    "month": month,
                    "year": year,
                    "status": report.status.value,
                    "total": report.total,
                    "succeeded": report.succeeded,
                    "failed": report.failed,
                    "duration_ms": report.duration_ms,
                },
            )
            return report

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _employee_codes(self) -> list[str]:
        session = self._session_factory()
        try:
            return sorted(self._employee_reader_factory(session).list_current_employee_codes())
        finally:
            session.close()

    def _process_one(
        self,
        employee_code: str,
        month: int,
        year: int,
        actor_id: UUID,
        batch_id: UUID,
    ) -> BatchItemResult:
        # Context variables do not cross into pool threads; rebind here.
        with LogContext.bind(batch_id=str(batch_id), actor_id=str(actor_id)):
            item_start = time.monotonic()
            session = self._session_factory()
            try:
                service = UnifiedPayrollService(
                    session,
                    employees=self._employee_reader_factory(session),
                    attendance=self._attendance_reader_factory(session),
                    policy=self._policy,
                    clock=self._clock,
                    withholding=self._withholding,
                )
                record = service.process_employee_payroll(employee_code, month, year, actor_id)
                return BatchItemResult(
                    employee_code=employee_code,
                    status=BatchItemStatus.SUCCEEDED,
                    record_id=record.id,
                    net_take_home=record.net_take_home,
                    duration_ms=int((time.monotonic() - item_start) * 1000),
                )
            except PayrollError as exc:
                return self._failed(employee_code, exc.code, exc, item_start)
            except Exception as exc:
                logger.exception(
                    "payroll_batch_item_crashed",
                    extra={"employee_code": employee_code, "month": month, "year": year},
                )
                return self._failed(employee_code, UNHANDLED_EXCEPTION, exc, item_start)
            finally:
                session.close()

    @staticmethod
    def _failed(
        employee_code: str, error_code: str, exc: Exception, item_start: float
    ) -> BatchItemResult:
        logger.warning(
            "payroll_batch_item_failed",
            extra={"employee_code": employee_code, "error_code": error_code},
        )
        return BatchItemResult(
            employee_code=employee_code,
            status=BatchItemStatus.FAILED,
            error_code=error_code,
            error_message=str(exc),
            duration_ms=int((time.monotonic() - item_start) * 1000),
        )
