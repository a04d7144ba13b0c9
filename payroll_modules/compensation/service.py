"""
Unified Payroll Service (``payroll_modules.compensation.service``).

Responsibility
--------------
Orchestrates single-employee payroll computation and the payroll record
lifecycle -- compute/recompute, submit, approve, lock, mark paid, manual
adjustment, replay verification and period reporting -- by delegating pure
computation to ``payroll_engines`` and persistence to
``PayrollRecordStore``.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``UnifiedPayrollService`` is the public
entry point for single-session payroll operations.  Period-wide runs go
through ``payroll_batch.BatchOrchestrator``, which builds one service per
employee on its own session.

Invariants enforced
-------------------
* Each public mutating method owns the transaction boundary (``commit`` on
  success, ``rollback`` then re-raise on any exception).
* Computation reads only APPROVED or LOCKED attendance and the single
  current master record.
* LOCKED and PAID records are never recomputed.
* Recomputation of identical inputs yields identical amounts.

Failure modes
-------------
* ``NotFoundError`` subclasses -- missing employee, attendance or record.
* ``NotApprovedError`` -- attendance not yet approved.
* ``ValidationError`` subclasses -- bad period, attendance, compensation,
  rules or adjustment.
* ``ConflictError`` subclasses -- locked record, illegal transition, or a
  concurrent writer got there first.
* ``ComputationError`` -- zero-day attendance period.

Audit relevance
---------------
Every failure is logged with employee_code, month, year and error code.
Records carry their input snapshot and the policy checksum, so
``verify_payroll_record`` can prove a stored record still matches what the
engines produce.

Usage::

    service = UnifiedPayrollService(
        session,
        employees=SqlEmployeeMasterReader(session),
        attendance=SqlAttendanceReader(session),
        policy=get_active_policy(),
    )
    record = service.process_employee_payroll("EMP-001", 3, 2025, actor_id)
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from payroll_config import default_policy
from payroll_config.schema import PayrollPolicy
from payroll_engines.components import SalesDeductionPolicy
from payroll_engines.pipeline import CompensationPipeline
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.exceptions import PayrollError, PayrollLockedError, PayrollRecordNotFoundError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_modules.compensation.helpers import (
    build_inputs,
    inputs_from_record,
    record_fields,
    validate_period,
)
from payroll_modules.compensation.models import (
    REPORTABLE_STATUSES,
    ManualAdjustment,
    PayrollRecord,
    PayrollStatus,
    PayrollVerification,
    PerformanceBucket,
    PeriodSummary,
)
from payroll_modules.compensation.readers import (
    AttendanceReader,
    EmployeeMasterReader,
    WithholdingSource,
    ZeroWithholding,
)
from payroll_modules.compensation.selectors import PayrollReportSelector
from payroll_modules.compensation.store import PayrollRecordStore
from payroll_modules.compensation.workflows import (
    ACTION_APPROVE,
    ACTION_MARK_PAID,
    ACTION_SUBMIT,
)
from payroll_services.lock_coordinator import LockCoordinator

logger = get_logger("modules.compensation.service")

T = TypeVar("T")


class UnifiedPayrollService:
    """
    Computes and manages unified payroll records.

    Contract
    --------
    * Mutating methods return the fresh DTO and commit; on any exception the
      session is rolled back and the exception re-raised unchanged.
    * Read methods never commit.

    Non-goals
    ---------
    * Does NOT retry on conflicts; callers decide.
    * Does NOT edit master data or attendance.
    """

    def __init__(
        self,
        session: Session,
        employees: EmployeeMasterReader,
        attendance: AttendanceReader,
        policy: PayrollPolicy | None = None,
        clock: Clock | None = None,
        withholding: WithholdingSource | None = None,
    ):
        self._session = session
        self._employees = employees
        self._attendance = attendance
        self._policy = policy or default_policy()
        self._clock = clock or SystemClock()
        self._withholding = withholding or ZeroWithholding()
        self._pipeline = self._policy.pipeline()
        self._store = PayrollRecordStore(session, self._clock)
        self._selector = PayrollReportSelector(session)

    @property
    def policy(self) -> PayrollPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Transaction boundary
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        employee_code: str | None,
        month: int,
        year: int,
        work: Callable[[], T],
    ) -> T:
        """Run ``work`` in this service's unit of work: commit or roll back."""
        try:
            result = work()
            self._session.commit()
            return result
        except PayrollError as exc:
            self._session.rollback()
            logger.warning(
                "payroll_operation_failed",
                extra={
                    "operation": operation,
                    "employee_code": employee_code,
                    "month": month,
                    "year": year,
                    "error_code": exc.code,
                    "error": str(exc),
                },
            )
            raise
        except Exception:
            self._session.rollback()
            logger.exception(
                "payroll_operation_error",
                extra={
                    "operation": operation,
                    "employee_code": employee_code,
                    "month": month,
                    "year": year,
                    "error_code": "UNHANDLED_EXCEPTION",
                },
            )
            raise

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def process_employee_payroll(
        self,
        employee_code: str,
        month: int,
        year: int,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> PayrollRecord:
        """
        Compute (or recompute) payroll for one employee-period.

        Creates a DRAFT record, or overwrites an unlocked one and returns it
        to DRAFT with its version bumped.

        Raises:
            EmployeeNotFoundError, AttendanceNotFoundError,
            AttendanceNotApprovedError, InvalidPayrollPeriodError,
            InvalidAttendanceError, InvalidCompensationError,
            InvalidPeriodError, PayrollLockedError, OptimisticLockError.
        """

        def work() -> PayrollRecord:
            validate_period(month, year)
            logger.info(
                "payroll_computation_started",
                extra={"employee_code": employee_code, "month": month, "year": year},
            )
            existing = self._store.get(employee_code, month, year)
            if existing is not None and existing.is_frozen:
                raise PayrollLockedError(employee_code, month, year, existing.status.value)

            employee = self._employees.get_current_employee(employee_code)
            attendance = self._attendance.get_approved_attendance(employee_code, month, year)
            tds = self._withholding.tds_for(employee, month, year)

            inputs = build_inputs(employee, attendance, self._policy, tds)
            breakdown = self._pipeline.compute(inputs)
            record = self._store.save_computation(
                employee_code,
                month,
                year,
                record_fields(employee, inputs, breakdown, self._policy),
                actor_id=actor_id,
                expected_version=expected_version,
            )
            logger.info(
                "payroll_computation_completed",
                extra={
                    "employee_code": employee_code,
                    "month": month,
                    "year": year,
                    "record_id": str(record.id),
                    "version": record.version,
                    "adjusted_gross": str(record.adjusted_gross),
                    "net_take_home": str(record.net_take_home),
                    "monthly_ctc": str(record.monthly_ctc),
                    "performance_status": record.performance_status.value,
                },
            )
            return record

        with LogContext.bind(
            employee_code=employee_code,
            period=_period_label(month, year),
            actor_id=str(actor_id),
        ):
            return self._run("process_employee_payroll", employee_code, month, year, work)

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def _transition(
        self,
        action: str,
        employee_code: str,
        month: int,
        year: int,
        actor_id: UUID,
        expected_version: int | None,
    ) -> PayrollRecord:
        def work() -> PayrollRecord:
            validate_period(month, year)
            return self._store.transition(
                employee_code, month, year, action, actor_id, expected_version
            )

        with LogContext.bind(
            employee_code=employee_code,
            period=_period_label(month, year),
            actor_id=str(actor_id),
        ):
            return self._run(action, employee_code, month, year, work)

    def submit_payroll(
        self,
        employee_code: str,
        month: int,
        year: int,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> PayrollRecord:
        """DRAFT -> SUBMITTED."""
        return self._transition(
            ACTION_SUBMIT, employee_code, month, year, actor_id, expected_version
        )

    def approve_payroll(
        self,
        employee_code: str,
        month: int,
        year: int,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> PayrollRecord:
        """SUBMITTED -> APPROVED."""
        return self._transition(
            ACTION_APPROVE, employee_code, month, year, actor_id, expected_version
        )

    def mark_paid(
        self,
        employee_code: str,
        month: int,
        year: int,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> PayrollRecord:
        """LOCKED -> PAID."""
        return self._transition(
            ACTION_MARK_PAID, employee_code, month, year, actor_id, expected_version
        )

    def lock_period(self, month: int, year: int, actor_id: UUID) -> int:
        """Lock every unlocked record of the period.  Returns the count locked."""
        coordinator = LockCoordinator(self._session, self._clock)
        with LogContext.bind(period=_period_label(month, year), actor_id=str(actor_id)):
            return self._run(
                "lock_period",
                None,
                month,
                year,
                lambda: coordinator.lock_period(month, year, actor_id),
            )

    # ------------------------------------------------------------------
    # Manual adjustments
    # ------------------------------------------------------------------

    def adjust_payroll_field(
        self,
        employee_code: str,
        month: int,
        year: int,
        field_name: str,
        new_value: Decimal,
        reason: str,
        actor_id: UUID,
    ) -> ManualAdjustment:
        """
        Append a manual correction.  Allowed in every status, including
        LOCKED and PAID; the computed value itself is never changed.
        """

        def work() -> ManualAdjustment:
            validate_period(month, year)
            return self._store.append_adjustment(
                employee_code, month, year, field_name, new_value, reason, actor_id
            )

        with LogContext.bind(
            employee_code=employee_code,
            period=_period_label(month, year),
            actor_id=str(actor_id),
        ):
            return self._run("adjust_payroll_field", employee_code, month, year, work)

    def get_payroll_adjustments(
        self, employee_code: str, month: int, year: int
    ) -> list[ManualAdjustment]:
        return list(self.get_employee_payroll(employee_code, month, year).adjustments)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_employee_payroll(self, employee_code: str, month: int, year: int) -> PayrollRecord:
        """
        Raises:
            PayrollRecordNotFoundError: no record for the employee-period.
        """
        validate_period(month, year)
        record = self._store.get(employee_code, month, year)
        if record is None:
            raise PayrollRecordNotFoundError(employee_code, month, year)
        return record

    def list_period_payroll(
        self,
        month: int,
        year: int,
        statuses: Sequence[PayrollStatus] | None = None,
    ) -> list[PayrollRecord]:
        validate_period(month, year)
        return self._store.list_period(month, year, statuses)

    def get_period_summary(
        self,
        month: int,
        year: int,
        statuses: Sequence[PayrollStatus] = REPORTABLE_STATUSES,
    ) -> PeriodSummary:
        """Totals over APPROVED, LOCKED and PAID records unless told otherwise."""
        validate_period(month, year)
        return self._selector.period_summary(
            month, year, statuses, generated_at=self._clock.now()
        )

    def get_performance_analytics(
        self,
        month: int,
        year: int,
        statuses: Sequence[PayrollStatus] = REPORTABLE_STATUSES,
    ) -> list[PerformanceBucket]:
        validate_period(month, year)
        return self._selector.performance_analytics(month, year, statuses)

    def verify_payroll_record(
        self, employee_code: str, month: int, year: int
    ) -> PayrollVerification:
        """
        Replay a stored record from its own snapshot and compare amounts.

        Every rate and ratio comes from the record itself.  A policy
        checksum that differs from the one stamped on the record is
        reported alongside.
        """
        record = self.get_employee_payroll(employee_code, month, year)
        inputs = inputs_from_record(record)
        pipeline = CompensationPipeline(
            statutory_rates=record.statutory_rates,
            incentive_ceiling_factor=record.incentive_ceiling_factor,
            sales_deduction_policy=SalesDeductionPolicy(record.sales_deduction_policy),
        )
        replayed = pipeline.compute(inputs).as_fields()

        mismatches = {}
        for name, value in replayed.items():
            stored = getattr(record, name)
            if stored != value:
                mismatches[name] = (str(stored), str(value))

        verification = PayrollVerification(
            record_id=record.id,
            employee_code=employee_code,
            month=month,
            year=year,
            matches=not mismatches,
            mismatches=mismatches,
            policy_checksum_matches=record.policy_checksum == self._policy.checksum,
        )
        log = logger.info if verification.matches else logger.warning
        log(
            "payroll_record_verified",
            extra={
                "employee_code": employee_code,
                "month": month,
                "year": year,
                "matches": verification.matches,
                "mismatched_fields": sorted(mismatches),
                "policy_checksum_matches": verification.policy_checksum_matches,
            },
        )
        return verification


def _period_label(month: object, year: object) -> str:
    return f"{year}-{month:02d}" if isinstance(month, int) else f"{year}-{month}"
