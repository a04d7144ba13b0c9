"""
PayrollRecordStore (``payroll_modules.compensation.store``).

Responsibility:
    The only writer of payroll records and manual adjustments.  Every write
    is a guarded conditional UPDATE (id + version + status filter) or a
    uniquely-keyed INSERT, so concurrent recomputes, transitions and lock
    sweeps fail loudly instead of overwriting each other.

Architecture position:
    **Modules layer** -- persistence.  Flushes but never commits; the
    calling service owns the transaction boundary.

Invariants enforced:
    - At most one record per (employee_code, month, year).  A racing insert
      surfaces as ``OptimisticLockError``.
    - LOCKED and PAID records are never recomputed (``PayrollLockedError``).
    - Status moves only along ``PAYROLL_RECORD_WORKFLOW``.
    - ``version`` increases by one on every write to a record.
    - Manual adjustments are appended, never updated; the computed column
      they correct is left untouched.

Failure modes:
    - ``PayrollRecordNotFoundError`` -- no record for the key.
    - ``PayrollLockedError`` -- write attempted on LOCKED/PAID.
    - ``OptimisticLockError`` -- version or status moved underneath us.
    - ``InvalidStatusTransitionError`` -- illegal workflow move.
    - ``InvalidAdjustmentError`` -- bad field, value or reason.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.values import ZERO, round_money, to_decimal
from payroll_kernel.exceptions import (
    InvalidAdjustmentError,
    InvalidStatusTransitionError,
    OptimisticLockError,
    PayrollLockedError,
    PayrollRecordNotFoundError,
)
from payroll_kernel.logging_config import get_logger
from payroll_modules.compensation.models import (
    ADJUSTABLE_FIELDS,
    FROZEN_STATUSES,
    ManualAdjustment,
    PayrollRecord,
    PayrollStatus,
)
from payroll_modules.compensation.orm import ManualAdjustmentModel, PayrollRecordModel
from payroll_modules.compensation.workflows import (
    ACTION_APPROVE,
    ACTION_LOCK,
    ACTION_MARK_PAID,
    ACTION_RECOMPUTE,
    ACTION_SUBMIT,
    next_status,
    statuses_allowing,
)

logger = get_logger("modules.compensation.store")

_FROZEN_VALUES = tuple(s.value for s in FROZEN_STATUSES)

# Workflow action -> (target status, actor column, timestamp column)
_ACTION_COLUMNS = {
    ACTION_SUBMIT: (PayrollStatus.SUBMITTED, "submitted_by_id", "submitted_at"),
    ACTION_APPROVE: (PayrollStatus.APPROVED, "approved_by_id", "approved_at"),
    ACTION_LOCK: (PayrollStatus.LOCKED, "locked_by_id", "locked_at"),
    ACTION_MARK_PAID: (PayrollStatus.PAID, "paid_by_id", "paid_at"),
}


def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Enums to their stored string values."""
    return {k: (v.value if hasattr(v, "value") else v) for k, v in fields.items()}


class PayrollRecordStore:
    """
    Guarded persistence for payroll records.

    Contract:
        Every mutating method flushes and returns the fresh DTO.  Callers
        commit or roll back.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _find_model(self, employee_code: str, month: int, year: int) -> PayrollRecordModel | None:
        return self._session.scalars(
            select(PayrollRecordModel).where(
                PayrollRecordModel.employee_code == employee_code,
                PayrollRecordModel.month == month,
                PayrollRecordModel.year == year,
            )
        ).one_or_none()

    def _require_model(self, employee_code: str, month: int, year: int) -> PayrollRecordModel:
        model = self._find_model(employee_code, month, year)
        if model is None:
            raise PayrollRecordNotFoundError(employee_code, month, year)
        return model

    def _to_dto(self, model: PayrollRecordModel) -> PayrollRecord:
        return model.to_dto(self.list_adjustments(model.id))

    def get(self, employee_code: str, month: int, year: int) -> PayrollRecord | None:
        model = self._find_model(employee_code, month, year)
        if model is None:
            return None
        return self._to_dto(model)

    def require(self, employee_code: str, month: int, year: int) -> PayrollRecord:
        return self._to_dto(self._require_model(employee_code, month, year))

    def list_period(
        self,
        month: int,
        year: int,
        statuses: Sequence[PayrollStatus] | None = None,
    ) -> list[PayrollRecord]:
        """All records of a period, ordered by employee code."""
        stmt = select(PayrollRecordModel).where(
            PayrollRecordModel.month == month,
            PayrollRecordModel.year == year,
        )
        if statuses:
            stmt = stmt.where(PayrollRecordModel.status.in_([s.value for s in statuses]))
        models = self._session.scalars(stmt.order_by(PayrollRecordModel.employee_code)).all()
        if not models:
            return []

        grouped: dict[UUID, list[ManualAdjustment]] = defaultdict(list)
        adjustments = self._session.scalars(
            select(ManualAdjustmentModel)
            .where(ManualAdjustmentModel.payroll_record_id.in_([m.id for m in models]))
            .order_by(ManualAdjustmentModel.payroll_record_id, ManualAdjustmentModel.sequence)
        ).all()
        for adj in adjustments:
            grouped[adj.payroll_record_id].append(adj.to_dto())
        return [m.to_dto(grouped.get(m.id, ())) for m in models]

    def list_adjustments(self, record_id: UUID) -> list[ManualAdjustment]:
        models = self._session.scalars(
            select(ManualAdjustmentModel)
            .where(ManualAdjustmentModel.payroll_record_id == record_id)
            .order_by(ManualAdjustmentModel.sequence)
        ).all()
        return [m.to_dto() for m in models]

    # ------------------------------------------------------------------
    # Computation writes
    # ------------------------------------------------------------------

    def save_computation(
        self,
        employee_code: str,
        month: int,
        year: int,
        fields: dict[str, Any],
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> PayrollRecord:
        """
        Insert or overwrite the computed record for an employee-period.

        ``fields`` carries every snapshot and computed column.  An existing
        record returns to DRAFT, loses its submit/approve stamps and has
        its version bumped.
        """
        now = self._clock.now()
        values = _column_values(fields)
        existing = self._find_model(employee_code, month, year)

        if existing is None:
            if expected_version is not None:
                raise OptimisticLockError("PayrollRecord", f"{employee_code}/{month}/{year}")
            model = PayrollRecordModel(
                id=uuid4(),
                employee_code=employee_code,
                month=month,
                year=year,
                status=PayrollStatus.DRAFT.value,
                version=1,
                computed_by_id=actor_id,
                computed_at=now,
                created_by_id=actor_id,
                **values,
            )
            self._session.add(model)
            try:
                self._session.flush()
            except IntegrityError as exc:
                logger.warning(
                    "payroll_record_insert_conflict",
                    extra={"employee_code": employee_code, "month": month, "year": year},
                )
                raise OptimisticLockError(
                    "PayrollRecord", f"{employee_code}/{month}/{year}"
                ) from exc
            logger.info(
                "payroll_record_created",
                extra={
                    "employee_code": employee_code,
                    "month": month,
                    "year": year,
                    "record_id": str(model.id),
                },
            )
            return model.to_dto()

        current = PayrollStatus(existing.status)
        if next_status(current, ACTION_RECOMPUTE) is None:
            raise PayrollLockedError(employee_code, month, year, current.value)
        if expected_version is not None and expected_version != existing.version:
            raise OptimisticLockError("PayrollRecord", str(existing.id))

        read_version = existing.version
        stmt = (
            update(PayrollRecordModel)
            .where(
                PayrollRecordModel.id == existing.id,
                PayrollRecordModel.version == read_version,
                PayrollRecordModel.status.notin_(_FROZEN_VALUES),
            )
            .values(
                status=PayrollStatus.DRAFT.value,
                version=read_version + 1,
                computed_by_id=actor_id,
                computed_at=now,
                submitted_by_id=None,
                submitted_at=None,
                approved_by_id=None,
                approved_at=None,
                updated_by_id=actor_id,
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        if result.rowcount == 0:
            self._raise_write_conflict(existing, employee_code, month, year)

        self._session.expire(existing)
        logger.info(
            "payroll_record_recomputed",
            extra={
                "employee_code": employee_code,
                "month": month,
                "year": year,
                "record_id": str(existing.id),
                "version": read_version + 1,
                "previous_status": current.value,
            },
        )
        return self._to_dto(existing)

    def _raise_write_conflict(
        self, model: PayrollRecordModel, employee_code: str, month: int, year: int
    ) -> None:
        """A guarded UPDATE touched nothing: tell locked apart from stale."""
        self._session.expire(model)
        status = model.status
        if status in _FROZEN_VALUES:
            raise PayrollLockedError(employee_code, month, year, status)
        raise OptimisticLockError("PayrollRecord", str(model.id))

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def transition(
        self,
        employee_code: str,
        month: int,
        year: int,
        action: str,
        actor_id: UUID,
        expected_version: int | None = None,
    ) -> PayrollRecord:
        """Move a record along the workflow (submit, approve, mark_paid)."""
        target_status, by_column, at_column = _ACTION_COLUMNS[action]
        model = self._require_model(employee_code, month, year)
        current = PayrollStatus(model.status)

        target = next_status(current, action)
        if target is None:
            raise InvalidStatusTransitionError(
                employee_code, current.value, target_status.value
            )
        if expected_version is not None and expected_version != model.version:
            raise OptimisticLockError("PayrollRecord", str(model.id))

        read_version = model.version
        result = self._session.execute(
            update(PayrollRecordModel)
            .where(
                PayrollRecordModel.id == model.id,
                PayrollRecordModel.version == read_version,
                PayrollRecordModel.status == current.value,
            )
            .values(
                status=target.value,
                version=read_version + 1,
                updated_by_id=actor_id,
                **{by_column: actor_id, at_column: self._clock.now()},
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._session.expire(model)
            raise OptimisticLockError("PayrollRecord", str(model.id))

        self._session.expire(model)
        logger.info(
            "payroll_record_transitioned",
            extra={
                "employee_code": employee_code,
                "month": month,
                "year": year,
                "action": action,
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return self._to_dto(model)

    def lock_period_records(self, month: int, year: int, actor_id: UUID) -> int:
        """
        Lock every unlocked record of the period in one conditional UPDATE.

        Records already LOCKED or PAID are untouched.  Returns the number
        of records moved to LOCKED.
        """
        lockable = [s.value for s in statuses_allowing(ACTION_LOCK)]
        result = self._session.execute(
            update(PayrollRecordModel)
            .where(
                PayrollRecordModel.month == month,
                PayrollRecordModel.year == year,
                PayrollRecordModel.status.in_(lockable),
            )
            .values(
                status=PayrollStatus.LOCKED.value,
                locked_by_id=actor_id,
                locked_at=self._clock.now(),
                version=PayrollRecordModel.version + 1,
                updated_by_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        self._session.expire_all()
        return result.rowcount

    # ------------------------------------------------------------------
    # Manual adjustments
    # ------------------------------------------------------------------

    def append_adjustment(
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
        Record a manual correction of one computed field.

        Allowed in every status.  ``old_value`` is the field's effective
        value before this adjustment.
        """
        if field_name not in ADJUSTABLE_FIELDS:
            raise InvalidAdjustmentError(field_name, "not an adjustable payroll field")
        if not reason or not reason.strip():
            raise InvalidAdjustmentError(field_name, "reason is required")
        try:
            amount = round_money(to_decimal(new_value, field_name))
        except ValueError as exc:
            raise InvalidAdjustmentError(field_name, str(exc)) from exc
        if amount < ZERO:
            raise InvalidAdjustmentError(field_name, f"value cannot be negative ({amount})")

        record = self.require(employee_code, month, year)
        old_value = record.effective_value(field_name)
        sequence = (
            self._session.scalar(
                select(func.count())
                .select_from(ManualAdjustmentModel)
                .where(ManualAdjustmentModel.payroll_record_id == record.id)
            )
            or 0
        ) + 1

        adjustment = ManualAdjustment(
            id=uuid4(),
            payroll_record_id=record.id,
            field_name=field_name,
            old_value=old_value,
            new_value=amount,
            reason=reason.strip(),
            actor_id=actor_id,
            adjusted_at=self._clock.now(),
        )
        self._session.add(ManualAdjustmentModel.from_dto(adjustment, sequence=sequence))
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise OptimisticLockError("ManualAdjustment", str(record.id)) from exc

        logger.info(
            "payroll_adjustment_appended",
            extra={
                "employee_code": employee_code,
                "month": month,
                "year": year,
                "field": field_name,
                "old_value": str(old_value),
                "new_value": str(amount),
                "record_status": record.status.value,
            },
        )
        return adjustment
