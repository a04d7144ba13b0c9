"""
Collaborator readers (``payroll_modules.compensation.readers``).

Responsibility:
    Read-only access to the data payroll consumes but does not own:
    the employee master, approved attendance and tax withholding.  Each
    collaborator is a ``Protocol`` with a SQL-backed implementation (over
    the ORM models in ``orm.py``) and an in-memory implementation for
    tests and embedding.

Invariants enforced:
    - Exactly one current master record per employee code; zero raises
      ``EmployeeNotFoundError``, more than one raises
      ``DuplicateCurrentEmployeeError``.
    - Only APPROVED or LOCKED attendance is returned; anything else
      raises ``AttendanceNotApprovedError``.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_kernel.domain.values import ZERO
from payroll_kernel.exceptions import (
    AttendanceNotApprovedError,
    AttendanceNotFoundError,
    DuplicateCurrentEmployeeError,
    EmployeeNotFoundError,
)
from payroll_kernel.logging_config import get_logger
from payroll_modules.compensation.models import (
    AttendanceRecord,
    EmployeeMaster,
)
from payroll_modules.compensation.orm import AttendanceRecordModel, EmployeeMasterModel

logger = get_logger("modules.compensation.readers")


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class EmployeeMasterReader(Protocol):
    def get_current_employee(self, employee_code: str) -> EmployeeMaster: ...

    def list_current_employee_codes(self) -> list[str]: ...


@runtime_checkable
class AttendanceReader(Protocol):
    def get_approved_attendance(
        self, employee_code: str, month: int, year: int
    ) -> AttendanceRecord: ...


@runtime_checkable
class WithholdingSource(Protocol):
    """Supplies TDS for an employee-period."""

    def tds_for(self, employee: EmployeeMaster, month: int, year: int) -> Decimal: ...


def _check_usable(record: AttendanceRecord) -> AttendanceRecord:
    if not record.status.is_usable:
        raise AttendanceNotApprovedError(
            record.employee_code, record.month, record.year, record.status.value
        )
    return record


# ---------------------------------------------------------------------------
# SQL-backed
# ---------------------------------------------------------------------------


class SqlEmployeeMasterReader:
    def __init__(self, session: Session):
        self._session = session

    def get_current_employee(self, employee_code: str) -> EmployeeMaster:
        rows = self._session.scalars(
            select(EmployeeMasterModel).where(
                EmployeeMasterModel.employee_code == employee_code,
                EmployeeMasterModel.is_current.is_(True),
            )
        ).all()
        if not rows:
            raise EmployeeNotFoundError(employee_code)
        if len(rows) > 1:
            raise DuplicateCurrentEmployeeError(employee_code)
        return rows[0].to_dto()

    def list_current_employee_codes(self) -> list[str]:
        codes = self._session.scalars(
            select(EmployeeMasterModel.employee_code)
            .where(EmployeeMasterModel.is_current.is_(True))
            .distinct()
            .order_by(EmployeeMasterModel.employee_code)
        ).all()
        return list(codes)


class SqlAttendanceReader:
    def __init__(self, session: Session):
        self._session = session

    def get_approved_attendance(
        self, employee_code: str, month: int, year: int
    ) -> AttendanceRecord:
        model = self._session.scalars(
            select(AttendanceRecordModel).where(
                AttendanceRecordModel.employee_code == employee_code,
                AttendanceRecordModel.month == month,
                AttendanceRecordModel.year == year,
            )
        ).one_or_none()
        if model is None:
            raise AttendanceNotFoundError(employee_code, month, year)
        return _check_usable(model.to_dto())


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryEmployeeMasterReader:
    """Employee master over a fixed list of records."""

    def __init__(self, employees: Iterable[EmployeeMaster] = ()):
        self._employees = list(employees)

    def add(self, employee: EmployeeMaster) -> None:
        self._employees.append(employee)

    def get_current_employee(self, employee_code: str) -> EmployeeMaster:
        matches = [
            e for e in self._employees if e.employee_code == employee_code and e.is_current
        ]
        if not matches:
            raise EmployeeNotFoundError(employee_code)
        if len(matches) > 1:
            raise DuplicateCurrentEmployeeError(employee_code)
        return matches[0]

    def list_current_employee_codes(self) -> list[str]:
        return sorted({e.employee_code for e in self._employees if e.is_current})


class InMemoryAttendanceReader:
    """Attendance over a fixed list of records keyed by (code, month, year)."""

    def __init__(self, records: Iterable[AttendanceRecord] = ()):
        self._records = {(r.employee_code, r.month, r.year): r for r in records}

    def add(self, record: AttendanceRecord) -> None:
        self._records[(record.employee_code, record.month, record.year)] = record

    def get_approved_attendance(
        self, employee_code: str, month: int, year: int
    ) -> AttendanceRecord:
        record = self._records.get((employee_code, month, year))
        if record is None:
            raise AttendanceNotFoundError(employee_code, month, year)
        return _check_usable(record)


# ---------------------------------------------------------------------------
# Withholding
# ---------------------------------------------------------------------------


class ZeroWithholding:
    """No TDS.  Default until a tax engine is wired in."""

    def tds_for(self, employee: EmployeeMaster, month: int, year: int) -> Decimal:
        return ZERO


class FixedWithholding:
    """TDS looked up per employee code; unknown codes withhold nothing."""

    def __init__(self, amounts: dict[str, Decimal]):
        self._amounts = dict(amounts)

    def tds_for(self, employee: EmployeeMaster, month: int, year: int) -> Decimal:
        return self._amounts.get(employee.employee_code, ZERO)
