"""
Compensation Module (``payroll_modules.compensation``).

Responsibility
--------------
Unified monthly payroll: turns approved attendance and sales performance
into an itemized payroll record (gross, incentive or penalty, statutory
deductions, employer contributions, net pay, cost to company) and moves
that record through DRAFT -> SUBMITTED -> APPROVED -> LOCKED -> PAID.

Architecture position
---------------------
**Modules layer** -- DTOs, ORM models, collaborator readers, the record
store, reporting selectors and ``UnifiedPayrollService``
(``payroll_modules.compensation.service``).  Pure computation is
delegated to ``payroll_engines``.

Invariants enforced
-------------------
* One record per (employee_code, month, year).
* LOCKED and PAID records are immutable apart from workflow metadata.
* Manual corrections are appended, never overwrite computed values.
"""

from payroll_modules.compensation.models import (
    AttendanceRecord,
    AttendanceStatus,
    EmployeeCategory,
    EmployeeMaster,
    ManualAdjustment,
    PayrollRecord,
    PayrollStatus,
    PayrollVerification,
    PerformanceBucket,
    PeriodSummary,
)

__all__ = [
    "AttendanceRecord",
    "AttendanceStatus",
    "EmployeeCategory",
    "EmployeeMaster",
    "ManualAdjustment",
    "PayrollRecord",
    "PayrollStatus",
    "PayrollVerification",
    "PerformanceBucket",
    "PeriodSummary",
]
