"""
Compensation Domain Models (``payroll_modules.compensation.models``).

Responsibility
--------------
Frozen dataclass value objects representing the nouns of unified payroll:
employee master snapshots, approved attendance, the payroll record with
its computation snapshot, manual adjustments, and reporting aggregates.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by
``UnifiedPayrollService`` and returned to callers.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* A payroll record never hides its computed values: manual adjustments
  live beside them and ``effective_value`` layers the latest one on top.

Audit relevance
---------------
* Payroll records carry the exact inputs they were computed from, the
  policy checksum, and who moved them through each workflow state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from payroll_engines.components import SalesDeductionPolicy
from payroll_engines.performance import (
    PerformanceColor,
    PerformanceRules,
    PerformanceStatus,
)
from payroll_engines.statutory import StatutoryRates
from payroll_kernel.domain.values import ZERO
from payroll_kernel.logging_config import get_logger

logger = get_logger("modules.compensation.models")


class EmployeeCategory(str, Enum):
    """Employee categories.  Only SALES is commission-eligible by default."""

    SALES = "SALES"
    BACKEND = "BACKEND"
    LAB = "LAB"
    HR = "HR"
    MANAGEMENT = "MANAGEMENT"
    TECH = "TECH"


class AttendanceStatus(str, Enum):
    """Attendance lifecycle states (owned by the attendance system)."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    LOCKED = "LOCKED"

    @property
    def is_usable(self) -> bool:
        """Payroll consumes only approved or locked attendance."""
        return self in (AttendanceStatus.APPROVED, AttendanceStatus.LOCKED)


class PayrollStatus(str, Enum):
    """Payroll record lifecycle states."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    LOCKED = "LOCKED"
    PAID = "PAID"

    @property
    def is_frozen(self) -> bool:
        return self in FROZEN_STATUSES


FROZEN_STATUSES = frozenset({PayrollStatus.LOCKED, PayrollStatus.PAID})
REPORTABLE_STATUSES = (PayrollStatus.APPROVED, PayrollStatus.LOCKED, PayrollStatus.PAID)

# Computed monetary fields a manual adjustment may target.
ADJUSTABLE_FIELDS = (
    "adjusted_gross",
    "sales_deduction",
    "sales_incentive",
    "basic",
    "hra",
    "da",
    "special_allowance",
    "variable_pay",
    "epf_employee",
    "esic_employee",
    "professional_tax",
    "tds",
    "total_employee_deductions",
    "epf_employer",
    "esic_employer",
    "gratuity",
    "total_employer_contributions",
    "net_take_home",
    "monthly_ctc",
    "annual_ctc",
)


@dataclass(frozen=True)
class EmployeeMaster:
    """The current master record for an employee (read-only here)."""

    id: UUID
    employee_code: str
    category: EmployeeCategory
    base_salary: Decimal
    target_sales: Decimal = ZERO
    performance_rules: PerformanceRules = field(default_factory=PerformanceRules)
    name: str = ""
    state: str | None = None
    pf_applicable: bool = True
    esic_applicable: bool = True
    pt_applicable: bool = True
    is_current: bool = True


@dataclass(frozen=True)
class AttendanceRecord:
    """Monthly attendance for one employee (read-only here)."""

    id: UUID
    employee_code: str
    month: int
    year: int
    total_days: Decimal
    present_days: Decimal
    eligible_days: Decimal
    actual_sales: Decimal = ZERO
    status: AttendanceStatus = AttendanceStatus.DRAFT


@dataclass(frozen=True)
class ManualAdjustment:
    """An append-only correction to one computed field of a payroll record."""

    id: UUID
    payroll_record_id: UUID
    field_name: str
    old_value: Decimal
    new_value: Decimal
    reason: str
    actor_id: UUID
    adjusted_at: datetime


@dataclass(frozen=True)
class PayrollRecord:
    """
    The itemized payroll result for (employee_code, month, year).

    Snapshot fields record every input the computation read so the
    record can be replayed.  Computed fields are never changed by a
    manual adjustment; use ``effective_value`` for the adjusted view.
    """

    id: UUID
    employee_code: str
    month: int
    year: int
    status: PayrollStatus
    version: int

    # Snapshot
    category: EmployeeCategory
    base_salary: Decimal
    total_days: Decimal
    present_days: Decimal
    eligible_days: Decimal
    target_sales: Decimal
    actual_sales: Decimal
    safety_floor: Decimal
    buffer_threshold: Decimal
    deduction_percentage: Decimal
    basic_ratio: Decimal
    hra_ratio: Decimal
    da_ratio: Decimal
    commission_eligible: bool
    incentive_ceiling_factor: Decimal
    pf_applicable: bool
    esic_applicable: bool
    sales_deduction_policy: SalesDeductionPolicy
    epf_rate: Decimal
    epf_ceiling: Decimal
    esic_wage_ceiling: Decimal
    esic_employee_rate: Decimal
    esic_employer_rate: Decimal
    gratuity_rate: Decimal
    policy_checksum: str

    # Computed
    adjusted_gross: Decimal
    sales_percentage: Decimal
    sales_deduction: Decimal
    sales_incentive: Decimal
    performance_status: PerformanceStatus
    performance_color: PerformanceColor
    basic: Decimal
    hra: Decimal
    da: Decimal
    special_allowance: Decimal
    variable_pay: Decimal
    epf_employee: Decimal
    esic_employee: Decimal
    professional_tax: Decimal
    tds: Decimal
    total_employee_deductions: Decimal
    epf_employer: Decimal
    esic_employer: Decimal
    gratuity: Decimal
    total_employer_contributions: Decimal
    net_take_home: Decimal
    monthly_ctc: Decimal
    annual_ctc: Decimal

    # Workflow metadata
    computed_by_id: UUID
    computed_at: datetime | None = None
    submitted_by_id: UUID | None = None
    submitted_at: datetime | None = None
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None
    locked_by_id: UUID | None = None
    locked_at: datetime | None = None
    paid_by_id: UUID | None = None
    paid_at: datetime | None = None

    adjustments: tuple[ManualAdjustment, ...] = ()

    @property
    def is_frozen(self) -> bool:
        return self.status.is_frozen

    @property
    def performance_rules(self) -> PerformanceRules:
        return PerformanceRules(
            safety_floor=self.safety_floor,
            buffer_threshold=self.buffer_threshold,
            deduction_percentage=self.deduction_percentage,
        )

    @property
    def statutory_rates(self) -> StatutoryRates:
        """The EPF, ESIC and gratuity rates this record was computed with."""
        return StatutoryRates(
            epf_rate=self.epf_rate,
            epf_ceiling=self.epf_ceiling,
            esic_wage_ceiling=self.esic_wage_ceiling,
            esic_employee_rate=self.esic_employee_rate,
            esic_employer_rate=self.esic_employer_rate,
            gratuity_rate=self.gratuity_rate,
        )

    def effective_value(self, field_name: str) -> Decimal:
        """Latest adjusted value of ``field_name``, or the computed value."""
        if field_name not in ADJUSTABLE_FIELDS:
            raise KeyError(field_name)
        for adjustment in reversed(self.adjustments):
            if adjustment.field_name == field_name:
                return adjustment.new_value
        return getattr(self, field_name)

    @property
    def effective_net_take_home(self) -> Decimal:
        return self.effective_value("net_take_home")


@dataclass(frozen=True)
class PeriodSummary:
    """Totals over a period's payroll records in the given statuses."""

    month: int
    year: int
    statuses: tuple[PayrollStatus, ...]
    employee_count: int
    total_gross: Decimal
    total_net_pay: Decimal
    total_employer_cost: Decimal
    total_ctc: Decimal
    total_epf_employee: Decimal
    total_epf_employer: Decimal
    total_esic_employee: Decimal
    total_esic_employer: Decimal
    total_gratuity: Decimal
    total_professional_tax: Decimal
    total_tds: Decimal
    generated_at: datetime | None = None


@dataclass(frozen=True)
class PerformanceBucket:
    """Aggregate for one performance_status within a period."""

    performance_status: PerformanceStatus
    count: int
    avg_sales_percentage: Decimal
    avg_incentive: Decimal
    avg_deduction: Decimal


@dataclass(frozen=True)
class PayrollVerification:
    """Outcome of replaying a stored record from its snapshot."""

    record_id: UUID
    employee_code: str
    month: int
    year: int
    matches: bool
    mismatches: dict[str, tuple[str, str]] = field(default_factory=dict)
    policy_checksum_matches: bool = True
