"""
Compensation ORM Persistence Models (``payroll_modules.compensation.orm``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen dataclass DTOs defined in
    ``payroll_modules.compensation.models``.  Each ORM class mirrors a DTO
    and provides ``to_dto()`` / ``from_dto()`` conversion.

Architecture position:
    **Modules layer** -- persistence companions to the pure DTO models.
    Inherits from ``TrackedBase`` (kernel DB base) which provides:
    id (UUID PK, auto-generated), created_at, updated_at,
    created_by_id (NOT NULL UUID), updated_by_id (nullable UUID).

Invariants enforced:
    - All monetary fields use Decimal (maps to Numeric(38,9)) -- NEVER float.
    - Enum fields stored as String(50) containing the enum .value string.
    - One payroll record per (employee_code, month, year)
      (uq_payroll_record_period).
    - One current master record per employee_code
      (uq_payroll_employee_current, partial unique index).
    - ``version`` is the optimistic concurrency token for payroll records.

Audit relevance:
    Payroll records and manual adjustments are never deleted; see
    ``payroll_kernel.db.immutability``.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase, as_utc
from payroll_kernel.db.immutability import protect_append_only, protect_frozen_records
from payroll_kernel.domain.values import round_money

# Columns quantized to 0.01 when read back.
MONEY_COLUMNS = (
    "base_salary",
    "target_sales",
    "actual_sales",
    "adjusted_gross",
    "sales_percentage",
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

# Columns holding ratios, percentages or day counts; read back normalized.
MEASURE_COLUMNS = (
    "total_days",
    "present_days",
    "eligible_days",
    "safety_floor",
    "buffer_threshold",
    "deduction_percentage",
    "basic_ratio",
    "hra_ratio",
    "da_ratio",
    "incentive_ceiling_factor",
    "epf_rate",
    "epf_ceiling",
    "esic_wage_ceiling",
    "esic_employee_rate",
    "esic_employer_rate",
    "gratuity_rate",
)

# Columns that may change once a record is LOCKED or PAID.
WORKFLOW_COLUMNS = frozenset({
    "status",
    "version",
    "paid_by_id",
    "paid_at",
    "updated_at",
    "updated_by_id",
})


def _measure(value: Decimal) -> Decimal:
    """Strip the storage scale while keeping an exact value."""
    normalized = value.normalize()
    if normalized == normalized.to_integral():
        return normalized.quantize(Decimal("1"))
    return normalized


# ---------------------------------------------------------------------------
# EmployeeMasterModel
# ---------------------------------------------------------------------------


class EmployeeMasterModel(TrackedBase):
    """
    ORM model for ``EmployeeMaster``.

    Guarantees:
        - At most one row per employee_code has ``is_current`` set.
        - ``category`` stores the EmployeeCategory .value string.
    """

    __tablename__ = "payroll_employee_master"

    employee_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    base_salary: Mapped[Decimal] = mapped_column(nullable=False)
    target_sales: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    safety_floor: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("75"))
    buffer_threshold: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("90"))
    deduction_percentage: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("25"))
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    pf_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    esic_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    pt_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index(
            "uq_payroll_employee_current",
            "employee_code",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current = 1"),
        ),
        Index("idx_payroll_employee_category", "category"),
    )

    def to_dto(self):
        from payroll_engines.performance import PerformanceRules
        from payroll_modules.compensation.models import EmployeeCategory, EmployeeMaster

        return EmployeeMaster(
            id=self.id,
            employee_code=self.employee_code,
            category=EmployeeCategory(self.category),
            base_salary=round_money(self.base_salary),
            target_sales=round_money(self.target_sales),
            performance_rules=PerformanceRules(
                safety_floor=_measure(self.safety_floor),
                buffer_threshold=_measure(self.buffer_threshold),
                deduction_percentage=_measure(self.deduction_percentage),
            ),
            name=self.name,
            state=self.state,
            pf_applicable=self.pf_applicable,
            esic_applicable=self.esic_applicable,
            pt_applicable=self.pt_applicable,
            is_current=self.is_current,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "EmployeeMasterModel":
        rules = dto.performance_rules
        return cls(
            id=dto.id,
            employee_code=dto.employee_code,
            name=dto.name,
            category=dto.category.value if hasattr(dto.category, "value") else dto.category,
            base_salary=dto.base_salary,
            target_sales=dto.target_sales,
            safety_floor=rules.safety_floor,
            buffer_threshold=rules.buffer_threshold,
            deduction_percentage=rules.deduction_percentage,
            state=dto.state,
            pf_applicable=dto.pf_applicable,
            esic_applicable=dto.esic_applicable,
            pt_applicable=dto.pt_applicable,
            is_current=dto.is_current,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<EmployeeMasterModel {self.employee_code} ({self.category})>"


# ---------------------------------------------------------------------------
# AttendanceRecordModel
# ---------------------------------------------------------------------------


class AttendanceRecordModel(TrackedBase):
    """ORM model for ``AttendanceRecord``.  One row per employee-period."""

    __tablename__ = "payroll_attendance_records"

    employee_code: Mapped[str] = mapped_column(String(50), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    total_days: Mapped[Decimal] = mapped_column(nullable=False)
    present_days: Mapped[Decimal] = mapped_column(nullable=False)
    eligible_days: Mapped[Decimal] = mapped_column(nullable=False)
    actual_sales: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_code", "month", "year", name="uq_payroll_attendance_period"),
        Index("idx_payroll_attendance_period", "year", "month"),
    )

    def to_dto(self):
        from payroll_modules.compensation.models import AttendanceRecord, AttendanceStatus

        return AttendanceRecord(
            id=self.id,
            employee_code=self.employee_code,
            month=self.month,
            year=self.year,
            total_days=_measure(self.total_days),
            present_days=_measure(self.present_days),
            eligible_days=_measure(self.eligible_days),
            actual_sales=round_money(self.actual_sales),
            status=AttendanceStatus(self.status),
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "AttendanceRecordModel":
        return cls(
            id=dto.id,
            employee_code=dto.employee_code,
            month=dto.month,
            year=dto.year,
            total_days=dto.total_days,
            present_days=dto.present_days,
            eligible_days=dto.eligible_days,
            actual_sales=dto.actual_sales,
            status=dto.status.value if hasattr(dto.status, "value") else dto.status,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<AttendanceRecordModel {self.employee_code} "
            f"{self.year}-{self.month:02d} ({self.status})>"
        )


# ---------------------------------------------------------------------------
# PayrollRecordModel
# ---------------------------------------------------------------------------


class PayrollRecordModel(TrackedBase):
    """
    ORM model for ``PayrollRecord``.

    Contract:
        Written only through ``PayrollRecordStore``.  Once LOCKED or PAID the
        row may only change its workflow columns (see ``WORKFLOW_COLUMNS``).

    Guarantees:
        - Unique on (employee_code, month, year).
        - ``version`` increases by one on every write.
    """

    __tablename__ = "payroll_records"

    employee_code: Mapped[str] = mapped_column(String(50), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Snapshot
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    base_salary: Mapped[Decimal] = mapped_column(nullable=False)
    total_days: Mapped[Decimal] = mapped_column(nullable=False)
    present_days: Mapped[Decimal] = mapped_column(nullable=False)
    eligible_days: Mapped[Decimal] = mapped_column(nullable=False)
    target_sales: Mapped[Decimal] = mapped_column(nullable=False)
    actual_sales: Mapped[Decimal] = mapped_column(nullable=False)
    safety_floor: Mapped[Decimal] = mapped_column(nullable=False)
    buffer_threshold: Mapped[Decimal] = mapped_column(nullable=False)
    deduction_percentage: Mapped[Decimal] = mapped_column(nullable=False)
    basic_ratio: Mapped[Decimal] = mapped_column(nullable=False)
    hra_ratio: Mapped[Decimal] = mapped_column(nullable=False)
    da_ratio: Mapped[Decimal] = mapped_column(nullable=False)
    commission_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False)
    incentive_ceiling_factor: Mapped[Decimal] = mapped_column(nullable=False)
    pf_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False)
    esic_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False)
    sales_deduction_policy: Mapped[str] = mapped_column(String(50), nullable=False)
    epf_rate: Mapped[Decimal] = mapped_column(nullable=False)
    epf_ceiling: Mapped[Decimal] = mapped_column(nullable=False)
    esic_wage_ceiling: Mapped[Decimal] = mapped_column(nullable=False)
    esic_employee_rate: Mapped[Decimal] = mapped_column(nullable=False)
    esic_employer_rate: Mapped[Decimal] = mapped_column(nullable=False)
    gratuity_rate: Mapped[Decimal] = mapped_column(nullable=False)
    policy_checksum: Mapped[str] = mapped_column(String(64), nullable=False)

    # Computed
    adjusted_gross: Mapped[Decimal] = mapped_column(nullable=False)
    sales_percentage: Mapped[Decimal] = mapped_column(nullable=False)
    sales_deduction: Mapped[Decimal] = mapped_column(nullable=False)
    sales_incentive: Mapped[Decimal] = mapped_column(nullable=False)
    performance_status: Mapped[str] = mapped_column(String(50), nullable=False)
    performance_color: Mapped[str] = mapped_column(String(20), nullable=False)
    basic: Mapped[Decimal] = mapped_column(nullable=False)
    hra: Mapped[Decimal] = mapped_column(nullable=False)
    da: Mapped[Decimal] = mapped_column(nullable=False)
    special_allowance: Mapped[Decimal] = mapped_column(nullable=False)
    variable_pay: Mapped[Decimal] = mapped_column(nullable=False)
    epf_employee: Mapped[Decimal] = mapped_column(nullable=False)
    esic_employee: Mapped[Decimal] = mapped_column(nullable=False)
    professional_tax: Mapped[Decimal] = mapped_column(nullable=False)
    tds: Mapped[Decimal] = mapped_column(nullable=False)
    total_employee_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    epf_employer: Mapped[Decimal] = mapped_column(nullable=False)
    esic_employer: Mapped[Decimal] = mapped_column(nullable=False)
    gratuity: Mapped[Decimal] = mapped_column(nullable=False)
    total_employer_contributions: Mapped[Decimal] = mapped_column(nullable=False)
    net_take_home: Mapped[Decimal] = mapped_column(nullable=False)
    monthly_ctc: Mapped[Decimal] = mapped_column(nullable=False)
    annual_ctc: Mapped[Decimal] = mapped_column(nullable=False)

    # Workflow metadata
    computed_by_id: Mapped[UUID] = mapped_column(nullable=False)
    computed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    submitted_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    locked_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    locked_at: Mapped[datetime | None] = mapped_column(nullable=True)
    paid_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_code", "month", "year", name="uq_payroll_record_period"),
        Index("idx_payroll_record_period_status", "year", "month", "status"),
        Index("idx_payroll_record_performance", "year", "month", "performance_status"),
    )

    def to_dto(self, adjustments=()):
        from payroll_engines.components import SalesDeductionPolicy
        from payroll_engines.performance import PerformanceColor, PerformanceStatus
        from payroll_modules.compensation.models import (
            EmployeeCategory,
            PayrollRecord,
            PayrollStatus,
        )

        return PayrollRecord(
            id=self.id,
            employee_code=self.employee_code,
            month=self.month,
            year=self.year,
            status=PayrollStatus(self.status),
            version=self.version,
            category=EmployeeCategory(self.category),
            commission_eligible=self.commission_eligible,
            pf_applicable=self.pf_applicable,
            esic_applicable=self.esic_applicable,
            sales_deduction_policy=SalesDeductionPolicy(self.sales_deduction_policy),
            policy_checksum=self.policy_checksum,
            performance_status=PerformanceStatus(self.performance_status),
            performance_color=PerformanceColor(self.performance_color),
            computed_by_id=self.computed_by_id,
            computed_at=as_utc(self.computed_at),
            submitted_by_id=self.submitted_by_id,
            submitted_at=as_utc(self.submitted_at),
            approved_by_id=self.approved_by_id,
            approved_at=as_utc(self.approved_at),
            locked_by_id=self.locked_by_id,
            locked_at=as_utc(self.locked_at),
            paid_by_id=self.paid_by_id,
            paid_at=as_utc(self.paid_at),
            adjustments=tuple(adjustments),
            **{name: round_money(getattr(self, name)) for name in MONEY_COLUMNS},
            **{name: _measure(getattr(self, name)) for name in MEASURE_COLUMNS},
        )

    def __repr__(self) -> str:
        return (
            f"<PayrollRecordModel {self.employee_code} "
            f"{self.year}-{self.month:02d} ({self.status} v{self.version})>"
        )


# ---------------------------------------------------------------------------
# ManualAdjustmentModel
# ---------------------------------------------------------------------------


class ManualAdjustmentModel(TrackedBase):
    """
    ORM model for ``ManualAdjustment``.

    Guarantees:
        - Append-only: rows are never updated or deleted.
        - ``old_value`` is the effective value at the time of the adjustment.
    """

    __tablename__ = "payroll_manual_adjustments"

    payroll_record_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_records.id"), nullable=False
    )
    field_name: Mapped[str] = mapped_column(String(100), nullable=False)
    old_value: Mapped[Decimal] = mapped_column(nullable=False)
    new_value: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    actor_id: Mapped[UUID] = mapped_column(nullable=False)
    adjusted_at: Mapped[datetime] = mapped_column(nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "payroll_record_id", "sequence", name="uq_payroll_adjustment_sequence"
        ),
        Index("idx_payroll_adjustment_record", "payroll_record_id"),
    )

    def to_dto(self):
        from payroll_modules.compensation.models import ManualAdjustment

        return ManualAdjustment(
            id=self.id,
            payroll_record_id=self.payroll_record_id,
            field_name=self.field_name,
            old_value=round_money(self.old_value),
            new_value=round_money(self.new_value),
            reason=self.reason,
            actor_id=self.actor_id,
            adjusted_at=as_utc(self.adjusted_at),
        )

    @classmethod
    def from_dto(cls, dto, sequence: int) -> "ManualAdjustmentModel":
        return cls(
            id=dto.id,
            payroll_record_id=dto.payroll_record_id,
            field_name=dto.field_name,
            old_value=dto.old_value,
            new_value=dto.new_value,
            reason=dto.reason,
            actor_id=dto.actor_id,
            adjusted_at=dto.adjusted_at,
            sequence=sequence,
            created_by_id=dto.actor_id,
        )

    def __repr__(self) -> str:
        return (
            f"<ManualAdjustmentModel {self.field_name}: "
            f"{self.old_value} -> {self.new_value}>"
        )


protect_frozen_records(PayrollRecordModel, WORKFLOW_COLUMNS)
protect_append_only(ManualAdjustmentModel)
