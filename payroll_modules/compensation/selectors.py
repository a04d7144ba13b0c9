"""
Payroll reporting selectors (``payroll_modules.compensation.selectors``).

Period totals and performance analytics computed with SQL aggregates over
``payroll_records``.  By default only APPROVED, LOCKED and PAID records
are counted; drafts are work in progress.

Aggregates come back as float on SQLite and Decimal on PostgreSQL; both
are normalized through ``str`` and quantized to 0.01.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select

from payroll_engines.performance import PerformanceStatus
from payroll_kernel.domain.values import ZERO, round_money
from payroll_kernel.logging_config import get_logger
from payroll_kernel.selectors.base import BaseSelector
from payroll_modules.compensation.models import (
    REPORTABLE_STATUSES,
    PayrollStatus,
    PerformanceBucket,
    PeriodSummary,
)
from payroll_modules.compensation.orm import PayrollRecordModel

logger = get_logger("modules.compensation.selectors")

# PeriodSummary attribute -> summed column
_SUMMARY_COLUMNS = {
    "total_gross": PayrollRecordModel.adjusted_gross,
    "total_net_pay": PayrollRecordModel.net_take_home,
    "total_employer_cost": PayrollRecordModel.total_employer_contributions,
    "total_ctc": PayrollRecordModel.monthly_ctc,
    "total_epf_employee": PayrollRecordModel.epf_employee,
    "total_epf_employer": PayrollRecordModel.epf_employer,
    "total_esic_employee": PayrollRecordModel.esic_employee,
    "total_esic_employer": PayrollRecordModel.esic_employer,
    "total_gratuity": PayrollRecordModel.gratuity,
    "total_professional_tax": PayrollRecordModel.professional_tax,
    "total_tds": PayrollRecordModel.tds,
}


def _amount(value) -> Decimal:
    if value is None:
        return ZERO.quantize(Decimal("0.01"))
    return round_money(Decimal(str(value)))


class PayrollReportSelector(BaseSelector[PayrollRecordModel]):
    """Read-only period reporting."""

    def period_summary(
        self,
        month: int,
        year: int,
        statuses: Sequence[PayrollStatus] = REPORTABLE_STATUSES,
        generated_at: datetime | None = None,
    ) -> PeriodSummary:
        status_values = [s.value for s in statuses]
        columns = [func.count(PayrollRecordModel.id).label("employee_count")]
        columns += [func.sum(col).label(name) for name, col in _SUMMARY_COLUMNS.items()]

        row = self.session.execute(
            select(*columns).where(
                PayrollRecordModel.month == month,
                PayrollRecordModel.year == year,
                PayrollRecordModel.status.in_(status_values),
            )
        ).one()

        summary = PeriodSummary(
            month=month,
            year=year,
            statuses=tuple(statuses),
            employee_count=int(row.employee_count or 0),
            generated_at=generated_at,
            **{name: _amount(getattr(row, name)) for name in _SUMMARY_COLUMNS},
        )
        logger.debug(
            "period_summary_selected",
            extra={
                "period": f"{year}-{month:02d}",
                "employee_count": summary.employee_count,
                "total_net_pay": str(summary.total_net_pay),
            },
        )
        return summary

    def performance_analytics(
        self,
        month: int,
        year: int,
        statuses: Sequence[PayrollStatus] = REPORTABLE_STATUSES,
    ) -> list[PerformanceBucket]:
        """One bucket per performance_status, sorted by status name."""
        status_values = [s.value for s in statuses]
        rows = self.session.execute(
            select(
                PayrollRecordModel.performance_status,
                func.count(PayrollRecordModel.id).label("record_count"),
                func.avg(PayrollRecordModel.sales_percentage).label("avg_sales_percentage"),
                func.avg(PayrollRecordModel.sales_incentive).label("avg_incentive"),
                func.avg(PayrollRecordModel.sales_deduction).label("avg_deduction"),
            )
            .where(
                PayrollRecordModel.month == month,
                PayrollRecordModel.year == year,
                PayrollRecordModel.status.in_(status_values),
            )
            .group_by(PayrollRecordModel.performance_status)
            .order_by(PayrollRecordModel.performance_status)
        ).all()

        return [
            PerformanceBucket(
                performance_status=PerformanceStatus(row.performance_status),
                count=int(row.record_count),
                avg_sales_percentage=_amount(row.avg_sales_percentage),
                avg_incentive=_amount(row.avg_incentive),
                avg_deduction=_amount(row.avg_deduction),
            )
            for row in rows
        ]
