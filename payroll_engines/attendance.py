"""
Attendance Engine - Prorate base salary by eligible attendance days.

Pure functions with no I/O.  Attendance figures are validated, never
clamped: inconsistent data must be corrected upstream.

Usage:
    from payroll_engines.attendance import AttendanceAdjuster
    from decimal import Decimal

    adjuster = AttendanceAdjuster()
    gross = adjuster.adjust(
        base_salary=Decimal("30000"),
        total_days=Decimal("30"),
        eligible_days=Decimal("28"),
    )
    print(gross)  # 28000.00
"""

from __future__ import annotations

from decimal import Decimal

from payroll_kernel.domain.values import ZERO, coerce_input, round_money
from payroll_kernel.exceptions import (
    InvalidAttendanceError,
    InvalidCompensationError,
    InvalidPeriodError,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.attendance")


class AttendanceAdjuster:
    """
    Computes attendance-adjusted gross salary.

    adjusted_gross = base_salary * eligible_days / total_days

    Guarantees:
        - Result is quantized to 0.01.
        - Result <= base_salary whenever eligible_days <= total_days.
        - Result is zero when eligible_days is zero.
    """

    def adjust(
        self,
        base_salary: Decimal,
        total_days: Decimal,
        eligible_days: Decimal,
        present_days: Decimal | None = None,
        employee_code: str | None = None,
    ) -> Decimal:
        """
        Prorate ``base_salary`` over the attendance period.

        Raises:
            InvalidPeriodError: total_days is zero.
            InvalidAttendanceError: negative days, or eligible/present days
                exceeding total_days, or a day count that is
                missing or not numeric.
            InvalidCompensationError: base_salary is missing or not positive.
        """
        base_salary = coerce_input(
            base_salary, "base_salary", employee_code, InvalidCompensationError
        )
        total_days = coerce_input(total_days, "total_days", employee_code, InvalidAttendanceError)
        eligible_days = coerce_input(
            eligible_days, "eligible_days", employee_code, InvalidAttendanceError
        )

        if total_days == ZERO:
            raise InvalidPeriodError(employee_code, total_days)
        if total_days < ZERO:
            raise InvalidAttendanceError(
                employee_code, f"total_days cannot be negative ({total_days})"
            )
        if base_salary <= ZERO:
            raise InvalidCompensationError(
                employee_code, f"base_salary must be positive ({base_salary})"
            )
        if eligible_days < ZERO:
            raise InvalidAttendanceError(
                employee_code, f"eligible_days cannot be negative ({eligible_days})"
            )
        if eligible_days > total_days:
            raise InvalidAttendanceError(
                employee_code,
                f"eligible_days ({eligible_days}) exceeds total_days ({total_days})",
            )
        if present_days is not None:
            present_days = coerce_input(
                present_days, "present_days", employee_code, InvalidAttendanceError
            )
            if present_days < ZERO or present_days > total_days:
                raise InvalidAttendanceError(
                    employee_code,
                    f"present_days ({present_days}) outside 0..{total_days}",
                )

        if eligible_days == total_days:
            adjusted = round_money(base_salary)
        else:
            adjusted = round_money(base_salary * eligible_days / total_days)

        logger.debug(
            "attendance_adjusted",
            extra={
                "employee_code": employee_code,
                "base_salary": str(base_salary),
                "total_days": str(total_days),
                "eligible_days": str(eligible_days),
                "adjusted_gross": str(adjusted),
            },
        )
        return adjusted
