"""
Performance Engine - Sales-target attainment and incentive/deduction.

Pure functions with no I/O.  Applies only to commission-eligible
structures with a positive sales target; everyone else gets a neutral
AVERAGE/YELLOW result with no adjustment.

Policy (first match wins):
    pct <  safety_floor               -> full deduction         POOR / RED
    safety_floor <= pct < buffer      -> interpolated deduction BELOW_AVERAGE / RED
    buffer <= pct < 100               -> nothing                GOOD / YELLOW
    pct >= 100                        -> incentive              EXCELLENT / GREEN

Usage:
    from payroll_engines.performance import PerformanceEvaluator, PerformanceRules

    result = PerformanceEvaluator().evaluate(
        adjusted_gross=Decimal("50000"),
        target_sales=Decimal("100000"),
        actual_sales=Decimal("120000"),
        rules=PerformanceRules(),
    )
    print(result.sales_incentive)  # 1000.00
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from payroll_kernel.domain.values import HUNDRED, ZERO, coerce_input, round_money
from payroll_kernel.exceptions import (
    InvalidAttendanceError,
    InvalidCompensationError,
    InvalidPerformanceRulesError,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.performance")

DEFAULT_INCENTIVE_CEILING_FACTOR = Decimal("0.10")


class PerformanceStatus(str, Enum):
    """Derived classification of sales attainment."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    AVERAGE = "AVERAGE"
    BELOW_AVERAGE = "BELOW_AVERAGE"
    POOR = "POOR"


class PerformanceColor(str, Enum):
    """Traffic-light color shown next to the status."""

    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


@dataclass(frozen=True)
class PerformanceRules:
    """
    Per-employee performance thresholds, all expressed in percent.

    Invariants:
        0 <= safety_floor < buffer_threshold <= 100
        0 <= deduction_percentage <= 100
    """

    safety_floor: Decimal = Decimal("75")
    buffer_threshold: Decimal = Decimal("90")
    deduction_percentage: Decimal = Decimal("25")

    def __post_init__(self) -> None:
        floor = self.safety_floor
        buffer = self.buffer_threshold
        deduction = self.deduction_percentage
        if floor < ZERO:
            raise InvalidPerformanceRulesError(f"safety_floor cannot be negative ({floor})")
        if buffer <= floor:
            raise InvalidPerformanceRulesError(
                f"buffer_threshold ({buffer}) must exceed safety_floor ({floor})"
            )
        if buffer > HUNDRED:
            raise InvalidPerformanceRulesError(
                f"buffer_threshold cannot exceed 100 ({buffer})"
            )
        if deduction < ZERO or deduction > HUNDRED:
            raise InvalidPerformanceRulesError(
                f"deduction_percentage must be within 0..100 ({deduction})"
            )


@dataclass(frozen=True)
class PerformanceResult:
    """Outcome of a performance evaluation."""

    sales_percentage: Decimal
    sales_deduction: Decimal
    sales_incentive: Decimal
    status: PerformanceStatus
    color: PerformanceColor

    @classmethod
    def neutral(cls) -> PerformanceResult:
        """Result for employees outside the commission scheme."""
        zero = round_money(ZERO)
        return cls(
            sales_percentage=zero,
            sales_deduction=zero,
            sales_incentive=zero,
            status=PerformanceStatus.AVERAGE,
            color=PerformanceColor.YELLOW,
        )


class PerformanceEvaluator:
    """
    Evaluates sales attainment against target.

    Contract:
        ``evaluate`` is deterministic: identical inputs always produce an
        identical ``PerformanceResult``.  Classification uses the unrounded
        attainment ratio; the reported ``sales_percentage`` and amounts are
        quantized to 0.01.
    """

    def __init__(
        self,
        incentive_ceiling_factor: Decimal = DEFAULT_INCENTIVE_CEILING_FACTOR,
    ):
        self._incentive_ceiling_factor = incentive_ceiling_factor

    def evaluate(
        self,
        adjusted_gross: Decimal,
        target_sales: Decimal,
        actual_sales: Decimal,
        rules: PerformanceRules,
        commission_eligible: bool = True,
        employee_code: str | None = None,
    ) -> PerformanceResult:
        target_sales = coerce_input(
            target_sales, "target_sales", employee_code, InvalidCompensationError
        )
        actual_sales = coerce_input(
            actual_sales, "actual_sales", employee_code, InvalidAttendanceError
        )

        if target_sales < ZERO:
            raise InvalidCompensationError(
                employee_code, f"target_sales cannot be negative ({target_sales})"
            )
        if not commission_eligible or target_sales == ZERO:
            return PerformanceResult.neutral()
        if actual_sales < ZERO:
            raise InvalidAttendanceError(
                employee_code, f"actual_sales cannot be negative ({actual_sales})"
            )

        pct = actual_sales / target_sales * HUNDRED
        max_deduction = adjusted_gross * rules.deduction_percentage / HUNDRED
        deduction = ZERO
        incentive = ZERO

        if pct < rules.safety_floor:
            deduction = max_deduction
            status, color = PerformanceStatus.POOR, PerformanceColor.RED
        elif pct < rules.buffer_threshold:
            factor = (rules.buffer_threshold - pct) / (
                rules.buffer_threshold - rules.safety_floor
            )
            deduction = max_deduction * factor
            status, color = PerformanceStatus.BELOW_AVERAGE, PerformanceColor.RED
        elif pct < HUNDRED:
            status, color = PerformanceStatus.GOOD, PerformanceColor.YELLOW
        else:
            incentive_factor = (pct - HUNDRED) / HUNDRED
            incentive = adjusted_gross * self._incentive_ceiling_factor * incentive_factor
            status, color = PerformanceStatus.EXCELLENT, PerformanceColor.GREEN

        result = PerformanceResult(
            sales_percentage=round_money(pct),
            sales_deduction=round_money(deduction),
            sales_incentive=round_money(incentive),
            status=status,
            color=color,
        )

        logger.debug(
            "performance_evaluated",
            extra={
                "employee_code": employee_code,
                "sales_percentage": str(result.sales_percentage),
                "sales_deduction": str(result.sales_deduction),
                "sales_incentive": str(result.sales_incentive),
                "performance_status": status.value,
            },
        )
        return result
