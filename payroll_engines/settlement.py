"""
Settlement Engine - Net take-home and cost-to-company.

Pure functions with no I/O.

    net_take_home = max(0, gross + variable_pay - deductions - sales_deduction)
    monthly_ctc   = net_take_home + deductions + employer_contributions
    annual_ctc    = monthly_ctc * 12

``monthly_ctc`` is derived from the clamped net so that the identity
above holds exactly for every stored record.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from payroll_kernel.domain.values import floor_zero, round_money
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.settlement")

MONTHS_PER_YEAR = 12


@dataclass(frozen=True)
class Settlement:
    net_take_home: Decimal
    monthly_ctc: Decimal
    annual_ctc: Decimal


class SettlementCalculator:
    def settle(
        self,
        adjusted_gross: Decimal,
        variable_pay: Decimal,
        total_employee_deductions: Decimal,
        sales_deduction: Decimal,
        total_employer_contributions: Decimal,
    ) -> Settlement:
        raw_net = adjusted_gross + variable_pay - total_employee_deductions - sales_deduction
        net = floor_zero(round_money(raw_net))
        if raw_net < 0:
            logger.warning(
                "net_take_home_clamped",
                extra={"raw_net": str(raw_net)},
            )

        monthly_ctc = round_money(
            net + total_employee_deductions + total_employer_contributions
        )
        settlement = Settlement(
            net_take_home=net,
            monthly_ctc=monthly_ctc,
            annual_ctc=monthly_ctc * MONTHS_PER_YEAR,
        )
        logger.debug(
            "settlement_calculated",
            extra={
                "net_take_home": str(net),
                "monthly_ctc": str(monthly_ctc),
            },
        )
        return settlement
