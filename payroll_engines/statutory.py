"""
Statutory Engine - Employee-side statutory deductions.

Pure functions with no I/O.

    epf_employee  = min(basic * epf_rate, epf_ceiling)      if pf_applicable
    esic_employee = gross * esic_employee_rate               if esic_applicable
                                                             and gross <= ceiling
    total         = epf + esic + professional_tax + tds

Usage:
    from payroll_engines.statutory import StatutoryCalculator

    deductions = StatutoryCalculator().calculate(
        basic=Decimal("16800"),
        adjusted_gross=Decimal("28000"),
        professional_tax=Decimal("200"),
    )
    print(deductions.total)  # 2000.00
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from payroll_kernel.domain.values import ZERO, coerce_input, round_money
from payroll_kernel.exceptions import InvalidCompensationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.statutory")


@dataclass(frozen=True)
class StatutoryRates:
    """
    Statutory rates and ceilings.

    Shared by the employee-side and employer-side calculators so that both
    always read the same EPF and ESIC thresholds.
    """

    epf_rate: Decimal = Decimal("0.12")
    epf_ceiling: Decimal = Decimal("1800")
    esic_wage_ceiling: Decimal = Decimal("21000")
    esic_employee_rate: Decimal = Decimal("0.0075")
    esic_employer_rate: Decimal = Decimal("0.0325")
    gratuity_rate: Decimal = Decimal("0.0481")

    def __post_init__(self) -> None:
        for name in (
            "epf_rate",
            "epf_ceiling",
            "esic_wage_ceiling",
            "esic_employee_rate",
            "esic_employer_rate",
            "gratuity_rate",
        ):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                raise ValueError(f"{name} must be a Decimal, got {type(value).__name__}")
            if value < ZERO:
                raise ValueError(f"{name} cannot be negative ({value})")


@dataclass(frozen=True)
class StatutoryDeductions:
    epf_employee: Decimal
    esic_employee: Decimal
    professional_tax: Decimal
    tds: Decimal

    @property
    def total(self) -> Decimal:
        return self.epf_employee + self.esic_employee + self.professional_tax + self.tds


class StatutoryCalculator:
    """Computes employee statutory deductions for one payroll period."""

    def __init__(self, rates: StatutoryRates | None = None):
        self._rates = rates or StatutoryRates()

    @property
    def rates(self) -> StatutoryRates:
        return self._rates

    def epf(self, basic: Decimal, applicable: bool = True) -> Decimal:
        """EPF on basic, capped at the monthly ceiling."""
        if not applicable:
            return round_money(ZERO)
        return round_money(min(basic * self._rates.epf_rate, self._rates.epf_ceiling))

    def esic_eligible(self, adjusted_gross: Decimal, applicable: bool = True) -> bool:
        return applicable and adjusted_gross <= self._rates.esic_wage_ceiling

    def calculate(
        self,
        basic: Decimal,
        adjusted_gross: Decimal,
        professional_tax: Decimal = ZERO,
        tds: Decimal = ZERO,
        pf_applicable: bool = True,
        esic_applicable: bool = True,
        employee_code: str | None = None,
    ) -> StatutoryDeductions:
        professional_tax = coerce_input(
            professional_tax, "professional_tax", employee_code, InvalidCompensationError
        )
        tds = coerce_input(tds, "tds", employee_code, InvalidCompensationError)
        if professional_tax < ZERO:
            raise InvalidCompensationError(
                employee_code, f"professional_tax cannot be negative ({professional_tax})"
            )
        if tds < ZERO:
            raise InvalidCompensationError(employee_code, f"tds cannot be negative ({tds})")

        esic = round_money(ZERO)
        if self.esic_eligible(adjusted_gross, esic_applicable):
            esic = round_money(adjusted_gross * self._rates.esic_employee_rate)

        deductions = StatutoryDeductions(
            epf_employee=self.epf(basic, pf_applicable),
            esic_employee=esic,
            professional_tax=round_money(professional_tax),
            tds=round_money(tds),
        )
        logger.debug(
            "statutory_deductions_calculated",
            extra={
                "employee_code": employee_code,
                "epf_employee": str(deductions.epf_employee),
                "esic_employee": str(deductions.esic_employee),
                "total_deductions": str(deductions.total),
            },
        )
        return deductions
