"""
Contribution Engine - Employer-side statutory contributions.

Pure functions with no I/O.  Uses the same ``StatutoryRates`` as the
employee-side calculator:

    epf_employer    = same formula and ceiling as epf_employee
    esic_employer   = gross * esic_employer_rate   (gross <= ceiling)
    gratuity        = basic * gratuity_rate
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from payroll_engines.statutory import StatutoryCalculator, StatutoryRates
from payroll_kernel.domain.values import ZERO, round_money
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.contributions")


@dataclass(frozen=True)
class EmployerContributions:
    epf_employer: Decimal
    esic_employer: Decimal
    gratuity: Decimal

    @property
    def total(self) -> Decimal:
        return self.epf_employer + self.esic_employer + self.gratuity


class ContributionCalculator:
    def __init__(self, rates: StatutoryRates | None = None):
        self._statutory = StatutoryCalculator(rates)

    def calculate(
        self,
        basic: Decimal,
        adjusted_gross: Decimal,
        pf_applicable: bool = True,
        esic_applicable: bool = True,
    ) -> EmployerContributions:
        rates = self._statutory.rates
        esic = round_money(ZERO)
        if self._statutory.esic_eligible(adjusted_gross, esic_applicable):
            esic = round_money(adjusted_gross * rates.esic_employer_rate)

        contributions = EmployerContributions(
            epf_employer=self._statutory.epf(basic, pf_applicable),
            esic_employer=esic,
            gratuity=round_money(basic * rates.gratuity_rate),
        )
        logger.debug(
            "employer_contributions_calculated",
            extra={
                "epf_employer": str(contributions.epf_employer),
                "esic_employer": str(contributions.esic_employer),
                "gratuity": str(contributions.gratuity),
            },
        )
        return contributions
