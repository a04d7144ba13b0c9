"""
Compensation Pipeline - Full single-employee computation.

Chains the calculators in their dependency order:

    attendance -> performance -> components -> statutory
               -> contributions -> settlement

Pure and deterministic.  The same ``CompensationInputs`` always produce
the same ``CompensationBreakdown``; this is what lets a stored payroll
record be replayed from its snapshot and verified.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from payroll_engines.attendance import AttendanceAdjuster
from payroll_engines.components import (
    ComponentAllocator,
    ComponentStructure,
    SalaryComponents,
    SalesDeductionPolicy,
)
from payroll_engines.contributions import ContributionCalculator, EmployerContributions
from payroll_engines.performance import (
    DEFAULT_INCENTIVE_CEILING_FACTOR,
    PerformanceEvaluator,
    PerformanceResult,
    PerformanceRules,
)
from payroll_engines.settlement import Settlement, SettlementCalculator
from payroll_engines.statutory import (
    StatutoryCalculator,
    StatutoryDeductions,
    StatutoryRates,
)
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import ZERO


@dataclass(frozen=True)
class CompensationInputs:
    """Everything the pipeline reads.  Persisted on the record as its snapshot."""

    employee_code: str
    base_salary: Decimal
    total_days: Decimal
    present_days: Decimal
    eligible_days: Decimal
    structure: ComponentStructure
    rules: PerformanceRules
    target_sales: Decimal = ZERO
    actual_sales: Decimal = ZERO
    pf_applicable: bool = True
    esic_applicable: bool = True
    professional_tax: Decimal = ZERO
    tds: Decimal = ZERO


@dataclass(frozen=True)
class CompensationBreakdown:
    adjusted_gross: Decimal
    performance: PerformanceResult
    components: SalaryComponents
    deductions: StatutoryDeductions
    contributions: EmployerContributions
    settlement: Settlement

    def as_fields(self) -> dict[str, Any]:
        """Flatten into payroll record column names."""
        return {
            "adjusted_gross": self.adjusted_gross,
            "sales_percentage": self.performance.sales_percentage,
            "sales_deduction": self.performance.sales_deduction,
            "sales_incentive": self.performance.sales_incentive,
            "performance_status": self.performance.status,
            "performance_color": self.performance.color,
            "basic": self.components.basic,
            "hra": self.components.hra,
            "da": self.components.da,
            "special_allowance": self.components.special_allowance,
            "variable_pay": self.components.variable_pay,
            "epf_employee": self.deductions.epf_employee,
            "esic_employee": self.deductions.esic_employee,
            "professional_tax": self.deductions.professional_tax,
            "tds": self.deductions.tds,
            "total_employee_deductions": self.deductions.total,
            "epf_employer": self.contributions.epf_employer,
            "esic_employer": self.contributions.esic_employer,
            "gratuity": self.contributions.gratuity,
            "total_employer_contributions": self.contributions.total,
            "net_take_home": self.settlement.net_take_home,
            "monthly_ctc": self.settlement.monthly_ctc,
            "annual_ctc": self.settlement.annual_ctc,
        }


class CompensationPipeline:
    def __init__(
        self,
        statutory_rates: StatutoryRates | None = None,
        incentive_ceiling_factor: Decimal = DEFAULT_INCENTIVE_CEILING_FACTOR,
        sales_deduction_policy: SalesDeductionPolicy = SalesDeductionPolicy.COMPONENT_AND_NET,
    ):
        self._attendance = AttendanceAdjuster()
        self._performance = PerformanceEvaluator(incentive_ceiling_factor)
        self._components = ComponentAllocator(sales_deduction_policy)
        self._statutory = StatutoryCalculator(statutory_rates)
        self._contributions = ContributionCalculator(statutory_rates)
        self._settlement = SettlementCalculator()

    @traced_engine("compensation", "1.0", fingerprint_fields=("inputs",))
    def compute(self, inputs: CompensationInputs) -> CompensationBreakdown:
        code = inputs.employee_code
        gross = self._attendance.adjust(
            base_salary=inputs.base_salary,
            total_days=inputs.total_days,
            eligible_days=inputs.eligible_days,
            present_days=inputs.present_days,
            employee_code=code,
        )
        performance = self._performance.evaluate(
            adjusted_gross=gross,
            target_sales=inputs.target_sales,
            actual_sales=inputs.actual_sales,
            rules=inputs.rules,
            commission_eligible=inputs.structure.commission_eligible,
            employee_code=code,
        )
        components = self._components.allocate(
            adjusted_gross=gross,
            structure=inputs.structure,
            sales_deduction=performance.sales_deduction,
            sales_incentive=performance.sales_incentive,
        )
        deductions = self._statutory.calculate(
            basic=components.basic,
            adjusted_gross=gross,
            professional_tax=inputs.professional_tax,
            tds=inputs.tds,
            pf_applicable=inputs.pf_applicable,
            esic_applicable=inputs.esic_applicable,
            employee_code=code,
        )
        contributions = self._contributions.calculate(
            basic=components.basic,
            adjusted_gross=gross,
            pf_applicable=inputs.pf_applicable,
            esic_applicable=inputs.esic_applicable,
        )
        settlement = self._settlement.settle(
            adjusted_gross=gross,
            variable_pay=components.variable_pay,
            total_employee_deductions=deductions.total,
            sales_deduction=performance.sales_deduction,
            total_employer_contributions=contributions.total,
        )
        return CompensationBreakdown(
            adjusted_gross=gross,
            performance=performance,
            components=components,
            deductions=deductions,
            contributions=contributions,
            settlement=settlement,
        )
