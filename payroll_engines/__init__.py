"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    payroll calculators.  This is the canonical import surface for higher
    layers (payroll_config, payroll_modules, payroll_batch).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel (domain values, exceptions, logging).
    MUST NOT import payroll_modules, payroll_services or payroll_batch.

Invariants enforced:
    - Purity: engines never read the clock or the database.
    - Decimal-only arithmetic, quantized to 0.01 at every output.
    - Determinism: identical inputs always produce identical outputs.
"""

from payroll_engines.attendance import AttendanceAdjuster
from payroll_engines.components import (
    BACKEND_STRUCTURE,
    SALES_STRUCTURE,
    ComponentAllocator,
    ComponentStructure,
    SalaryComponents,
    SalesDeductionPolicy,
)
from payroll_engines.contributions import ContributionCalculator, EmployerContributions
from payroll_engines.performance import (
    DEFAULT_INCENTIVE_CEILING_FACTOR,
    PerformanceColor,
    PerformanceEvaluator,
    PerformanceResult,
    PerformanceRules,
    PerformanceStatus,
)
from payroll_engines.pipeline import (
    CompensationBreakdown,
    CompensationInputs,
    CompensationPipeline,
)
from payroll_engines.settlement import Settlement, SettlementCalculator
from payroll_engines.statutory import (
    StatutoryCalculator,
    StatutoryDeductions,
    StatutoryRates,
)

__all__ = [
    "AttendanceAdjuster",
    "BACKEND_STRUCTURE",
    "SALES_STRUCTURE",
    "ComponentAllocator",
    "ComponentStructure",
    "SalaryComponents",
    "SalesDeductionPolicy",
    "ContributionCalculator",
    "EmployerContributions",
    "DEFAULT_INCENTIVE_CEILING_FACTOR",
    "PerformanceColor",
    "PerformanceEvaluator",
    "PerformanceResult",
    "PerformanceRules",
    "PerformanceStatus",
    "CompensationBreakdown",
    "CompensationInputs",
    "CompensationPipeline",
    "Settlement",
    "SettlementCalculator",
    "StatutoryCalculator",
    "StatutoryDeductions",
    "StatutoryRates",
]
