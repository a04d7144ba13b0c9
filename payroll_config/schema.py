"""
PayrollPolicy schema.

Defines the human-authored, reviewable payroll policy.  YAML sets are
parsed into these frozen types by the loader; engines receive the pieces
they need by parameter and never read configuration themselves.

Every threshold the calculators use lives here: statutory rates and
ceilings, component ratios per employee category, the incentive ceiling
factor, default performance rules, the professional-tax schedule, the
sales-deduction policy switch and batch settings.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from payroll_engines.components import (
    BACKEND_STRUCTURE,
    SALES_STRUCTURE,
    ComponentStructure,
    SalesDeductionPolicy,
)
from payroll_engines.performance import DEFAULT_INCENTIVE_CEILING_FACTOR, PerformanceRules
from payroll_engines.pipeline import CompensationPipeline
from payroll_engines.statutory import StatutoryRates

_ZERO = Decimal("0")
_ONE = Decimal("1")


# ---------------------------------------------------------------------------
# Professional tax
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProfessionalTaxSchedule:
    """Flat monthly professional tax, optionally overridden per state."""

    default_amount: Decimal = Decimal("200")
    by_state: dict[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.default_amount < _ZERO:
            raise ValueError(
                f"professional_tax default_amount cannot be negative ({self.default_amount})"
            )
        for state, amount in self.by_state.items():
            if amount < _ZERO:
                raise ValueError(f"professional_tax for {state} cannot be negative ({amount})")

    def amount_for(self, state: str | None, applicable: bool = True) -> Decimal:
        if not applicable:
            return _ZERO
        if state is not None:
            return self.by_state.get(state.upper(), self.default_amount)
        return self.default_amount


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BatchSettings:
    """Worker pool bound for period runs.  1 means sequential."""

    max_workers: int = 4

    def __post_init__(self) -> None:
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ValueError(f"max_workers must be a positive integer ({self.max_workers!r})")


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


def _default_structures() -> dict[str, ComponentStructure]:
    return {"SALES": SALES_STRUCTURE, "BACKEND": BACKEND_STRUCTURE}


@dataclass(frozen=True)
class PayrollPolicy:
    """
    The complete payroll policy in effect for a run.

    ``structures`` maps an employee category to its component structure;
    categories without an entry use ``default_structure``.
    """

    policy_id: str = "default"
    version: int = 1
    statutory: StatutoryRates = field(default_factory=StatutoryRates)
    structures: dict[str, ComponentStructure] = field(default_factory=_default_structures)
    default_structure: str = "BACKEND"
    incentive_ceiling_factor: Decimal = DEFAULT_INCENTIVE_CEILING_FACTOR
    default_rules: PerformanceRules = field(default_factory=PerformanceRules)
    professional_tax: ProfessionalTaxSchedule = field(default_factory=ProfessionalTaxSchedule)
    sales_deduction_policy: SalesDeductionPolicy = SalesDeductionPolicy.COMPONENT_AND_NET
    batch: BatchSettings = field(default_factory=BatchSettings)
    checksum: str = ""

    def __post_init__(self) -> None:
        if self.default_structure not in self.structures:
            raise ValueError(
                f"default_structure {self.default_structure!r} has no component structure"
            )
        if self.incentive_ceiling_factor < _ZERO or self.incentive_ceiling_factor > _ONE:
            raise ValueError(
                f"incentive_ceiling_factor must be within 0..1 ({self.incentive_ceiling_factor})"
            )

    def structure_for(self, category: str) -> ComponentStructure:
        return self.structures.get(category, self.structures[self.default_structure])

    def pipeline(self) -> CompensationPipeline:
        """Build a calculator pipeline parameterized by this policy."""
        return CompensationPipeline(
            statutory_rates=self.statutory,
            incentive_ceiling_factor=self.incentive_ceiling_factor,
            sales_deduction_policy=self.sales_deduction_policy,
        )

    def with_sales_deduction_policy(self, policy: SalesDeductionPolicy) -> PayrollPolicy:
        """Copy of this policy with a different sales-deduction switch.

        The checksum is cleared; callers that need one re-run it through
        ``payroll_config.loader.seal_policy``.
        """
        return dataclasses.replace(self, sales_deduction_policy=policy, checksum="")

    def to_dict(self) -> dict[str, Any]:
        """Canonical, JSON-friendly form used for checksumming."""
        return {
            "policy_id": self.policy_id,
            "version": self.version,
            "statutory": {
                f.name: str(getattr(self.statutory, f.name))
                for f in dataclasses.fields(self.statutory)
            },
            "structures": {
                name: {
                    "basic_ratio": str(s.basic_ratio),
                    "hra_ratio": str(s.hra_ratio),
                    "da_ratio": str(s.da_ratio),
                    "commission_eligible": s.commission_eligible,
                }
                for name, s in sorted(self.structures.items())
            },
            "default_structure": self.default_structure,
            "incentive_ceiling_factor": str(self.incentive_ceiling_factor),
            "default_rules": {
                "safety_floor": str(self.default_rules.safety_floor),
                "buffer_threshold": str(self.default_rules.buffer_threshold),
                "deduction_percentage": str(self.default_rules.deduction_percentage),
            },
            "professional_tax": {
                "default_amount": str(self.professional_tax.default_amount),
                "states": {
                    k: str(v) for k, v in sorted(self.professional_tax.by_state.items())
                },
            },
            "sales_deduction_policy": self.sales_deduction_policy.value,
            "batch": {"max_workers": self.batch.max_workers},
        }
