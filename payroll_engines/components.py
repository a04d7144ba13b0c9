"""
Component Engine - Split adjusted gross into payslip components.

Pure functions with no I/O.  Structures are data: each employee category
maps to a ``ComponentStructure`` in the active policy, so adding a category
never touches this module.

    basic   = gross * basic_ratio
    hra     = basic * hra_ratio
    da      = basic * da_ratio
    special = gross - basic - hra - da [- sales_deduction]
    variable_pay = sales_incentive (commission-eligible structures only)

Every component is quantized to 0.01 and floored at zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from payroll_kernel.domain.values import ZERO, floor_zero, round_money
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.components")

_ONE = Decimal("1")


class SalesDeductionPolicy(str, Enum):
    """
    Where a commission-eligible employee's sales deduction is shown.

    COMPONENT_AND_NET: the special allowance is reduced by the deduction
        and net pay is reduced by it as well.  Net pay equals the sum of
        components minus employee deductions.
    NET_ONLY: the special allowance is left whole; the deduction appears
        only as a line against net pay.

    Net take-home is identical under both unless flooring the special
    allowance at zero kicks in.
    """

    COMPONENT_AND_NET = "component_and_net"
    NET_ONLY = "net_only"


@dataclass(frozen=True)
class ComponentStructure:
    """Ratios that split an adjusted gross into components."""

    basic_ratio: Decimal
    hra_ratio: Decimal
    da_ratio: Decimal = ZERO
    commission_eligible: bool = False

    def __post_init__(self) -> None:
        for name in ("basic_ratio", "hra_ratio", "da_ratio"):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                raise ValueError(f"{name} must be a Decimal, got {type(value).__name__}")
            if value < ZERO or value > _ONE:
                raise ValueError(f"{name} must be within 0..1 ({value})")


SALES_STRUCTURE = ComponentStructure(
    basic_ratio=Decimal("0.50"),
    hra_ratio=Decimal("0.50"),
    da_ratio=ZERO,
    commission_eligible=True,
)

BACKEND_STRUCTURE = ComponentStructure(
    basic_ratio=Decimal("0.60"),
    hra_ratio=Decimal("0.50"),
    da_ratio=Decimal("0.05"),
    commission_eligible=False,
)


@dataclass(frozen=True)
class SalaryComponents:
    basic: Decimal
    hra: Decimal
    da: Decimal
    special_allowance: Decimal
    variable_pay: Decimal

    @property
    def total(self) -> Decimal:
        return self.basic + self.hra + self.da + self.special_allowance + self.variable_pay


class ComponentAllocator:
    """Allocates adjusted gross across payslip components."""

    def __init__(
        self,
        sales_deduction_policy: SalesDeductionPolicy = SalesDeductionPolicy.COMPONENT_AND_NET,
    ):
        self._sales_deduction_policy = sales_deduction_policy

    def allocate(
        self,
        adjusted_gross: Decimal,
        structure: ComponentStructure,
        sales_deduction: Decimal = ZERO,
        sales_incentive: Decimal = ZERO,
    ) -> SalaryComponents:
        basic = floor_zero(round_money(adjusted_gross * structure.basic_ratio))
        hra = floor_zero(round_money(basic * structure.hra_ratio))
        da = floor_zero(round_money(basic * structure.da_ratio))

        special = adjusted_gross - basic - hra - da
        variable_pay = round_money(ZERO)
        if structure.commission_eligible:
            variable_pay = floor_zero(round_money(sales_incentive))
            if self._sales_deduction_policy is SalesDeductionPolicy.COMPONENT_AND_NET:
                special -= sales_deduction
        special = floor_zero(round_money(special))

        components = SalaryComponents(
            basic=basic,
            hra=hra,
            da=da,
            special_allowance=special,
            variable_pay=variable_pay,
        )
        logger.debug(
            "components_allocated",
            extra={
                "adjusted_gross": str(adjusted_gross),
                "basic": str(basic),
                "hra": str(hra),
                "da": str(da),
                "special_allowance": str(special),
                "variable_pay": str(variable_pay),
            },
        )
        return components
