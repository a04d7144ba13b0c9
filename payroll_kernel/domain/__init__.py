"""
Pure domain layer.

Contains the clock abstraction and Decimal helpers shared by every layer.
No dependencies on ORM, database or I/O.
"""

from payroll_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payroll_kernel.domain.values import (
    HUNDRED,
    ZERO,
    coerce_input,
    floor_zero,
    round_money,
    to_decimal,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "HUNDRED",
    "ZERO",
    "coerce_input",
    "floor_zero",
    "round_money",
    "to_decimal",
]
