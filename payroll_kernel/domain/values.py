"""
Values -- Decimal helpers shared by every payroll calculator.

Responsibility:
    Single place that defines how amounts are coerced and rounded.  The
    engine is single-currency; amounts are plain ``Decimal`` quantized to
    two places with ROUND_HALF_UP.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic; floats are converted via ``str`` so binary
      artefacts never leak into amounts.
    - Every calculator output is quantized with ``round_money`` so sums of
      stored fields are exact (monthly_ctc identity holds on reload).
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MONEY_PLACES = Decimal("0.01")


def to_decimal(value: object, field_name: str = "value") -> Decimal:
    """Coerce ``value`` to Decimal.

    Raises:
        ValueError: if the value is None, a bool, or not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{field_name} must be numeric, got {value!r}") from exc


def round_money(amount: Decimal) -> Decimal:
    """Quantize to 0.01 with ROUND_HALF_UP."""
    return amount.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def floor_zero(amount: Decimal) -> Decimal:
    """Clamp negative amounts to a zero quantized like any other amount."""
    return amount if amount > ZERO else round_money(ZERO)


def coerce_input(
    value: object,
    field_name: str,
    employee_code: str | None,
    error: Callable[[str | None, str], Exception],
) -> Decimal:
    """
    ``to_decimal`` for calculator inputs.

    A missing or non-numeric value is raised as ``error(employee_code,
    reason)``, e.g. ``InvalidAttendanceError``, so it carries an error code.
    """
    try:
        return to_decimal(value, field_name)
    except ValueError as exc:
        raise error(employee_code, str(exc)) from exc
