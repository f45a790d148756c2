from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0")


def to_decimal(value: Any, default: Decimal | None = ZERO) -> Decimal | None:
    """Coerce a wire value to Decimal via its string form.

    Missing, boolean and non-numeric values fall back to ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default
    if not result.is_finite():
        return default
    return result


def to_quantity(value: Any) -> int:
    """Coerce a wire quantity to int; missing or unparsable values become 0."""
    number = to_decimal(value)
    if number is None:
        return 0
    return int(number)


def _cents_precision(value: Decimal) -> int:
    """Significant digits needed to hold ``value`` to the cent."""
    if not value:
        return 1
    return max(value.adjusted(), 0) + 3


def round2(value: Decimal) -> Decimal:
    """Round a money value to cents, half-up, whatever its magnitude."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, _cents_precision(value))
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def sum_rounded(values: Iterable[Decimal]) -> Decimal:
    """Sum already-rounded values and round the total again."""
    values = list(values)
    with localcontext() as ctx:
        # One extra digit per addend covers every carry
        ctx.prec = max([ctx.prec] + [_cents_precision(v) + len(values) for v in values])
        total = sum(values, ZERO)
    return round2(total)
