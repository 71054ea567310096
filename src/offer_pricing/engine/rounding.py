"""
Financial rounding helpers.

Every derived amount in the engine goes through ``round_money`` at the
point it is derived. Rounding works on the shortest decimal form of the
float (``repr``), so values such as 36.14625 round half-up to 36.15
instead of falling to 36.14 on binary noise.
"""
from decimal import Decimal, ROUND_HALF_UP, localcontext

from ..exceptions import ValidationError

# Floor for the working precision; raised further for very large values
MIN_PRECISION = 28


def _to_decimal(value: float) -> Decimal:
    return Decimal(repr(float(value)))


def round_money(value: float, precision: int = 2) -> float:
    """Round to ``precision`` decimal places, half away from zero."""
    amount = _to_decimal(value)
    quantum = Decimal(1).scaleb(-precision)
    with localcontext() as ctx:
        # quantize needs every digit left of the quantum
        ctx.prec = max(MIN_PRECISION, amount.adjusted() + precision + 2)
        return float(amount.quantize(quantum, rounding=ROUND_HALF_UP))


def round_to_step(value: float, step: float = 1) -> float:
    """
    Snap ``value`` to the nearest multiple of ``step``.

    >>> round_to_step(16.39, 0.5)
    16.5
    """
    if step is None or step <= 0:
        raise ValidationError(f"Rounding step must be positive, got {step!r}", field='step')
    amount, increment = _to_decimal(value), _to_decimal(step)
    with localcontext() as ctx:
        ctx.prec = max(MIN_PRECISION, amount.adjusted() - increment.adjusted() + MIN_PRECISION)
        steps = (amount / increment).quantize(Decimal(1), rounding=ROUND_HALF_UP)
        snapped = float(steps * increment)
    return round_money(snapped)
