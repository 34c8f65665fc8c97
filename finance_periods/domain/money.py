"""
Money -- two-decimal currency amounts in integer minor units.

Responsibility:
    Converts boundary amounts (Decimal, int, numeric strings, floats) into
    integer cents so that batch totals are summed exactly, and back into
    two-place Decimals for messages and DTOs.

Architecture position:
    Domain -- pure functions, zero I/O.

Failure modes:
    - ValueError for negative, non-finite, non-numeric, or over-precise
      amounts.  Callers that need a line number wrap the error themselves.
"""

from decimal import Decimal, Inexact, InvalidOperation, getcontext, localcontext

MINOR_UNIT_EXPONENT = 2
_CENTS = Decimal(10) ** MINOR_UNIT_EXPONENT


def _exact_context(digits: int):
    """Local context wide enough to rescale ``digits`` digits without rounding."""
    context = getcontext().copy()
    context.prec = max(context.prec, digits + MINOR_UNIT_EXPONENT)
    context.traps[Inexact] = True
    return localcontext(context)


def to_decimal(value: Decimal | int | str | float) -> Decimal:
    """
    Coerce a boundary amount to Decimal.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.
    """
    if isinstance(value, bool):
        raise ValueError(f"amount must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"amount must be numeric, got {value!r}") from exc
    else:
        raise ValueError(f"amount must be numeric, got {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"amount must be finite, got {value!r}")
    return result


def to_minor_units(value: Decimal | int | str | float) -> int:
    """
    Convert an amount to integer minor units (cents).

    Raises:
        ValueError: amount is negative, non-finite, or has more than two
            decimal places.
    """
    amount = to_decimal(value)
    if amount < 0:
        raise ValueError(f"amount cannot be negative, got {amount}")
    with _exact_context(len(amount.as_tuple().digits)):
        scaled = amount * _CENTS
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"amount cannot have more than {MINOR_UNIT_EXPONENT} decimal places, got {amount}"
        )
    return int(scaled)


def from_minor_units(minor: int) -> Decimal:
    """Convert integer minor units back to a two-place Decimal."""
    with _exact_context(len(str(abs(minor)))):
        return Decimal(minor).scaleb(-MINOR_UNIT_EXPONENT)


def format_amount(amount: Decimal, symbol: str = "$") -> str:
    """Format an amount for messages, e.g. ``$1,234.50`` or ``-$12.50``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
