"""Fixed-precision money helpers. Amounts are always Decimal, never float."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored or user-supplied value to Decimal.

    Floats go through ``str`` so 0.03 stays 0.03 rather than its binary
    approximation. ``None`` is treated as zero.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"invalid money value: {value!r}") from exc


def quantize_cents(amount: Decimal) -> Decimal:
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal) -> str:
    """Two-decimal text used by CSV exports."""
    return f"{quantize_cents(amount):.2f}"


def compound(amount: Decimal, rate: Decimal, periods: int) -> Decimal:
    """``amount × (1 + rate) ** periods`` rounded to cents."""
    if periods <= 0 or not rate:
        return quantize_cents(amount)
    return quantize_cents(amount * (ONE + rate) ** periods)


def money_sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def clamp_non_negative(amount: Decimal) -> Decimal:
    return amount if amount > ZERO else ZERO
