"""Human decimal amounts ↔ integer base units."""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Union

from ..core.swap.errors import InvalidAmount

AmountLike = Union[str, int, Decimal]

# 2**256 - 1 has 78 digits
MAX_UINT256_DIGITS = 78


def parse_decimal_amount(value: AmountLike) -> Decimal:
    """Parse a user-supplied amount into a positive finite ``Decimal``."""

    if isinstance(value, bool):
        raise InvalidAmount(f"Amount must be a decimal string, got {value!r}")
    text = str(value).strip().replace(",", "").replace("_", "")
    if not text:
        raise InvalidAmount("Amount is required")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise InvalidAmount(f"'{value}' is not a valid decimal amount")
    if not amount.is_finite():
        raise InvalidAmount(f"'{value}' is not a finite amount")
    if amount <= 0:
        raise InvalidAmount(f"Amount must be positive, got '{value}'")
    return amount


def to_base_units(amount: AmountLike, decimals: int) -> int:
    """Convert a human amount to base units, truncating dust below 10**-decimals."""

    parsed = parse_decimal_amount(amount)
    if parsed.adjusted() + decimals >= MAX_UINT256_DIGITS:
        raise InvalidAmount(f"Amount '{amount}' is too large")

    # exact: the context must hold every integer digit of the scaled amount
    sign, digits, exponent = parsed.as_tuple()
    with localcontext() as ctx:
        ctx.prec = len(digits) + max(exponent, 0) + decimals + 2
        scaled = parsed.scaleb(decimals).quantize(Decimal(1), rounding=ROUND_DOWN)
    base_units = int(scaled)
    if base_units <= 0:
        raise InvalidAmount(
            f"Amount '{amount}' is smaller than the token's smallest unit (decimals={decimals})"
        )
    return base_units


def from_base_units(base_units: int, decimals: int) -> str:
    """Format base units as a plain decimal string without trailing zeros."""

    base_units = int(base_units)
    sign = "-" if base_units < 0 else ""
    whole, fraction = divmod(abs(base_units), 10 ** decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0") if decimals else ""
    if fraction_text:
        return f"{sign}{whole}.{fraction_text}"
    return f"{sign}{whole}"


__all__ = ["parse_decimal_amount", "to_base_units", "from_base_units"]
