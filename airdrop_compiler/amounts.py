"""
Exact decimal arithmetic for balances.

All balance math runs inside `balance_context()`: a local decimal context wide
enough that sums and products of accepted balances and rates stay exact. Any
operation that would have to round raises `decimal.Inexact` instead of
silently dropping value. Only `floor_to_integer` rounds, and always down.
Nothing here touches float.
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from decimal import ROUND_FLOOR, Decimal, Inexact, InvalidOperation, localcontext
from typing import Iterator

# ─── Chain Constants ─────────────────────────────────────────────────

SOURCE_DECIMALS = 6  # XRP: 1 XRP = 10^6 drops
DESTINATION_DECIMALS = 18  # FLR: 1 FLR = 10^18 wei
UNIT_SCALE = Decimal(10) ** (DESTINATION_DECIMALS - SOURCE_DECIMALS)

# One billion FLR, in wei
MAX_DESTINATION_BALANCE = Decimal(10) ** 27

# Significant digits kept by intermediate products
DECIMAL_PRECISION = 80

# Largest balance string accepted from the ledger export. A wei balance of
# 10^30 is a thousand times the whole FLR cap; 18 places covers wei.
MAX_INTEGER_DIGITS = 30
MAX_FRACTION_DIGITS = 18

# Digits, optionally followed by a fractional part. No sign, exponent,
# separators, currency symbols, or whitespace.
_BASE_TEN_NUMBER = re.compile(
    rf"[0-9]{{1,{MAX_INTEGER_DIGITS}}}(\.[0-9]{{1,{MAX_FRACTION_DIGITS}}})?"
)


@contextmanager
def balance_context(exact: bool = True) -> Iterator[None]:
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        ctx.rounding = ROUND_FLOOR
        ctx.traps[InvalidOperation] = True
        ctx.traps[Inexact] = exact
        yield


def is_base_ten_number(value: str) -> bool:
    """True if `value` is a plain non-negative base-10 decimal string.

    At most MAX_INTEGER_DIGITS before the point and MAX_FRACTION_DIGITS after.
    """
    return isinstance(value, str) and _BASE_TEN_NUMBER.fullmatch(value) is not None


def parse_balance(value: str) -> Decimal:
    """Parse a balance string that already passed `is_base_ten_number`.

    Raises:
        ValueError: if `value` is not a plain base-10 decimal.
    """
    if not is_base_ten_number(value):
        raise ValueError(f"Not a base-10 number: {value!r}")
    return Decimal(value)


def floor_to_integer(value: Decimal) -> int:
    """Round down to zero decimal places."""
    with balance_context(exact=False):
        return int(value.quantize(Decimal(1), rounding=ROUND_FLOOR))


def to_hex(value: int) -> str:
    """Lowercase base-16 rendering without prefix, as downstream encoders expect."""
    if value < 0:
        raise ValueError(f"Balance cannot be negative: {value}")
    return format(value, "x")
