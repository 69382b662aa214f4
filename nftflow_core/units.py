"""
Native currency units for NFTFlow.

The ledger counts its native currency in micro-units:

    1 ALGO = 1,000,000 microalgos (smallest indivisible unit)

All amounts passed to builders and returned by balance queries are
integer micro-units.  Conversion to whole units only happens for display.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

# Number of decimal places of the native currency.
ALGO_DECIMALS: int = 6

# Smallest representable unit: 1 microalgo = 0.000001 ALGO.
MICROALGOS_PER_ALGO: int = 10 ** ALGO_DECIMALS  # 1_000_000

CURRENCY_SYMBOL: str = "ALGO"


def parse_currency(value: float | int | str | Decimal) -> int:
    """Convert a whole-unit amount to integer micro-units.

    >>> parse_currency(5)
    5000000
    >>> parse_currency("0.1")
    100000
    """
    micro = Decimal(str(value)) * MICROALGOS_PER_ALGO
    if micro != micro.to_integral_value():
        raise ValueError(f"{value} has more than {ALGO_DECIMALS} decimal places")
    if micro < 0:
        raise ValueError("Currency amounts cannot be negative")
    return int(micro)


def format_currency(micro: int, decimals: int = 4) -> str:
    """Render micro-units as whole units, truncated to *decimals* places.

    Trailing zeros are dropped:

    >>> format_currency(10_000_000)
    '10'
    >>> format_currency(9_998_765)
    '9.9987'
    """
    whole = Decimal(micro) / MICROALGOS_PER_ALGO
    quantum = Decimal(1).scaleb(-decimals)
    text = format(whole.quantize(quantum, rounding=ROUND_DOWN), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def fmt(micro: int) -> str:
    """Return ``'<amount> ALGO'`` for display."""
    return f"{format_currency(micro, 4)} {CURRENCY_SYMBOL}"
