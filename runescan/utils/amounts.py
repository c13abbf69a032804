"""
Amount conversion utilities.
Node values arrive as BTC decimals and are stored as integer satoshis.
"""

from decimal import Decimal, getcontext
from typing import Union

getcontext().prec = 50

SATS_PER_BTC = Decimal("100000000")


def btc_to_sats(value: Union[str, int, float, Decimal, None]) -> int:
    """Convert a BTC amount to satoshis without binary float rounding"""
    if value is None:
        return 0
    btc = value if isinstance(value, Decimal) else Decimal(str(value))
    return int((btc * SATS_PER_BTC).to_integral_value())


def fee_rate(fee: Union[int, Decimal], weight: Union[int, Decimal]) -> Decimal:
    """Fee rate in sat/vB, rounded to 2 decimals"""
    virtual_size = Decimal(weight) / 4
    if virtual_size <= 0:
        raise ValueError(f"Invalid transaction weight: {weight}")
    return (Decimal(fee) / virtual_size).quantize(Decimal("0.01"))
