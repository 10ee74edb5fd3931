"""
restopos/utils/money.py
-----------------------
Decimal helpers for currency values.

Money never touches float: payloads arrive as numbers or strings and are
converted through str() before becoming Decimal.
"""
from decimal import Decimal, ROUND_HALF_UP


Q    = Decimal('0.01')   # quantize target
ZERO = Decimal('0')

Money = Decimal


def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x if x is not None else '0'))


def round_money(x) -> Money:
    return D(x).quantize(Q, rounding=ROUND_HALF_UP)


def to_string_money(x) -> str:
    return str(round_money(x))
