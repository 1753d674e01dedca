"""
Currency rounding.

Python's round() is banker's rounding (2.5 → 2). Valuations are quoted
half-up (2.5 → 3), the way a price list is read.
"""
from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_one_decimal(value: float) -> float:
    return round_half_up(value * 10) / 10
