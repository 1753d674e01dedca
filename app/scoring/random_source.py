"""
Injectable randomness for the Premium and Business tiers.

Every bounded draw in trend and demand synthesis goes through a RandomSource,
so a test can pin the sequence and assert exact numbers.
"""
from __future__ import annotations

import random
from typing import Optional, Protocol


class RandomSource(Protocol):
    def next(self) -> float:
        """Return a float in [0, 1)."""
        ...


class SeededRandomSource:
    """random.Random wrapper; seed=None draws from OS entropy."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def next(self) -> float:
        return self._rng.random()


def uniform(source: RandomSource, low: float, high: float) -> float:
    return low + (high - low) * source.next()
