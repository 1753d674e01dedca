"""
Market signals: external trend data that drives refinement.

MarketSignalSource is the swappable contract. StaticMarketSignalSource is the
in-memory table used until a live market feed is wired in.

Lookup order:
  1. exact key   brand-model-year  (lower-case, spaces → hyphens)
  2. fuzzy match first signal of the same brand, when the queried year is 2015+
No match is a normal outcome and returns None.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

import structlog

logger = structlog.get_logger()

FUZZY_MIN_YEAR = 2015


@dataclass(frozen=True)
class MarketSignal:
    brand: str
    model: str
    year: int
    trend_percent: float
    average_price: float
    timestamp: datetime


class MarketSignalSource(Protocol):
    def lookup(self, brand: str, model: str, year: int) -> Optional[MarketSignal]: ...


def _slug(value: str) -> str:
    return "-".join(value.strip().lower().split())


def signal_key(brand: str, model: str, year: int) -> str:
    return f"{_slug(brand)}-{_slug(model)}-{year}"


class StaticMarketSignalSource:
    def __init__(self, signals: Iterable[MarketSignal]) -> None:
        self._signals: dict[str, MarketSignal] = {
            signal_key(s.brand, s.model, s.year): s for s in signals
        }

    def lookup(self, brand: str, model: str, year: int) -> Optional[MarketSignal]:
        key = signal_key(brand, model, year)
        logger.debug("market_signal_lookup", key=key)

        signal = self._signals.get(key)
        if signal is not None:
            return signal

        if year >= FUZZY_MIN_YEAR:
            brand_prefix = f"{_slug(brand)}-"
            for candidate_key, candidate in self._signals.items():
                if candidate_key.startswith(brand_prefix):
                    logger.debug("market_signal_fuzzy_match", key=key, matched=candidate_key)
                    return candidate
        return None


def default_market_signals(now: Optional[datetime] = None) -> list[MarketSignal]:
    """Seed table: Bulgarian market trends for the most-requested models."""
    ts = now or datetime.now(timezone.utc)
    return [
        MarketSignal("BMW", "5 Series", 2017, -2.5, 16_000, ts),
        MarketSignal("Mercedes", "E Class", 2018, -1.8, 18_500, ts),
        MarketSignal("Audi", "A6", 2019, -1.2, 21_000, ts),
    ]
