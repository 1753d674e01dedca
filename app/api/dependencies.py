"""
Process-wide collaborators, built once from settings.

Overridden in tests via app.dependency_overrides.
"""
from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from app.core.config import get_settings
from app.models.database import get_session_factory
from app.services.market_signals import (
    MarketSignalSource,
    StaticMarketSignalSource,
    default_market_signals,
)
from app.services.storage_gateway import (
    InMemoryStorageGateway,
    SqlAlchemyStorageGateway,
    StorageGateway,
)
from app.services.valuation_refinement import ValuationRefiner


@lru_cache
def get_storage_gateway() -> StorageGateway:
    backend = get_settings().storage_backend
    if backend == "sql":
        return SqlAlchemyStorageGateway(get_session_factory())
    if backend == "memory":
        return InMemoryStorageGateway()
    raise ValueError(f"Unknown STORAGE_BACKEND {backend!r} (expected 'memory' or 'sql')")


@lru_cache
def get_market_signal_source() -> MarketSignalSource:
    return StaticMarketSignalSource(default_market_signals())


def build_refiner(gateway: StorageGateway, signals: MarketSignalSource) -> ValuationRefiner:
    return ValuationRefiner(gateway=gateway, signals=signals, staleness_days=get_settings().staleness_days)


def get_refiner(
    gateway: StorageGateway = Depends(get_storage_gateway),
    signals: MarketSignalSource = Depends(get_market_signal_source),
) -> ValuationRefiner:
    return build_refiner(gateway, signals)
