"""
Shared fixtures: deterministic randomness, canonical vehicles, a fixed clock.
"""
from datetime import datetime, timezone

import pytest

from app.schemas.valuation_request import VehicleAttributes


class FixedSequenceSource:
    """RandomSource that replays the given draws and counts how many were taken."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def next(self) -> float:
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


EVALUATED_AT = datetime(2024, 6, 15, 10, 30, tzinfo=timezone.utc)


def make_attributes(**overrides) -> VehicleAttributes:
    """The reference BMW wagon: 2017, 193,000 km, diesel, automatic, no feature markers."""
    kwargs = {
        "brand": "BMW",
        "model": "5 Series",
        "year": 2017,
        "body_type": "wagon",
        "mileage": 193_000,
        "fuel_type": "diesel",
        "transmission": "automatic",
        "vin": "ABCDEFJK012356789",
    }
    kwargs.update(overrides)
    return VehicleAttributes(**kwargs)


@pytest.fixture
def attributes() -> VehicleAttributes:
    return make_attributes()


@pytest.fixture
def midpoint_source() -> FixedSequenceSource:
    return FixedSequenceSource([0.5])
