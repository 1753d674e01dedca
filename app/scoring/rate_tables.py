"""
Rate Tables: static lookup data for the pricing formula.

All keys are lower-case. Lookups that miss fall back to the DEFAULT_*
constants; an unknown value is never an error.

Calibrated against Bulgarian used-car listings (auto.bg / mobile.bg / cars.bg),
prices in EUR.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping


# ═══════════════════════════════════════════════════════════════
# Base value by fuel type (EUR, new-ish vehicle, average brand)
# ═══════════════════════════════════════════════════════════════
DEFAULT_BASE_VALUE = 14_000

FUEL_TYPE_BASE: Mapping[str, int] = MappingProxyType({
    "petrol": 14_500,
    "diesel": 16_000,
    "hybrid": 21_000,
    "electric": 26_000,
    "lpg": 12_500,
})


# ═══════════════════════════════════════════════════════════════
# Brand value multiplier
# ═══════════════════════════════════════════════════════════════
DEFAULT_BRAND_MULTIPLIER = 1.0

BRAND_MULTIPLIER: Mapping[str, float] = MappingProxyType({
    # Luxury / performance
    "porsche": 2.1,
    "maserati": 1.6,
    "land rover": 1.5,
    "mercedes-benz": 1.45,
    "mercedes": 1.45,
    "bmw": 1.4,
    "audi": 1.35,
    "lexus": 1.35,
    "jaguar": 1.3,
    "tesla": 1.3,
    "volvo": 1.2,
    "infiniti": 1.15,
    # Mainstream
    "toyota": 1.15,
    "volkswagen": 1.1,
    "mazda": 1.05,
    "honda": 1.05,
    "subaru": 1.05,
    "skoda": 1.0,
    "hyundai": 1.0,
    "kia": 1.0,
    "ford": 0.95,
    "nissan": 0.95,
    "seat": 0.95,
    "opel": 0.9,
    "renault": 0.9,
    "peugeot": 0.9,
    "citroën": 0.85,
    "citroen": 0.85,
    "mitsubishi": 0.9,
    "suzuki": 0.85,
    "fiat": 0.8,
    "dacia": 0.75,
    "lada": 0.6,
})


# ═══════════════════════════════════════════════════════════════
# Body-type multiplier
# ═══════════════════════════════════════════════════════════════
DEFAULT_BODY_MULTIPLIER = 1.0

BODY_MULTIPLIER: Mapping[str, float] = MappingProxyType({
    "sedan": 1.0,
    "hatchback": 0.92,
    "wagon": 1.05,
    "suv": 1.18,
    "coupe": 1.08,
    "convertible": 1.1,
    "pickup": 1.12,
    "van": 0.95,
    "minivan": 0.97,
})


# ═══════════════════════════════════════════════════════════════
# Transmission bonus
# ═══════════════════════════════════════════════════════════════
DEFAULT_TRANSMISSION_MULTIPLIER = 1.0

TRANSMISSION_MULTIPLIER: Mapping[str, float] = MappingProxyType({
    "automatic": 1.12,
    "semi-automatic": 1.06,
    "manual": 1.0,
})


# ═══════════════════════════════════════════════════════════════
# Depreciation curves
# ═══════════════════════════════════════════════════════════════
AGE_DEPRECIATION_PER_YEAR = 0.08
AGE_FACTOR_FLOOR = 0.15

MILEAGE_FULL_DEPRECIATION_KM = 350_000
MILEAGE_FACTOR_FLOOR = 0.4


# ═══════════════════════════════════════════════════════════════
# Brands with a strong reliability record (Business-tier risk)
# ═══════════════════════════════════════════════════════════════
HIGH_RELIABILITY_BRANDS: frozenset[str] = frozenset({
    "toyota",
    "lexus",
    "honda",
    "mazda",
    "subaru",
    "hyundai",
    "kia",
})


def normalise_key(value: str | None) -> str:
    return (value or "").strip().lower()
