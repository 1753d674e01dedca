"""
Valuation factors.

Each factor:
  1. Takes one raw attribute of the vehicle
  2. Looks it up in the Rate Tables (or applies a depreciation curve)
  3. Returns the multiplier it contributes to the running value

Convention: multiplier 1.0 = neutral. Unknown inputs return the documented
default multiplier instead of failing.
"""
from __future__ import annotations

from dataclasses import dataclass

from app.scoring import rate_tables as rt


@dataclass(frozen=True)
class FactorResult:
    factor_name: str
    raw_value: str
    multiplier: float

    @property
    def adjustment_pct(self) -> float:
        return (self.multiplier - 1) * 100


# ═══════════════════════════════════════════════════════════════
# 1. BASE VALUE  (by fuel type)
# ═══════════════════════════════════════════════════════════════
def base_value_for_fuel(fuel_type: str) -> int:
    return rt.FUEL_TYPE_BASE.get(rt.normalise_key(fuel_type), rt.DEFAULT_BASE_VALUE)


# ═══════════════════════════════════════════════════════════════
# 2. BRAND
# ═══════════════════════════════════════════════════════════════
def score_brand(brand: str) -> FactorResult:
    multiplier = rt.BRAND_MULTIPLIER.get(rt.normalise_key(brand), rt.DEFAULT_BRAND_MULTIPLIER)
    return FactorResult("Brand", brand, multiplier)


# ═══════════════════════════════════════════════════════════════
# 3. BODY TYPE
# ═══════════════════════════════════════════════════════════════
def score_body_type(body_type: str) -> FactorResult:
    multiplier = rt.BODY_MULTIPLIER.get(rt.normalise_key(body_type), rt.DEFAULT_BODY_MULTIPLIER)
    return FactorResult("BodyType", body_type, multiplier)


# ═══════════════════════════════════════════════════════════════
# 4. AGE: 8%/year straight line, floored at 15% residual
# ═══════════════════════════════════════════════════════════════
def vehicle_age(year: int, reference_year: int) -> int:
    # Model years ahead of the calendar (next year's model) count as new.
    return max(0, reference_year - year)


def score_age(year: int, reference_year: int) -> FactorResult:
    age = vehicle_age(year, reference_year)
    factor = max(rt.AGE_FACTOR_FLOOR, 1 - rt.AGE_DEPRECIATION_PER_YEAR * age)
    return FactorResult("Age", f"{age}y", factor)


# ═══════════════════════════════════════════════════════════════
# 5. MILEAGE: linear to 350,000 km, floored at 40% residual
# ═══════════════════════════════════════════════════════════════
def score_mileage(mileage: int) -> FactorResult:
    factor = max(rt.MILEAGE_FACTOR_FLOOR, 1 - mileage / rt.MILEAGE_FULL_DEPRECIATION_KM)
    return FactorResult("Mileage", f"{mileage} km", factor)


# ═══════════════════════════════════════════════════════════════
# 6. TRANSMISSION
# ═══════════════════════════════════════════════════════════════
def score_transmission(transmission: str) -> FactorResult:
    multiplier = rt.TRANSMISSION_MULTIPLIER.get(
        rt.normalise_key(transmission), rt.DEFAULT_TRANSMISSION_MULTIPLIER
    )
    return FactorResult("Transmission", transmission, multiplier)


def is_high_reliability(brand: str) -> bool:
    return rt.normalise_key(brand) in rt.HIGH_RELIABILITY_BRANDS
