"""
Risk & Demand Analyzer: Business tier.

Adds to a Premium result:
  1. Investment risk (score, overall tier, per-factor ratings, guidance)
  2. Competitor pricing (fixed offsets against the market value)
  3. Market demand (four factor draws from the shared RandomSource)
  4. Short-term price prediction (fixed damped curve, not randomised)
  5. 30-day validity window

Risk is derived only from vehicle age, mileage and brand reliability.
"""
from __future__ import annotations

from datetime import timedelta
from statistics import mean

from app.core.config import get_settings
from app.schemas.valuation_response import (
    BusinessValuation,
    CompetitorPrice,
    DemandFactors,
    MarketDemand,
    PremiumValuation,
    PricePoint,
    RiskAssessment,
    RiskFactorRatings,
)
from app.scoring.factors import is_high_reliability
from app.scoring.random_source import RandomSource
from app.scoring.rounding import round_half_up, round_one_decimal
from app.scoring.trends import month_label


# ═══════════════════════════════════════════════════════════════
# Investment risk
#   score = (age × 0.3 + mileage/10k × 0.4 − reliability bonus), 1 decimal
#   Medium-High : mileage > 150,000 km or age > 8 years
#   Low-Medium  : high-reliability brand
#   Medium     : everything else
# ═══════════════════════════════════════════════════════════════
AGE_WEIGHT = 0.3
MILEAGE_WEIGHT = 0.4
RELIABILITY_BONUS = 2.0
HIGH_RISK_MILEAGE = 150_000
HIGH_RISK_AGE = 8

RISK_GUIDANCE: dict[str, dict[str, str]] = {
    "Low-Medium": {
        "recommendation": "Solid hold. Reliable brand with predictable depreciation; suitable for private resale or trade-in.",
        "holding_period": "2-3 years",
        "exit_strategy": "Private sale via online marketplaces before the next major service interval",
    },
    "Medium": {
        "recommendation": "Reasonable value retention. Monitor market prices and service costs before committing to a long hold.",
        "holding_period": "12-18 months",
        "exit_strategy": "Dealer trade-in or private sale once the market trend turns negative",
    },
    "Medium-High": {
        "recommendation": "Elevated risk. Depreciation and maintenance costs will accelerate; sell sooner rather than later.",
        "holding_period": "6-12 months",
        "exit_strategy": "Sell to a dealer or export buyer before further mileage accumulates",
    },
}


def risk_score(age: int, mileage: int, reliable: bool) -> float:
    bonus = RELIABILITY_BONUS if reliable else 0.0
    return round_one_decimal(age * AGE_WEIGHT + (mileage / 10_000) * MILEAGE_WEIGHT - bonus)


def overall_risk(age: int, mileage: int, reliable: bool) -> str:
    if mileage > HIGH_RISK_MILEAGE or age > HIGH_RISK_AGE:
        return "Medium-High"
    if reliable:
        return "Low-Medium"
    return "Medium"


def rate_factors(age: int, mileage: int, reliable: bool) -> RiskFactorRatings:
    if age > HIGH_RISK_AGE:
        depreciation = "Low"
    elif age > 3:
        depreciation = "Moderate"
    else:
        depreciation = "High"

    if mileage > HIGH_RISK_MILEAGE:
        maintenance = "Rising steeply"
    elif mileage > 80_000:
        maintenance = "Rising"
    else:
        maintenance = "Stable"

    if reliable and mileage <= HIGH_RISK_MILEAGE:
        liquidity = "High"
    elif mileage > 200_000:
        liquidity = "Low"
    else:
        liquidity = "Moderate"

    if age > HIGH_RISK_AGE or mileage > HIGH_RISK_MILEAGE:
        volatility = "High"
    elif reliable:
        volatility = "Low"
    else:
        volatility = "Moderate"

    return RiskFactorRatings(
        depreciation_rate=depreciation,
        maintenance_costs=maintenance,
        liquidity=liquidity,
        volatility=volatility,
    )


def assess_risk(age: int, mileage: int, brand: str) -> RiskAssessment:
    reliable = is_high_reliability(brand)
    overall = overall_risk(age, mileage, reliable)
    guidance = RISK_GUIDANCE[overall]
    return RiskAssessment(
        overall=overall,
        risk_score=risk_score(age, mileage, reliable),
        factors=rate_factors(age, mileage, reliable),
        recommendation=guidance["recommendation"],
        holding_period=guidance["holding_period"],
        exit_strategy=guidance["exit_strategy"],
    )


# ═══════════════════════════════════════════════════════════════
# Competitor pricing: fixed offsets, not sourced externally
# ═══════════════════════════════════════════════════════════════
COMPETITOR_OFFSETS: tuple[tuple[str, float], ...] = (
    ("AutoHouse Sofia", 0.10),
    ("Car Market Plovdiv", -0.05),
    ("Premium Motors Varna", 0.05),
    ("Private listings (mobile.bg)", -0.08),
)


def competitor_prices(market_value: int) -> list[CompetitorPrice]:
    return [
        CompetitorPrice(
            dealer=dealer,
            price=round_half_up(market_value * (1 + offset)),
            difference_pct=round_one_decimal(offset * 100),
        )
        for dealer, offset in COMPETITOR_OFFSETS
    ]


# ═══════════════════════════════════════════════════════════════
# Market demand: mean of four draws in [0, 10)
# ═══════════════════════════════════════════════════════════════
DEMAND_LEVELS = [
    (7.0, "High"),
    (5.0, "Medium"),
]
SEASONAL_TRENDS = "Demand typically peaks from September to November and softens over the winter months"


def demand_level(score: float) -> str:
    for threshold, label in DEMAND_LEVELS:
        if score >= threshold:
            return label
    return "Low"


def assess_demand(source: RandomSource) -> MarketDemand:
    seasonality = source.next() * 10
    fuel_economy = source.next() * 10
    brand_popularity = source.next() * 10
    market_trend = source.next() * 10
    score = mean([seasonality, fuel_economy, brand_popularity, market_trend])

    return MarketDemand(
        demand_score=round_one_decimal(score),
        demand_level=demand_level(score),
        factors=DemandFactors(
            seasonality=round_one_decimal(seasonality),
            fuel_economy=round_one_decimal(fuel_economy),
            brand_popularity=round_one_decimal(brand_popularity),
            market_trend=round_one_decimal(market_trend),
        ),
        seasonal_trends=SEASONAL_TRENDS,
    )


# ═══════════════════════════════════════════════════════════════
# Short-term prediction: +2%, then −2%, then −1%
# ═══════════════════════════════════════════════════════════════
PREDICTION_CURVE = (1.02, 0.98, 0.99)


def short_term_prediction(premium: PremiumValuation) -> list[PricePoint]:
    points = []
    value = float(premium.market_value)
    for months_ahead, step in enumerate(PREDICTION_CURVE, start=1):
        value *= step
        points.append(PricePoint(
            period=month_label(premium.evaluated_at, months_ahead),
            value=round_half_up(value),
        ))
    return points


def synthesize_business(premium: PremiumValuation, source: RandomSource) -> BusinessValuation:
    settings = get_settings()
    vehicle = premium.vehicle_details

    return BusinessValuation(
        **premium.model_dump(exclude={"valid_until"}),
        valid_until=premium.evaluated_at + timedelta(days=settings.business_validity_days),
        investment_risk_assessment=assess_risk(
            premium.breakdown.vehicle_age_years,
            vehicle.mileage or 0,
            vehicle.make or "",
        ),
        competitor_analysis=competitor_prices(premium.market_value),
        market_demand=assess_demand(source),
        price_prediction=short_term_prediction(premium),
    )
