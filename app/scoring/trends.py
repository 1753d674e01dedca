"""
Trend Synthesizer: Premium tier.

Builds a synthetic 4-point history (3 months back → current) and a 3-point
projection around the Regular market value, then derives:
  - historical / future trend percentages
  - market momentum (threshold ladder on the historical trend)
  - best time to sell

The current point is never randomised. History is always generated oldest
first; the projection is regenerated on every call.
"""
from __future__ import annotations

import calendar
from datetime import datetime
from statistics import mean

from app.schemas.valuation_response import (
    MarketInsights,
    MarketTrendAnalysis,
    PremiumValuation,
    RegularValuation,
    TrendPoint,
)
from app.scoring.random_source import RandomSource, uniform
from app.scoring.rounding import round_half_up, round_one_decimal


# (months back, label, variation range): oldest first
HISTORICAL_VARIATION: tuple[tuple[int, str, tuple[float, float]], ...] = (
    (3, "3 months ago", (0.94, 0.98)),
    (2, "2 months ago", (0.96, 1.00)),
    (1, "1 month ago", (0.98, 1.01)),
)

# months ahead → variation range
FUTURE_VARIATION: dict[int, tuple[float, float]] = {
    1: (0.99, 1.03),
    2: (1.00, 1.05),
    3: (1.01, 1.07),
}

# Momentum ladder on the historical trend %: first threshold exceeded wins
MOMENTUM_THRESHOLDS = [
    (3.0, "Strong Upward"),
    (1.0, "Upward"),
    (-1.0, "Stable"),
]
MOMENTUM_FLOOR = "Downward"

SELL_NOW_FUTURE_TREND = 2.0


def projection_confidence(months_ahead: int) -> int:
    return max(65, 95 - 10 * months_ahead)


def month_label(reference: datetime, months_ahead: int) -> str:
    index = reference.month - 1 + months_ahead
    year = reference.year + index // 12
    month = index % 12 + 1
    return f"{calendar.month_name[month]} {year}"


def classify_momentum(historical_trend: float) -> str:
    for threshold, label in MOMENTUM_THRESHOLDS:
        if historical_trend > threshold:
            return label
    return MOMENTUM_FLOOR


def best_time_to_sell(historical_trend: float, future_trend: float, first_future_month: str) -> str:
    if future_trend > SELL_NOW_FUTURE_TREND:
        return f"Sell in {first_future_month}"
    if historical_trend > 0:
        return "Within the next 4-6 weeks"
    return "Hold for 2-3 months"


def synthesize_history(market_value: int, source: RandomSource) -> list[TrendPoint]:
    points = [
        TrendPoint(
            period=label,
            value=round_half_up(market_value * uniform(source, low, high)),
            classification="historical",
        )
        for _, label, (low, high) in HISTORICAL_VARIATION
    ]
    points.append(TrendPoint(period="Current", value=market_value, classification="current"))
    return points


def synthesize_projection(market_value: int, reference: datetime, source: RandomSource) -> list[TrendPoint]:
    return [
        TrendPoint(
            period=month_label(reference, months_ahead),
            value=round_half_up(market_value * uniform(source, low, high)),
            classification="projected",
            confidence=projection_confidence(months_ahead),
        )
        for months_ahead, (low, high) in sorted(FUTURE_VARIATION.items())
    ]


def synthesize_premium(regular: RegularValuation, source: RandomSource) -> PremiumValuation:
    current = regular.market_value
    history = synthesize_history(current, source)
    projection = synthesize_projection(current, regular.evaluated_at, source)

    oldest = history[0].value
    historical_trend = (current - oldest) / oldest * 100 if oldest else 0.0
    future_trend = (mean(p.value for p in projection) - current) / current * 100 if current else 0.0

    momentum = classify_momentum(historical_trend)
    sell_timing = best_time_to_sell(historical_trend, future_trend, projection[0].period)

    return PremiumValuation(
        **regular.model_dump(exclude={"market_insights"}),
        market_insights=MarketInsights(
            historical_trend_percentage=round_one_decimal(historical_trend),
            market_condition="Rising" if historical_trend > 0 else "Declining",
            best_time_to_sell=sell_timing,
        ),
        historical_data=history,
        future_prediction=projection,
        market_trend_analysis=MarketTrendAnalysis(
            historical_trend_percentage=round_one_decimal(historical_trend),
            future_trend_percentage=round_one_decimal(future_trend),
            market_momentum=momentum,
            best_time_to_sell=sell_timing,
        ),
    )
