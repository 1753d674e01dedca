"""
Tiered valuation results.

Each tier extends the previous one:
    RegularValuation  ⊂  PremiumValuation  ⊂  BusinessValuation

Regular fields are never rewritten by the richer tiers, except valid_until.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ── Regular ──

class DetectedFeature(BaseModel):
    """Bonus equipment derived from the vehicle identifier."""
    name: str
    value: int


class FactorScore(BaseModel):
    """One multiplicative adjustment applied to the running value."""
    factor_name: str
    raw_value: Optional[str] = None
    multiplier: float
    adjustment_pct: float = Field(description="Signed % delta from 1.0 (multiplier - 1) × 100")


class ValuationBreakdown(BaseModel):
    """
    Every intermediate factor of the pricing formula.

    market_value == round_half_up(base_value × brand × body × age × mileage
                                  × transmission + feature_bonus)
    """
    base_value: int
    brand_multiplier: float
    body_multiplier: float
    age_factor: float
    mileage_factor: float
    transmission_multiplier: float
    feature_bonus: int
    vehicle_age_years: int
    factor_scores: list[FactorScore]
    detected_features: list[DetectedFeature] = []
    market_value: int

    @property
    def brand_adjustment(self) -> float:
        return self.brand_multiplier - 1

    @property
    def body_adjustment(self) -> float:
        return self.body_multiplier - 1

    @property
    def age_depreciation(self) -> float:
        return 1 - self.age_factor

    @property
    def mileage_depreciation(self) -> float:
        return 1 - self.mileage_factor

    @property
    def transmission_adjustment(self) -> float:
        return self.transmission_multiplier - 1


class VehicleDetails(BaseModel):
    """Echo of the vehicle the valuation belongs to."""
    vin: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    body_type: Optional[str] = None
    mileage: Optional[int] = None
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None


class MarketInsights(BaseModel):
    """Mutable summary that refinement keeps current."""
    historical_trend_percentage: Optional[float] = None
    market_condition: Optional[str] = None
    best_time_to_sell: Optional[str] = None
    last_updated: Optional[datetime] = None


class RegularValuation(BaseModel):
    market_value: int
    currency: str = "EUR"
    model_version: str
    evaluated_at: datetime
    valid_until: datetime
    vehicle_details: VehicleDetails
    breakdown: ValuationBreakdown
    market_insights: Optional[MarketInsights] = None


# ── Premium ──

class TrendPoint(BaseModel):
    period: str
    value: int
    classification: str = Field(description="historical | current | projected")
    confidence: Optional[int] = Field(None, description="Projection confidence % (projected points only)")


class MarketTrendAnalysis(BaseModel):
    historical_trend_percentage: float
    future_trend_percentage: float
    market_momentum: str
    best_time_to_sell: str


class PremiumValuation(RegularValuation):
    historical_data: list[TrendPoint]
    future_prediction: list[TrendPoint]
    market_trend_analysis: MarketTrendAnalysis


# ── Business ──

class RiskFactorRatings(BaseModel):
    depreciation_rate: str
    maintenance_costs: str
    liquidity: str
    volatility: str


class RiskAssessment(BaseModel):
    overall: str = Field(description="Low-Medium | Medium | Medium-High")
    risk_score: float
    factors: RiskFactorRatings
    recommendation: str
    holding_period: str
    exit_strategy: str


class CompetitorPrice(BaseModel):
    dealer: str
    price: int
    difference_pct: float


class DemandFactors(BaseModel):
    seasonality: float
    fuel_economy: float
    brand_popularity: float
    market_trend: float


class MarketDemand(BaseModel):
    demand_score: float
    demand_level: str = Field(description="High | Medium | Low")
    factors: DemandFactors
    seasonal_trends: str


class PricePoint(BaseModel):
    period: str
    value: int


class BusinessValuation(PremiumValuation):
    investment_risk_assessment: RiskAssessment
    competitor_analysis: list[CompetitorPrice]
    market_demand: MarketDemand
    price_prediction: list[PricePoint]


class TierPreview(BaseModel):
    """All three tiers computed for one vehicle, nothing persisted."""
    regular: RegularValuation
    premium: PremiumValuation
    business: BusinessValuation
