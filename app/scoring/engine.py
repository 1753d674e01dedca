"""
Valuation Engine

Orchestrates:
  1. Base value by fuel type
  2. Brand, body-type, age, mileage and transmission factors
  3. Identifier-derived feature bonus (capped at 3 features)
  4. market_value = round(base × Π factors + feature bonus)
  5. Tier enrichment: Regular → Premium (trends) → Business (risk + demand)

The Regular tier is a pure function of the attributes and the Rate Tables.
Premium and Business draw from an injected RandomSource.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import structlog

from app.core.config import get_settings
from app.schemas.valuation_request import Tier, VehicleAttributes
from app.schemas.valuation_response import (
    FactorScore,
    RegularValuation,
    TierPreview,
    ValuationBreakdown,
    VehicleDetails,
)
from app.scoring import factors
from app.scoring.attribute_decoder import AttributeDecoder, HeuristicVinDecoder
from app.scoring.business import synthesize_business
from app.scoring.random_source import RandomSource, SeededRandomSource
from app.scoring.rounding import round_half_up
from app.scoring.trends import synthesize_premium

logger = structlog.get_logger()

_default_decoder = HeuristicVinDecoder()


def compute_base_valuation(
    attributes: VehicleAttributes,
    reference_date: Optional[date] = None,
    decoder: Optional[AttributeDecoder] = None,
) -> ValuationBreakdown:
    """
    Deterministic pricing formula. Same attributes + same reference year
    always give the same breakdown.
    """
    ref = reference_date or date.today()
    decoder = decoder or _default_decoder

    # ── Step 1: Base value ──
    base_value = factors.base_value_for_fuel(attributes.fuel_type)

    # ── Step 2: Multiplicative factors, in formula order ──
    brand = factors.score_brand(attributes.brand)
    body = factors.score_body_type(attributes.body_type)
    age = factors.score_age(attributes.year, ref.year)
    mileage = factors.score_mileage(attributes.mileage)
    transmission = factors.score_transmission(attributes.transmission)

    # ── Step 3: Feature bonus ──
    detected = decoder.detect(attributes.vin)
    feature_bonus = sum(f.value for f in detected)

    # ── Step 4: Market value ──
    market_value = round_half_up(
        base_value
        * brand.multiplier
        * body.multiplier
        * age.multiplier
        * mileage.multiplier
        * transmission.multiplier
        + feature_bonus
    )

    return ValuationBreakdown(
        base_value=base_value,
        brand_multiplier=brand.multiplier,
        body_multiplier=body.multiplier,
        age_factor=age.multiplier,
        mileage_factor=mileage.multiplier,
        transmission_multiplier=transmission.multiplier,
        feature_bonus=feature_bonus,
        vehicle_age_years=factors.vehicle_age(attributes.year, ref.year),
        factor_scores=[
            FactorScore(
                factor_name=r.factor_name,
                raw_value=r.raw_value,
                multiplier=r.multiplier,
                adjustment_pct=r.adjustment_pct,
            )
            for r in (brand, body, age, mileage, transmission)
        ],
        detected_features=detected,
        market_value=market_value,
    )


def build_regular(
    attributes: VehicleAttributes,
    evaluated_at: Optional[datetime] = None,
    decoder: Optional[AttributeDecoder] = None,
) -> RegularValuation:
    settings = get_settings()
    evaluated_at = evaluated_at or datetime.now(timezone.utc)
    breakdown = compute_base_valuation(attributes, evaluated_at.date(), decoder)

    return RegularValuation(
        market_value=breakdown.market_value,
        currency=settings.currency,
        model_version=settings.valuation_model_version,
        evaluated_at=evaluated_at,
        valid_until=evaluated_at + timedelta(days=settings.standard_validity_days),
        vehicle_details=VehicleDetails(
            vin=attributes.vin,
            make=attributes.brand,
            model=attributes.model,
            year=attributes.year,
            body_type=attributes.body_type,
            mileage=attributes.mileage,
            fuel_type=attributes.fuel_type,
            transmission=attributes.transmission,
        ),
        breakdown=breakdown,
    )


def compute_valuation(
    attributes: VehicleAttributes,
    tier: Tier,
    random_source: Optional[RandomSource] = None,
    evaluated_at: Optional[datetime] = None,
    decoder: Optional[AttributeDecoder] = None,
) -> RegularValuation:
    """
    Main entry point. Returns RegularValuation, PremiumValuation or
    BusinessValuation depending on the tier.
    """
    tier = Tier(tier)
    source = random_source or SeededRandomSource(get_settings().random_seed)

    result: RegularValuation = build_regular(attributes, evaluated_at, decoder)
    if tier in (Tier.PREMIUM, Tier.BUSINESS):
        result = synthesize_premium(result, source)
    if tier == Tier.BUSINESS:
        result = synthesize_business(result, source)

    logger.info(
        "valuation_computed",
        tier=tier.value,
        brand=attributes.brand,
        model=attributes.model,
        year=attributes.year,
        market_value=result.market_value,
        features=len(result.breakdown.detected_features),
    )
    return result


def preview_all_tiers(
    attributes: VehicleAttributes,
    random_source: Optional[RandomSource] = None,
    evaluated_at: Optional[datetime] = None,
) -> TierPreview:
    """All three tiers for one vehicle, sharing a single evaluation time."""
    evaluated_at = evaluated_at or datetime.now(timezone.utc)
    source = random_source or SeededRandomSource(get_settings().random_seed)

    regular = build_regular(attributes, evaluated_at)
    premium = synthesize_premium(regular, source)
    business = synthesize_business(premium, source)
    return TierPreview(regular=regular, premium=premium, business=business)

