"""
Business-tier risk, competitor, demand and prediction rules.
"""
from conftest import EVALUATED_AT, FixedSequenceSource
from app.schemas.valuation_request import Tier
from app.scoring.business import (
    assess_demand, assess_risk, competitor_prices, short_term_prediction,
)
from app.scoring.engine import compute_valuation


class TestRisk:
    def test_high_mileage_medium_high(self):
        r = assess_risk(age=7, mileage=193_000, brand="BMW")
        assert r.overall == "Medium-High"
        assert r.risk_score == 9.8
        assert r.holding_period == "6-12 months"

    def test_old_reliable_still_medium_high(self):
        assert assess_risk(age=10, mileage=50_000, brand="Toyota").overall == "Medium-High"

    def test_reliable_brand_low_medium(self):
        r = assess_risk(age=3, mileage=50_000, brand="Toyota")
        assert r.overall == "Low-Medium"
        assert r.risk_score == 0.9
        assert r.factors.liquidity == "High"

    def test_default_medium(self):
        r = assess_risk(age=5, mileage=100_000, brand="Ford")
        assert r.overall == "Medium"
        assert r.risk_score == 5.5
        assert r.factors.maintenance_costs == "Rising"


class TestCompetitors:
    def test_fixed_offsets(self):
        prices = competitor_prices(10_000)
        assert [p.price for p in prices] == [11_000, 9_500, 10_500, 9_200]
        assert [p.difference_pct for p in prices] == [10.0, -5.0, 5.0, -8.0]


class TestDemand:
    def test_high(self):
        d = assess_demand(FixedSequenceSource([0.9, 0.8, 0.7, 0.6]))
        assert d.demand_score == 7.5
        assert d.demand_level == "High"
        assert d.factors.seasonality == 9.0
        assert d.factors.market_trend == 6.0

    def test_medium_at_threshold(self):
        d = assess_demand(FixedSequenceSource([0.5]))
        assert d.demand_score == 5.0
        assert d.demand_level == "Medium"

    def test_low(self):
        d = assess_demand(FixedSequenceSource([0.1, 0.2, 0.3, 0.4]))
        assert d.demand_score == 2.5
        assert d.demand_level == "Low"

    def test_draws_four(self):
        source = FixedSequenceSource([0.5])
        assess_demand(source)
        assert source.calls == 4


class TestBusinessValuation:
    def test_reference_vehicle(self, attributes):
        business = compute_valuation(attributes, Tier.BUSINESS, random_source=FixedSequenceSource([0.5]),
                                     evaluated_at=EVALUATED_AT)

        assert business.investment_risk_assessment.overall == "Medium-High"
        assert business.competitor_analysis[0].price == 5_719
        assert business.market_demand.demand_level == "Medium"
        assert [p.value for p in business.price_prediction] == [5_303, 5_197, 5_145]
        assert [p.period for p in business.price_prediction] == ["July 2024", "August 2024", "September 2024"]

    def test_prediction_does_not_draw(self, attributes):
        premium = compute_valuation(attributes, Tier.PREMIUM, random_source=FixedSequenceSource([0.5]),
                                    evaluated_at=EVALUATED_AT)
        assert [p.value for p in short_term_prediction(premium)] == [5_303, 5_197, 5_145]
