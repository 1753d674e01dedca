"""
Unit tests for individual valuation factors.
"""
import pytest

from app.scoring.factors import (
    base_value_for_fuel, is_high_reliability, score_age, score_body_type,
    score_brand, score_mileage, score_transmission, vehicle_age,
)


class TestBaseValue:
    def test_diesel(self):
        assert base_value_for_fuel("diesel") == 16_000

    def test_electric(self):
        assert base_value_for_fuel("electric") == 26_000

    def test_case_insensitive(self):
        assert base_value_for_fuel("  Petrol ") == 14_500

    def test_unknown_fuel_default(self):
        assert base_value_for_fuel("hydrogen") == 14_000


class TestBrand:
    def test_bmw(self):
        r = score_brand("BMW")
        assert r.factor_name == "Brand"
        assert r.multiplier == 1.4
        assert r.adjustment_pct == pytest.approx(40.0)

    def test_budget_brand(self):
        assert score_brand("Dacia").multiplier == 0.75

    def test_unknown_brand_neutral(self):
        r = score_brand("Zorg")
        assert r.multiplier == 1.0
        assert r.raw_value == "Zorg"


class TestBodyType:
    def test_wagon(self):
        assert score_body_type("wagon").multiplier == 1.05

    def test_suv(self):
        assert score_body_type("SUV").multiplier == 1.18

    def test_unknown_body_neutral(self):
        assert score_body_type("blimp").multiplier == 1.0


class TestAge:
    def test_new(self):
        r = score_age(2024, reference_year=2024)
        assert r.raw_value == "0y"
        assert r.multiplier == 1.0

    def test_seven_years(self):
        assert score_age(2017, reference_year=2024).multiplier == pytest.approx(0.44)

    def test_floor(self):
        assert score_age(2000, reference_year=2024).multiplier == pytest.approx(0.15)

    def test_future_model_year_counts_as_new(self):
        assert vehicle_age(2025, reference_year=2024) == 0
        assert score_age(2025, reference_year=2024).multiplier == 1.0


class TestMileage:
    def test_zero(self):
        assert score_mileage(0).multiplier == 1.0

    def test_linear(self):
        assert score_mileage(175_000).multiplier == pytest.approx(0.5)

    def test_floor(self):
        assert score_mileage(300_000).multiplier == pytest.approx(0.4)
        assert score_mileage(900_000).multiplier == pytest.approx(0.4)


class TestTransmission:
    def test_automatic(self):
        assert score_transmission("automatic").multiplier == 1.12

    def test_semi_automatic(self):
        assert score_transmission("semi-automatic").multiplier == 1.06

    def test_manual(self):
        assert score_transmission("manual").multiplier == 1.0

    def test_unknown_neutral(self):
        assert score_transmission("cvt-x").multiplier == 1.0


class TestReliability:
    def test_reliable(self):
        assert is_high_reliability("Toyota")

    def test_not_reliable(self):
        assert not is_high_reliability("BMW")
