"""Tests for the heuristic formula and the estimator strategies."""

import pandas as pd
import pytest

from price_estimator.api import PropertyInput
from price_estimator.estimators import (
    HeuristicEstimator,
    PriceEstimator,
    RegressionEstimator,
    format_currency,
)
from price_estimator.heuristic import age_from_year_built, heuristic_price, location_factor
from price_estimator.model import train_regression_model


class TestHeuristicPrice:
    """Test the fixed-coefficient formula."""

    def test_reference_property(self):
        """(100000 + 225000 + 45000 + 20000 - 5000) × 1.1"""
        price = heuristic_price(area=1500, bedrooms=3, bathrooms=2, location="Suburban", age=5)
        assert price == pytest.approx(423500.0)

    def test_location_factors(self):
        assert location_factor("urban") == 1.3
        assert location_factor("Suburban") == 1.1
        assert location_factor("RURAL") == 0.9
        assert location_factor("Downtown") == 1.0
        assert location_factor(None) == 1.0

    def test_unknown_location_unscaled(self):
        price = heuristic_price(area=1000, bedrooms=0, bathrooms=0, location="Downtown", age=0)
        assert price == pytest.approx(250000.0)

    def test_half_bathrooms(self):
        price = heuristic_price(area=1000, bedrooms=0, bathrooms=1.5, location="", age=0)
        assert price == pytest.approx(265000.0)

    def test_never_negative(self):
        price = heuristic_price(area=1, bedrooms=0, bathrooms=0, location="rural", age=500)
        assert price == 0.0


class TestAgeFromYearBuilt:
    """Test year-built conversion."""

    def test_age(self):
        assert age_from_year_built(2000, current_year=2024) == 24

    def test_new_build(self):
        assert age_from_year_built(2024, current_year=2024) == 0

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            age_from_year_built(1700, current_year=2024)
        with pytest.raises(ValueError):
            age_from_year_built(2030, current_year=2024)


class TestEstimators:
    """Test the shared estimate() capability."""

    def test_heuristic_estimator(self, reference_property: dict):
        estimator = HeuristicEstimator()

        assert isinstance(estimator, PriceEstimator)
        assert estimator.name == "heuristic"
        assert estimator.estimate(reference_property) == pytest.approx(423500.0)

    def test_accepts_pydantic_input(self, reference_property: dict):
        estimate = HeuristicEstimator().estimate(PropertyInput(**reference_property))
        assert estimate == pytest.approx(423500.0)

    def test_regression_estimator_in_dollars(self, linear_frame: pd.DataFrame):
        model = train_regression_model(linear_frame, features=['area'])
        estimator = RegressionEstimator(model)

        # 3 × 10 + 2 thousand
        assert estimator.estimate({'area': 10}) == pytest.approx(32000.0)

    def test_strategies_are_not_reconciled(self, dataset: pd.DataFrame, reference_property: dict):
        heuristic = HeuristicEstimator().estimate(reference_property)
        regression = RegressionEstimator(train_regression_model(dataset)).estimate(reference_property)

        assert heuristic != pytest.approx(regression)


class TestFormatCurrency:
    """Test currency formatting."""

    def test_format(self):
        assert format_currency(423500) == "$423,500.00"

    def test_no_decimals(self):
        assert format_currency(1234.56, 0) == "$1,235"

    def test_negative(self):
        assert format_currency(-50) == "-$50.00"

    def test_unparsable_is_zero(self):
        assert format_currency("n/a") == "$0.00"
