"""
Price estimation strategies.

Three independent strategies share one capability, estimate(input) -> dollars:

- HeuristicEstimator: fixed per-feature rates and a location multiplier
- RegressionEstimator: a fitted LinearRegressionModel
- NeuralNetworkEstimator: a trained NeuralNetworkModel

Their numbers are not reconciled with each other; the same property can get
materially different prices from each one.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Union

from pydantic import BaseModel

from .dataset import PRICE_UNIT
from .heuristic import heuristic_price
from .model import LinearRegressionModel
from .neural import NeuralNetworkModel
from .preprocessing import parse_number

PropertyLike = Union[Mapping[str, Any], BaseModel]


def _as_mapping(property_input: PropertyLike) -> Dict[str, Any]:
    if isinstance(property_input, BaseModel):
        return property_input.model_dump()
    return dict(property_input)


class PriceEstimator(ABC):
    """A named way of turning property attributes into a price."""

    name: str = "estimator"

    @abstractmethod
    def estimate(self, property_input: PropertyLike) -> float:
        """Estimated price in dollars."""


class HeuristicEstimator(PriceEstimator):
    name = "heuristic"

    def estimate(self, property_input: PropertyLike) -> float:
        data = _as_mapping(property_input)
        return heuristic_price(
            area=float(data['area']),
            bedrooms=float(data['bedrooms']),
            bathrooms=float(data['bathrooms']),
            location=data.get('location'),
            age=float(data['age']),
        )


class RegressionEstimator(PriceEstimator):
    name = "regression"

    def __init__(self, model: LinearRegressionModel):
        self.model = model

    def estimate(self, property_input: PropertyLike) -> float:
        return self.model.predict(_as_mapping(property_input)) * PRICE_UNIT


class NeuralNetworkEstimator(PriceEstimator):
    name = "neural"

    def __init__(self, model: NeuralNetworkModel):
        self.model = model

    def estimate(self, property_input: PropertyLike) -> float:
        return self.model.predict(_as_mapping(property_input)) * PRICE_UNIT


def format_currency(value: Any, decimals: int = 2) -> str:
    """
    Format a value as US dollars, e.g. 423500 -> '$423,500.00'.

    Unparsable values format as zero.
    """
    amount = parse_number(value, 0.0)
    sign = '-' if amount < 0 else ''
    return f"{sign}${abs(amount):,.{decimals}f}"
