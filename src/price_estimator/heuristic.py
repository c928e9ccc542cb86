"""
Fixed-coefficient price heuristic.

price = (base + area·rate + bedrooms·rate + bathrooms·rate - age·rate) × location factor

The result is in dollars and never negative.
"""

from datetime import date
from typing import Optional

BASE_PRICE = 100000
PRICE_PER_SQFT = 150
PRICE_PER_BEDROOM = 15000
PRICE_PER_BATHROOM = 10000
DEPRECIATION_PER_YEAR = 1000

LOCATION_FACTORS = {
    'urban': 1.3,
    'suburban': 1.1,
    'rural': 0.9,
}
DEFAULT_LOCATION_FACTOR = 1.0

MIN_YEAR_BUILT = 1800


def location_factor(location: Optional[str]) -> float:
    """Price multiplier for a location (case-insensitive, 1.0 if unknown)."""
    if not location:
        return DEFAULT_LOCATION_FACTOR
    return LOCATION_FACTORS.get(location.strip().lower(), DEFAULT_LOCATION_FACTOR)


def heuristic_price(
    area: float,
    bedrooms: float,
    bathrooms: float,
    location: Optional[str],
    age: float
) -> float:
    """
    Estimate a price in dollars from fixed per-feature rates.

    1500 sq ft, 3 bed, 2 bath, suburban, 5 years old: 385,000 × 1.1 = 423,500
    """
    base_with_features = (
        BASE_PRICE
        + area * PRICE_PER_SQFT
        + bedrooms * PRICE_PER_BEDROOM
        + bathrooms * PRICE_PER_BATHROOM
        - age * DEPRECIATION_PER_YEAR
    )
    return max(float(base_with_features * location_factor(location)), 0.0)


def age_from_year_built(year_built: int, current_year: Optional[int] = None) -> int:
    """
    Convert a construction year into a property age.

    Raises:
        ValueError: year outside 1800..current year
    """
    if current_year is None:
        current_year = date.today().year
    if year_built < MIN_YEAR_BUILT or year_built > current_year:
        raise ValueError(f"Year built should be between {MIN_YEAR_BUILT} and {current_year}")
    return current_year - year_built
