"""
Data Preprocessing Module for Real Estate Price Estimation

This module contains the feature transformations shared by training and
inference:
1. Min-max normalization for the neural network (bounds from the full dataset)
2. Fixed design-matrix encoding for the regression solver

All transformations are deterministic: bounds and category lists are computed
once and passed explicitly to every call that needs them.

Known edge case: a feature whose min equals its max has no defined
normalization. normalize() returns NaN for it and leaves the decision to the
caller.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Tuple, Union

import numpy as np
import pandas as pd

from .dataset import CATEGORICAL_COLUMNS, NUMERIC_COLUMNS

LOCATIONS = ['Downtown', 'Suburban', 'Rural']

# Input order expected by the neural network
NETWORK_INPUTS = ['area', 'bedrooms', 'bathrooms', 'downtown', 'suburban', 'rural', 'age']


@dataclass(frozen=True)
class Bounds:
    """Observed minimum and maximum of one numeric feature."""
    min: float
    max: float

    @property
    def span(self) -> float:
        return self.max - self.min

    @property
    def degenerate(self) -> bool:
        return self.span == 0


FeatureBounds = Dict[str, Bounds]


def compute_bounds(
    records: Union[pd.DataFrame, Iterable[Mapping[str, Any]]],
    features: List[str] = None
) -> FeatureBounds:
    """
    Compute per-feature min/max in a single pass over the records.

    Args:
        records: DataFrame or iterable of record mappings (canonical names)
        features: Numeric features to track (default: area, bedrooms,
            bathrooms, age, price)

    Returns:
        Mapping of feature name -> Bounds

    Raises:
        ValueError: if there are no records
    """
    if features is None:
        features = NUMERIC_COLUMNS

    if isinstance(records, pd.DataFrame):
        rows = records[features].to_dict('records')
    else:
        rows = records

    running = {feature: [math.inf, -math.inf] for feature in features}
    seen = 0
    for row in rows:
        seen += 1
        for feature in features:
            value = float(row[feature])
            if value < running[feature][0]:
                running[feature][0] = value
            if value > running[feature][1]:
                running[feature][1] = value

    if seen == 0:
        raise ValueError("Cannot compute feature bounds of an empty dataset")

    return {feature: Bounds(lo, hi) for feature, (lo, hi) in running.items()}


def normalize(value, bounds: Bounds):
    """
    Map a raw value into [0, 1] using (value - min) / (max - min).

    Works on scalars, numpy arrays and pandas Series. Returns NaN for a
    degenerate feature (max == min).
    """
    if bounds.degenerate:
        if isinstance(value, (np.ndarray, pd.Series)):
            return value * np.nan
        return math.nan
    return (value - bounds.min) / bounds.span


def denormalize(normalized_value, bounds: Bounds):
    """Inverse of normalize(): normalized * (max - min) + min."""
    return normalized_value * bounds.span + bounds.min


def location_to_vector(location: str) -> Dict[str, int]:
    """
    One-hot encode a location over the known locations.

    Matching ignores case. An unknown location encodes as all zeros.
    """
    key = str(location).strip().lower()
    return {loc.lower(): int(key == loc.lower()) for loc in LOCATIONS}


def normalize_input(property_input: Mapping[str, Any], bounds: FeatureBounds) -> Dict[str, float]:
    """
    Convert a single property input into normalized network inputs.

    Args:
        property_input: Mapping with area, bedrooms, bathrooms, location, age
        bounds: Dataset feature bounds

    Returns:
        Dictionary keyed by NETWORK_INPUTS
    """
    normalized = {
        'area': normalize(float(property_input['area']), bounds['area']),
        'bedrooms': normalize(float(property_input['bedrooms']), bounds['bedrooms']),
        'bathrooms': normalize(float(property_input['bathrooms']), bounds['bathrooms']),
        **location_to_vector(property_input['location']),
        'age': normalize(float(property_input['age']), bounds['age']),
    }
    return {key: normalized[key] for key in NETWORK_INPUTS}


def normalize_dataset(df: pd.DataFrame, bounds: FeatureBounds) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Normalize the whole dataset for network training.

    Args:
        df: Dataset with canonical columns
        bounds: Feature bounds (normally computed on the same dataset)

    Returns:
        X (normalized inputs, NETWORK_INPUTS order), y (normalized price)
    """
    X = pd.DataFrame(index=df.index)
    for col in ['area', 'bedrooms', 'bathrooms']:
        X[col] = normalize(df[col].astype(float), bounds[col])

    locations = df['location'].astype(str).str.strip().str.lower()
    for loc in LOCATIONS:
        X[loc.lower()] = (locations == loc.lower()).astype(float)

    X['age'] = normalize(df['age'].astype(float), bounds['age'])
    y = normalize(df['price'].astype(float), bounds['price'])

    return X[NETWORK_INPUTS], y


# ==================== REGRESSION DESIGN MATRIX ====================

def encoded_feature_names(features: List[str], categories: Dict[str, List[str]]) -> List[str]:
    """
    Column names of the design matrix, intercept first.

    Categorical features expand to one indicator per category except the
    first, which is absorbed by the intercept.
    """
    names = ['intercept']
    for feature in features:
        if feature in CATEGORICAL_COLUMNS:
            names.extend(f'{feature}_{cat}' for cat in categories[feature][1:])
        else:
            names.append(feature)
    return names


def encode_features(
    df: pd.DataFrame,
    features: List[str],
    categories: Dict[str, List[str]]
) -> pd.DataFrame:
    """
    Build the regression design matrix.

    Args:
        df: Rows to encode (canonical columns)
        features: Ordered feature list (numeric and/or categorical)
        categories: Category lists from dataset.get_categories()

    Returns:
        Float DataFrame whose columns follow encoded_feature_names()

    Category values match case-insensitively, ignoring surrounding spaces.
    """
    X = pd.DataFrame({'intercept': np.ones(len(df))}, index=df.index)

    for feature in features:
        if feature in CATEGORICAL_COLUMNS:
            values = df[feature].astype(str).str.strip().str.lower()
            for cat in categories[feature][1:]:
                X[f'{feature}_{cat}'] = (values == cat.lower()).astype(float)
        else:
            X[feature] = df[feature].astype(float)

    return X


def encode_input(
    property_input: Mapping[str, Any],
    features: List[str],
    categories: Dict[str, List[str]]
) -> pd.DataFrame:
    """
    Encode a single property input as a one-row design matrix.

    Raises:
        ValueError: a feature is missing or a category was never seen in
            training (it would otherwise encode as the baseline category)
    """
    row = {feature: property_input.get(feature) for feature in features}
    missing = [feature for feature, value in row.items() if value is None]
    if missing:
        raise ValueError(f"Missing input features: {', '.join(missing)}")

    for feature in features:
        if feature not in CATEGORICAL_COLUMNS:
            continue
        known = [cat.lower() for cat in categories[feature]]
        if str(row[feature]).strip().lower() not in known:
            raise ValueError(
                f"Unknown {feature} '{row[feature]}'. Expected one of: {', '.join(categories[feature])}"
            )

    return encode_features(pd.DataFrame([row]), features, categories)


def parse_number(value: Any, default: float = 0.0) -> float:
    """
    Parse a form value into a number, falling back to default.

    Accepts numbers and strings with thousands separators ("1,500").
    NaN, None and empty strings give the default.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return default if math.isnan(value) else value
    if value is None:
        return default

    text = str(value).replace(',', '').strip()
    if not text:
        return default
    try:
        parsed = float(text)
    except ValueError:
        return default
    return default if math.isnan(parsed) else parsed
