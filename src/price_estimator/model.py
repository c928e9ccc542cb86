"""
Model Training Module for Real Estate Price Estimation

This module handles:
1. Closed-form ordinary least squares: theta = (XᵗX)⁻¹ Xᵗ y
2. Model evaluation metrics (R², RMSE, MAE)
3. The fitted LinearRegressionModel value and its serialization
4. Side-by-side evaluation of estimation strategies

Key Technical Decisions:
- 1×1 and 2×2 matrices are inverted with the determinant formulas; larger
  ones go through numpy's LU-based inverse
- max_dimension reproduces the strict solver that refuses anything above 2×2
- R² is undefined (NaN) when every target is equal, never silently 0
- Fitted models are plain values returned to the caller; nothing is cached
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

from .dataset import PRICE_UNIT, get_categories
from .preprocessing import encode_features, encode_input, encoded_feature_names

logger = logging.getLogger(__name__)

DEFAULT_FEATURES = ['area', 'bedrooms', 'bathrooms', 'location', 'property_type', 'age']


class RegressionError(Exception):
    """Base class for regression computation failures."""


class InversionNotSupportedError(RegressionError):
    """Matrix is larger than the configured inversion limit."""

    def __init__(self, size: int, max_dimension: int):
        self.size = size
        self.max_dimension = max_dimension
        super().__init__(
            f"Matrix inversion not supported for {size}x{size} "
            f"(limit is {max_dimension}x{max_dimension})"
        )


class SingularMatrixError(RegressionError):
    """XᵗX has no inverse (e.g. collinear or constant features)."""


def invert_matrix(matrix, max_dimension: Optional[int] = None) -> np.ndarray:
    """
    Invert a square matrix.

    Args:
        matrix: Square matrix (nested lists or ndarray)
        max_dimension: Refuse matrices larger than this (None = no limit)

    Returns:
        Inverse as a float ndarray

    Raises:
        InversionNotSupportedError: matrix larger than max_dimension
        SingularMatrixError: determinant is zero
    """
    m = np.asarray(matrix, dtype=float)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {m.shape}")

    n = m.shape[0]
    if max_dimension is not None and n > max_dimension:
        raise InversionNotSupportedError(n, max_dimension)

    if n == 1:
        if m[0, 0] == 0:
            raise SingularMatrixError("1x1 matrix is zero")
        return np.array([[1.0 / m[0, 0]]])

    if n == 2:
        det = m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0]
        if det == 0:
            raise SingularMatrixError("2x2 matrix has zero determinant")
        return np.array([
            [m[1, 1] / det, -m[0, 1] / det],
            [-m[1, 0] / det, m[0, 0] / det],
        ])

    try:
        return np.linalg.inv(m)
    except np.linalg.LinAlgError as e:
        raise SingularMatrixError(f"{n}x{n} matrix is singular") from e


def fit_linear_regression(X, y, max_dimension: Optional[int] = None) -> np.ndarray:
    """
    Solve the normal equation theta = (XᵗX)⁻¹ Xᵗ y.

    Args:
        X: Design matrix (rows = samples, columns = encoded features)
        y: Target vector
        max_dimension: Optional limit on the size of XᵗX

    Returns:
        Coefficient vector aligned with the columns of X
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).reshape(-1)

    if X.ndim != 2 or X.shape[0] == 0:
        raise RegressionError("Cannot fit a regression without samples")
    if X.shape[0] != y.shape[0]:
        raise RegressionError(f"X has {X.shape[0]} rows but y has {y.shape[0]} values")

    xtx_inv = invert_matrix(X.T @ X, max_dimension=max_dimension)
    return xtx_inv @ (X.T @ y)


def compute_metrics(
    y_true,
    y_pred,
    dataset_name: str = "Dataset"
) -> Dict[str, Any]:
    """
    Compute regression accuracy metrics.

    Metrics:
    - RMSE: sqrt(mean((ŷ - y)²))
    - R²: 1 - SS_res / SS_tot, SS_tot around the sample mean of y
    - MAE

    When every target is equal SS_tot is zero: r2 is NaN and r2_defined is
    False.

    Args:
        y_true: True values
        y_pred: Predicted values
        dataset_name: Label used in the log line

    Returns:
        Dictionary with r2, r2_defined, rmse, mae, n_samples
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    if len(y_true) == 0:
        raise ValueError("Cannot compute metrics without samples")

    rmse = float(np.sqrt(mean_squared_error(y_true, y_pred)))
    mae = float(mean_absolute_error(y_true, y_pred))

    r2_defined = bool(np.ptp(y_true) > 0)
    r2 = float(r2_score(y_true, y_pred)) if r2_defined else float('nan')

    if not r2_defined:
        logger.warning("%s: all target values are equal, R² is undefined", dataset_name)
    logger.debug("%s metrics: R²=%.4f RMSE=%.2f MAE=%.2f", dataset_name, r2, rmse, mae)

    return {
        'r2': r2,
        'r2_defined': r2_defined,
        'rmse': rmse,
        'mae': mae,
        'n_samples': int(len(y_true)),
    }


@dataclass
class LinearRegressionModel:
    """Fitted least-squares model over a fixed feature encoding."""

    coefficients: List[float]
    features: List[str]
    categories: Dict[str, List[str]]
    accuracy: float = float('nan')
    rmse: float = float('nan')
    name: str = "Linear Regression"
    feature_names: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.feature_names:
            self.feature_names = encoded_feature_names(self.features, self.categories)
        if len(self.feature_names) != len(self.coefficients):
            raise ValueError(
                f"{len(self.coefficients)} coefficients for {len(self.feature_names)} encoded features"
            )

    @property
    def intercept(self) -> float:
        return self.coefficients[0]

    def predict_frame(self, df: pd.DataFrame) -> np.ndarray:
        """Predict prices (dataset units) for every row of df."""
        X = encode_features(df, self.features, self.categories)
        return X.values @ np.asarray(self.coefficients)

    def predict(self, property_input: Mapping[str, Any]) -> float:
        """Predict the price (dataset units) of a single property."""
        X = encode_input(property_input, self.features, self.categories)
        return float(X.values[0] @ np.asarray(self.coefficients))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'coefficients': [float(c) for c in self.coefficients],
            'intercept': float(self.intercept),
            'features': list(self.features),
            'feature_names': list(self.feature_names),
            'categories': {k: list(v) for k, v in self.categories.items()},
        }

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        accuracy: Optional[float] = None,
        rmse: Optional[float] = None,
        name: Optional[str] = None
    ) -> 'LinearRegressionModel':
        return cls(
            coefficients=list(data['coefficients']),
            features=list(data['features']),
            categories={k: list(v) for k, v in data['categories'].items()},
            accuracy=float('nan') if accuracy is None else accuracy,
            rmse=float('nan') if rmse is None else rmse,
            name=name or cls.name,
            feature_names=list(data.get('feature_names', [])),
        )


def train_regression_model(
    df: pd.DataFrame,
    features: List[str] = None,
    max_dimension: Optional[int] = None,
    name: str = "Linear Regression"
) -> LinearRegressionModel:
    """
    Fit the closed-form regression on a dataset and measure its accuracy.

    Args:
        df: Dataset with canonical columns (price in thousands)
        features: Ordered features to encode (default: all six)
        max_dimension: Optional XᵗX size limit passed to invert_matrix
        name: Human-readable model name

    Returns:
        Fitted LinearRegressionModel with accuracy (R²) and RMSE on df
    """
    if features is None:
        features = DEFAULT_FEATURES
    if df.empty:
        raise RegressionError("Cannot train on an empty dataset")

    categories = get_categories(df)
    X = encode_features(df, features, categories)
    y = df['price'].astype(float).values

    logger.info("Fitting regression on %d rows x %d encoded features", X.shape[0], X.shape[1])
    theta = fit_linear_regression(X.values, y, max_dimension=max_dimension)

    metrics = compute_metrics(y, X.values @ theta, "Training")

    return LinearRegressionModel(
        coefficients=theta.tolist(),
        features=list(features),
        categories=categories,
        accuracy=metrics['r2'],
        rmse=metrics['rmse'],
        name=name,
        feature_names=X.columns.tolist(),
    )


# ==================== STRATEGY EVALUATION ====================

def _estimate_rows(estimator, df: pd.DataFrame) -> np.ndarray:
    return np.array([estimator.estimate(row) for row in df.to_dict('records')], dtype=float)


def evaluate_estimators(df: pd.DataFrame, estimators: Mapping[str, Any]) -> pd.DataFrame:
    """
    Evaluate several estimation strategies on the same dataset.

    Prices are compared in dollars.

    Args:
        df: Dataset with canonical columns
        estimators: Mapping of strategy name -> object with estimate(input)

    Returns:
        DataFrame with one row per strategy (strategy, n_samples, r2, rmse, mae)
    """
    y_true = df['price'].astype(float).values * PRICE_UNIT

    results = []
    for name, estimator in estimators.items():
        metrics = compute_metrics(y_true, _estimate_rows(estimator, df), name)
        results.append({
            'strategy': name,
            'n_samples': metrics['n_samples'],
            'r2': metrics['r2'],
            'rmse': metrics['rmse'],
            'mae': metrics['mae'],
        })

    return pd.DataFrame(results, columns=['strategy', 'n_samples', 'r2', 'rmse', 'mae'])


def evaluate_by_category(
    df: pd.DataFrame,
    estimator: Any,
    category: str,
    min_samples: int = 2
) -> pd.DataFrame:
    """
    Evaluate one strategy separately for each value of a categorical column.

    Shows whether a strategy performs differently across locations or
    property types.

    Args:
        df: Dataset with canonical columns
        estimator: Object with estimate(input)
        category: Column to group by (e.g. 'location')
        min_samples: Minimum rows for a category to be reported

    Returns:
        DataFrame with metrics by category, largest groups first
    """
    y_true = df['price'].astype(float).values * PRICE_UNIT
    y_pred = _estimate_rows(estimator, df)

    results = []
    for cat_value in df[category].unique():
        mask = (df[category] == cat_value).values
        if mask.sum() < min_samples:
            continue

        cat_metrics = compute_metrics(y_true[mask], y_pred[mask], f"{category}={cat_value}")
        results.append({
            'category': cat_value,
            'n_samples': cat_metrics['n_samples'],
            'price_median': float(np.median(y_true[mask])),
            'r2': cat_metrics['r2'],
            'rmse': cat_metrics['rmse'],
            'mae': cat_metrics['mae'],
        })

    columns = ['category', 'n_samples', 'price_median', 'r2', 'rmse', 'mae']
    return pd.DataFrame(results, columns=columns).sort_values('n_samples', ascending=False).reset_index(drop=True)
