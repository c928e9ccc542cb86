"""
Model validation and sanity checks
"""
import sys

import numpy as np

from price_estimator.dataset import PRICE_UNIT, load_dataset
from price_estimator.estimators import (
    HeuristicEstimator,
    NeuralNetworkEstimator,
    RegressionEstimator,
    format_currency,
)
from price_estimator.model import (
    InversionNotSupportedError,
    compute_metrics,
    evaluate_by_category,
    evaluate_estimators,
    train_regression_model,
)
from price_estimator.neural import train_neural_network

print("=" * 80)
print("MODEL VALIDATION & SANITY CHECKS")
print("=" * 80)

# Load data
dataset_path = sys.argv[1] if len(sys.argv) > 1 else None
df = load_dataset(dataset_path)
print(f"\nTotal rows: {len(df):,}")

# CHECK 1: Baseline
print("\n" + "=" * 80)
print("CHECK 1: BASELINE")
print("=" * 80)

y = df['price'].values * PRICE_UNIT
baseline = np.full(len(y), np.median(y))
baseline_metrics = compute_metrics(y, baseline, "Median baseline")

print(f"\nGlobal Median Baseline:")
print(f"   Median: {format_currency(np.median(y), 0)}")
print(f"   R²: {baseline_metrics['r2']:.4f}")
print(f"   RMSE: {format_currency(baseline_metrics['rmse'], 0)}")

# CHECK 2: Strict solver
print("\n" + "=" * 80)
print("CHECK 2: STRICT 2x2 SOLVER")
print("=" * 80)

strict = train_regression_model(df, features=['area'], max_dimension=2)
print(f"\nArea-only fit: price = {strict.coefficients[0]:.2f} + {strict.coefficients[1]:.4f} × area (thousands)")
print(f"   R²: {strict.accuracy:.4f}")

try:
    train_regression_model(df, max_dimension=2)
    print("\n❌ Six-feature fit should not be possible with the strict solver")
except InversionNotSupportedError as e:
    print(f"\n✓ Six-feature fit refused: {e}")

# CHECK 3: Strategies side by side
print("\n" + "=" * 80)
print("CHECK 3: STRATEGIES SIDE BY SIDE")
print("=" * 80)

regression = RegressionEstimator(train_regression_model(df))
estimators = {
    'heuristic': HeuristicEstimator(),
    'regression': regression,
    'neural': NeuralNetworkEstimator(train_neural_network(df)),
}
results = evaluate_estimators(df, estimators)

print(f"\n{'Strategy':>12} {'R²':>10} {'RMSE':>15} {'MAE':>15}")
for row in results.itertuples():
    print(f"{row.strategy:>12} {row.r2:>10.4f} {format_currency(row.rmse, 0):>15} {format_currency(row.mae, 0):>15}")

# CHECK 4: Regression by location
print("\n" + "=" * 80)
print("CHECK 4: REGRESSION BY LOCATION")
print("=" * 80)

by_location = evaluate_by_category(df, regression, 'location')
print()
print(by_location.to_string(index=False))

# CHECK 5: Reference property
print("\n" + "=" * 80)
print("CHECK 5: REFERENCE PROPERTY")
print("=" * 80)

reference = {'area': 1500, 'bedrooms': 3, 'bathrooms': 2, 'location': 'Suburban',
             'property_type': 'House', 'age': 5}
print(f"\n{reference}")
for name, estimator in estimators.items():
    print(f"   {name:>12}: {format_currency(estimator.estimate(reference), 0)}")

print("\n" + "=" * 80)
print("SUMMARY")
print("=" * 80)

best = results.sort_values('rmse').iloc[0]
print(f"\nLowest RMSE: {best['strategy']} ({format_currency(best['rmse'], 0)})")
if best['r2'] > baseline_metrics['r2']:
    print("✓ Best strategy beats the median baseline")
else:
    print("⚠️  WARNING: No strategy beats the median baseline!")
