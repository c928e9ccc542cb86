"""
Real Estate Price Estimator

Property valuation over a small bundled dataset with:
- Min-max feature normalization
- Closed-form least-squares regression with R²/RMSE reporting
- Heuristic, regression and neural network estimation strategies
- Local persistence of fitted models
- FastAPI deployment
"""

__version__ = "1.0.0"
