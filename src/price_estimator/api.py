"""
FastAPI Service for Real Estate Price Estimation

REST API with:
- POST /api/v1/estimate: Price estimate from the heuristic, regression or neural strategy
- POST /api/v1/models/train: Fit and store a regression model
- GET/DELETE /api/v1/models[/{id}]: Manage stored models
- GET /api/v1/market-trends: Dataset summary statistics
- GET /health: Service health check
- Input validation with Pydantic
"""

import logging
import math
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import __version__
from .config import Settings, get_settings
from .dataset import load_dataset
from .estimators import (
    HeuristicEstimator,
    NeuralNetworkEstimator,
    RegressionEstimator,
    format_currency,
)
from .market import market_trends
from .model import LinearRegressionModel, RegressionError, train_regression_model
from .neural import train_neural_network
from .storage import ModelStore, StorageError, StoredModel

logger = logging.getLogger(__name__)

STRATEGIES = ('heuristic', 'regression', 'neural')

# ==================== API MODELS (Request/Response Schemas) ====================

class PropertyInput(BaseModel):
    """Property attributes for a price estimate."""

    area: float = Field(..., gt=0, description="Living area in sq ft (must be positive)")
    bedrooms: int = Field(..., ge=0, description="Number of bedrooms")
    bathrooms: float = Field(..., ge=0, description="Number of bathrooms (half steps allowed)")
    location: str = Field(..., min_length=1, description="Location (e.g. 'Downtown', 'Suburban', 'Rural')")
    property_type: Optional[str] = Field(None, description="Property type (needed by the regression strategy)")
    age: float = Field(..., ge=0, description="Age of the property in years")

    @field_validator('area')
    @classmethod
    def validate_area(cls, v):
        if v > 100000:  # Sanity check
            raise ValueError('area seems unrealistically large (>100,000 sq ft)')
        return v

    @field_validator('bathrooms')
    @classmethod
    def validate_bathrooms(cls, v):
        if not (v * 2).is_integer():
            raise ValueError('bathrooms must be a whole or half number')
        return v

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "area": 1500,
            "bedrooms": 3,
            "bathrooms": 2,
            "location": "Suburban",
            "property_type": "House",
            "age": 5
        }
    })


class EstimateResponse(BaseModel):
    strategy: str = Field(..., description="Strategy that produced the estimate")
    estimated_price: float = Field(..., description="Estimated price in dollars")
    formatted_price: str = Field(..., description="Estimated price as currency text")
    model_id: Optional[str] = Field(None, description="Stored regression model used, if any")


class TrainRequest(BaseModel):
    name: Optional[str] = Field(None, description="Name to store the model under")
    description: Optional[str] = Field(None, description="Free-text description")
    features: Optional[List[str]] = Field(None, description="Feature ordering (default from settings)")


class TrainResponse(BaseModel):
    accuracy: Optional[float] = Field(None, description="R² on the dataset (None if undefined)")
    rmse: float = Field(..., description="RMSE in dataset units (thousands)")
    features: List[str]
    saved: bool = Field(..., description="Whether the model was persisted")
    record: Optional[StoredModel] = None
    warning: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    dataset_size: int
    strategies: Dict[str, bool]
    active_model_id: Optional[str] = None
    uptime_seconds: Optional[float] = None


# ==================== APPLICATION STATE ====================

def _regression_from_record(record: StoredModel) -> RegressionEstimator:
    model = LinearRegressionModel.from_dict(
        record.model,
        accuracy=record.accuracy,
        rmse=record.rmse,
        name=record.name,
    )
    return RegressionEstimator(model)


def _initial_regression(app: FastAPI) -> None:
    """Use the most recent stored model, or fit one in memory."""
    settings: Settings = app.state.settings
    try:
        recent = app.state.store.get_most_recent()
    except StorageError as e:
        logger.warning("Could not load stored models: %s", e)
        recent = None

    if recent is not None:
        try:
            app.state.estimators['regression'] = _regression_from_record(recent)
            app.state.active_model_id = recent.id
            logger.info("Loaded previously trained model %s", recent.name)
            return
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Stored model %s is unusable: %s", recent.id, e)

    try:
        model = train_regression_model(
            app.state.dataset,
            features=settings.regression_features,
            max_dimension=settings.max_inversion_dimension,
        )
        app.state.estimators['regression'] = RegressionEstimator(model)
    except (RegressionError, KeyError, ValueError) as e:
        logger.warning("Regression strategy unavailable: %s", e)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Load the dataset and prepare the estimators at startup.

    Fitted models are kept on app.state and handed to each request from
    there.
    """
    settings: Settings = app.state.settings
    logging.getLogger().setLevel(settings.log_level.upper())

    app.state.start_time = datetime.now()
    app.state.dataset = load_dataset(settings.dataset_path)
    app.state.store = ModelStore(settings.db_path)
    app.state.active_model_id = None
    app.state.estimators = {
        'heuristic': HeuristicEstimator(),
        'regression': None,
        'neural': None,
    }

    _initial_regression(app)

    if settings.train_neural_on_startup:
        network = train_neural_network(app.state.dataset, random_state=settings.neural_random_seed)
        app.state.estimators['neural'] = NeuralNetworkEstimator(network)

    logger.info("Price estimator ready (%d records)", len(app.state.dataset))
    yield


# ==================== FASTAPI APPLICATION ====================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    app = FastAPI(
        title="Real Estate Price Estimation API",
        description="Property price estimates from heuristic, regression and neural strategies",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings or get_settings()

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request):
        state = request.app.state
        uptime = (datetime.now() - state.start_time).total_seconds()
        return HealthResponse(
            status="healthy",
            version=__version__,
            dataset_size=len(state.dataset),
            strategies={name: est is not None for name, est in state.estimators.items()},
            active_model_id=state.active_model_id,
            uptime_seconds=uptime,
        )

    @app.post("/api/v1/estimate", response_model=EstimateResponse, tags=["Estimation"])
    async def estimate_price(
        property_input: PropertyInput,
        request: Request,
        strategy: str = Query('heuristic', description="heuristic, regression or neural"),
    ):
        """
        Estimate a property price with the chosen strategy.

        Raises:
            400: Unknown strategy
            503: Strategy has no fitted model
            422: Input the strategy cannot use
        """
        if strategy not in STRATEGIES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown strategy '{strategy}'. Choose one of: {', '.join(STRATEGIES)}"
            )

        estimator = request.app.state.estimators.get(strategy)
        if estimator is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"No trained {strategy} model available"
            )

        try:
            price = estimator.estimate(property_input)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Invalid input: {str(e)}"
            )

        return EstimateResponse(
            strategy=strategy,
            estimated_price=price,
            formatted_price=format_currency(price),
            model_id=request.app.state.active_model_id if strategy == 'regression' else None,
        )

    @app.post("/api/v1/models/train", response_model=TrainResponse, tags=["Models"])
    async def train_model(request: Request, train_request: Optional[TrainRequest] = None):
        """
        Fit the regression on the dataset, activate it and store it.

        A failed save still activates the fitted model and returns a warning.
        """
        state = request.app.state
        settings: Settings = state.settings
        train_request = train_request or TrainRequest()
        features = train_request.features or settings.regression_features

        try:
            model = train_regression_model(
                state.dataset,
                features=features,
                max_dimension=settings.max_inversion_dimension,
            )
        except (RegressionError, KeyError, ValueError) as e:
            logger.error("Error training model: %s", e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error training model. Please try again."
            )

        state.estimators['regression'] = RegressionEstimator(model)
        state.active_model_id = None

        metadata = {
            'name': train_request.name or f"Real Estate Model {datetime.now().date().isoformat()}",
            'accuracy': model.accuracy,
            'rmse': model.rmse,
            'features': model.features,
            'description': train_request.description or 'Linear regression model for real estate price prediction',
        }

        record, warning = None, None
        try:
            record = state.store.save(model, metadata)
            state.active_model_id = record.id
        except StorageError as e:
            logger.warning("Model trained but not saved: %s", e)
            warning = "The model was trained but could not be saved for future use."

        return TrainResponse(
            accuracy=None if math.isnan(model.accuracy) else model.accuracy,
            rmse=model.rmse,
            features=model.features,
            saved=record is not None,
            record=record,
            warning=warning,
        )

    @app.get("/api/v1/models", response_model=List[StoredModel], tags=["Models"])
    async def list_models(request: Request):
        """Stored models, newest first."""
        try:
            models = request.app.state.store.get_all()
        except StorageError as e:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
        return sorted(models, key=lambda record: record.created, reverse=True)

    @app.get("/api/v1/models/{model_id}", response_model=StoredModel, tags=["Models"])
    async def get_model(model_id: str, request: Request):
        record = request.app.state.store.get_by_id(model_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Model {model_id} not found")
        return record

    @app.post("/api/v1/models/{model_id}/activate", response_model=StoredModel, tags=["Models"])
    async def activate_model(model_id: str, request: Request):
        """Use a stored model for regression estimates."""
        state = request.app.state
        record = state.store.get_by_id(model_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Model {model_id} not found")

        state.estimators['regression'] = _regression_from_record(record)
        state.active_model_id = record.id
        return record

    @app.delete("/api/v1/models/{model_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Models"])
    async def delete_model(model_id: str, request: Request):
        """Delete a stored model; deleting the active one disables regression estimates."""
        state = request.app.state
        state.store.delete(model_id)
        if state.active_model_id == model_id:
            state.estimators['regression'] = None
            state.active_model_id = None
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/api/v1/market-trends", tags=["Market"])
    async def get_market_trends(request: Request):
        trends = market_trends(request.app.state.dataset)
        if trends is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No data available")
        return trends

    # ==================== ERROR HANDLERS ====================

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        """Custom HTTP exception handler"""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.detail,
                "status_code": exc.status_code
            }
        )

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request, exc):
        logger.error("Model store error: %s", exc)
        return JSONResponse(
            status_code=503,
            content={
                "error": "Model store unavailable",
                "detail": str(exc)
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        """Catch-all exception handler"""
        logger.exception("Unexpected error: %s", exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc)
            }
        )

    return app


app = create_app()


# ==================== MAIN (for local testing) ====================

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    print("Starting Real Estate Price Estimation API...")
    print("API Documentation: http://localhost:8000/docs")
    print("Health Check: http://localhost:8000/health")

    uvicorn.run(
        "price_estimator.api:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
