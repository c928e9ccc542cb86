"""Configuration for the price estimator.

Uses pydantic-settings to load configuration from environment variables
and .env files. Environment variables are prefixed with PRICE_ESTIMATOR_
(e.g., PRICE_ESTIMATOR_DATA_DIR).
"""

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PRICE_ESTIMATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Data paths
    data_dir: Path = Field(
        default=Path.home() / ".price_estimator",
        description="Directory holding the model store database",
    )
    db_name: str = Field(
        default="models.db",
        description="SQLite file name for stored models",
    )
    dataset_path: Optional[Path] = Field(
        default=None,
        description="JSON dataset to load instead of the bundled one",
    )

    # Regression
    regression_features: List[str] = Field(
        default=["area", "bedrooms", "bathrooms", "location", "property_type", "age"],
        description="Feature ordering used by the regression solver",
    )
    max_inversion_dimension: Optional[int] = Field(
        default=None,
        ge=1,
        description="Refuse to invert XᵗX above this size (2 reproduces the strict solver)",
    )

    # Neural network
    neural_random_seed: int = Field(
        default=42,
        description="Random seed for the neural network weights",
    )
    train_neural_on_startup: bool = Field(
        default=True,
        description="Fit the neural network when the API starts",
    )

    log_level: str = Field(
        default="INFO",
        description="Root logging level for the API process",
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
