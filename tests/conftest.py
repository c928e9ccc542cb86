"""Pytest fixtures and test utilities."""

import pandas as pd
import pytest

from price_estimator.config import Settings
from price_estimator.dataset import load_dataset
from price_estimator.storage import ModelStore


@pytest.fixture(scope="session")
def dataset() -> pd.DataFrame:
    """The bundled property dataset."""
    return load_dataset()


@pytest.fixture
def small_frame() -> pd.DataFrame:
    """Four hand-checked properties (prices in thousands)."""
    return pd.DataFrame({
        'area': [1000.0, 1500.0, 2000.0, 1200.0],
        'bedrooms': [2, 3, 4, 2],
        'bathrooms': [1.0, 2.0, 2.5, 1.5],
        'location': ['Downtown', 'Suburban', 'Rural', 'Downtown'],
        'property_type': ['Condo', 'House', 'House', 'House'],
        'age': [10, 5, 20, 2],
        'price': [300.0, 400.0, 250.0, 450.0],
        'sale_date': pd.to_datetime(['2023-01-15', '2023-06-10', '2023-12-01', '2024-01-20']),
    })


@pytest.fixture
def linear_frame() -> pd.DataFrame:
    """Noise-free price = 3 × area + 2."""
    areas = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
    return pd.DataFrame({
        'area': areas,
        'bedrooms': [1] * 6,
        'bathrooms': [1.0] * 6,
        'location': ['Suburban'] * 6,
        'property_type': ['House'] * 6,
        'age': [0] * 6,
        'price': [3 * a + 2 for a in areas],
    })


@pytest.fixture
def store(tmp_path) -> ModelStore:
    """Empty model store in a temporary directory."""
    return ModelStore(tmp_path / "models.db")


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing the store at a temporary directory."""
    return Settings(data_dir=tmp_path, train_neural_on_startup=False)


@pytest.fixture
def reference_property() -> dict:
    """Reference property used across strategies."""
    return {
        'area': 1500,
        'bedrooms': 3,
        'bathrooms': 2,
        'location': 'Suburban',
        'property_type': 'House',
        'age': 5,
    }
