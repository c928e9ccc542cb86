"""
Neural Network Module

A small fixed-shape feed-forward network trained on the min-max normalized
dataset. The shape and hyperparameters are fixed:

- hidden layers: 10 and 8 units, logistic activation
- 2000 iterations, learning rate 0.01

Training returns a NeuralNetworkModel value; callers keep it and pass it to
whatever needs predictions.
"""

import logging
import os
import warnings
from dataclasses import dataclass
from typing import Any, Dict, Mapping

import joblib
import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning
from sklearn.neural_network import MLPRegressor

from .preprocessing import (
    NETWORK_INPUTS,
    Bounds,
    FeatureBounds,
    compute_bounds,
    denormalize,
    normalize_dataset,
    normalize_input,
)

logger = logging.getLogger(__name__)

HIDDEN_LAYERS = (10, 8)
ACTIVATION = 'logistic'
ITERATIONS = 2000
LEARNING_RATE = 0.01

ARTIFACT_VERSION = '1.0'


@dataclass
class NeuralNetworkModel:
    """Trained network plus the bounds its inputs were normalized with."""

    network: MLPRegressor
    bounds: FeatureBounds

    def predict(self, property_input: Mapping[str, Any]) -> float:
        """
        Predict the price (dataset units, rounded) of a single property.
        """
        normalized = normalize_input(property_input, self.bounds)
        # Degenerate features normalize to NaN; treat them as the minimum
        row = pd.DataFrame([normalized], columns=NETWORK_INPUTS).fillna(0.0)
        prediction = float(self.network.predict(row.values)[0])
        return float(round(denormalize(prediction, self.bounds['price'])))


def train_neural_network(df: pd.DataFrame, random_state: int = 42) -> NeuralNetworkModel:
    """
    Train the fixed-shape network on the whole dataset.

    Args:
        df: Dataset with canonical columns
        random_state: Seed for weight initialization and shuffling

    Returns:
        NeuralNetworkModel
    """
    bounds = compute_bounds(df)
    X, y = normalize_dataset(df, bounds)

    network = MLPRegressor(
        hidden_layer_sizes=HIDDEN_LAYERS,
        activation=ACTIVATION,
        max_iter=ITERATIONS,
        learning_rate_init=LEARNING_RATE,
        random_state=random_state,
    )

    logger.info("Training neural network on %d rows", len(X))
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', ConvergenceWarning)
        network.fit(X.fillna(0.0).values, np.nan_to_num(y.values))
    logger.info("Neural network trained (%d iterations, loss %.5f)", network.n_iter_, network.loss_)

    return NeuralNetworkModel(network=network, bounds=bounds)


def save_network_artifact(model: NeuralNetworkModel, save_path: str) -> None:
    """
    Save a trained network and its bounds with joblib.

    Args:
        model: Trained NeuralNetworkModel
        save_path: Destination file (e.g. 'models/network.joblib')
    """
    model_dir = os.path.dirname(os.path.abspath(save_path))
    os.makedirs(model_dir, exist_ok=True)

    artifact: Dict[str, Any] = {
        'network': model.network,
        'bounds': {name: (b.min, b.max) for name, b in model.bounds.items()},
        'model_version': ARTIFACT_VERSION,
        'trained_at': pd.Timestamp.now(),
    }
    joblib.dump(artifact, save_path)
    logger.info("Network artifact saved to %s", save_path)


def load_network_artifact(artifact_path: str) -> NeuralNetworkModel:
    """Load a network saved by save_network_artifact()."""
    artifact = joblib.load(artifact_path)
    bounds = {name: Bounds(lo, hi) for name, (lo, hi) in artifact['bounds'].items()}
    logger.info("Network artifact loaded from %s (trained %s)", artifact_path, artifact.get('trained_at', 'unknown'))
    return NeuralNetworkModel(network=artifact['network'], bounds=bounds)
