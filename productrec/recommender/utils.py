"""Utility functions for model artifact management.

Trained models are stored with joblib so they can be reused by the API
without retraining.
"""

import logging
from pathlib import Path

import joblib

from productrec.exceptions import ModelNotFoundError
from productrec.recommender.model import TrainedModel

# Configure module logger
logger = logging.getLogger(__name__)

# Model artifact filename
MODEL_FILENAME = "mf_model.joblib"


def get_model_path(model_dir: str, model_filename: str = MODEL_FILENAME) -> Path:
    """Get the file path of the model artifact without loading it."""
    return Path(model_dir) / model_filename


def save_model_artifacts(
    model: TrainedModel,
    output_dir: str,
    model_filename: str = MODEL_FILENAME,
) -> Path:
    """Save a trained model to disk.

    Creates the output directory if it doesn't exist.

    Args:
        model: Trained model to save.
        output_dir: Directory path where the artifact will be saved.
        model_filename: Filename for the model (default: "mf_model.joblib").

    Returns:
        Path of the written artifact.

    Raises:
        OSError: If unable to create output directory or save the file.
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    model_path = output_path / model_filename
    joblib.dump(model, model_path)
    logger.info(f"Saved model to {model_path}")

    return model_path


def load_model_artifacts(
    model_dir: str,
    model_filename: str = MODEL_FILENAME,
) -> TrainedModel:
    """Load a trained model from disk.

    Args:
        model_dir: Directory path where the artifact is stored.
        model_filename: Filename for the model (default: "mf_model.joblib").

    Returns:
        The loaded model.

    Raises:
        ModelNotFoundError: If the directory or the model file is missing.
    """
    model_path = get_model_path(model_dir, model_filename)
    if not model_path.exists():
        raise ModelNotFoundError(str(model_dir), details={"model_file": str(model_path)})

    model = joblib.load(model_path)
    logger.info(f"Loaded model from {model_path}")
    logger.info(f"Model shape: {model.shape}, factors: {model.n_factors}")

    return model


def check_model_exists(model_dir: str) -> bool:
    """Check if the model artifact exists.

    Args:
        model_dir: Directory path where the artifact should be stored.

    Returns:
        True if the model file exists, False otherwise.
    """
    return get_model_path(model_dir).is_file()
