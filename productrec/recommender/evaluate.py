"""Model evaluation.

Scores the held-out partition and reports regression error metrics against
the label column.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import mean_absolute_error, mean_squared_error

from productrec.recommender.model import TrainedModel

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegressionMetrics:
    """Error metrics over the scored test rows."""

    rmse: float
    mae: float
    mse: float
    n_scored: int
    n_skipped: int = 0

    def as_dict(self) -> Dict[str, float]:
        return {
            "rmse": self.rmse,
            "mae": self.mae,
            "mse": self.mse,
            "n_scored": self.n_scored,
            "n_skipped": self.n_skipped,
        }


def evaluate(
    model: TrainedModel,
    test: pd.DataFrame,
    label_column: Optional[str] = None,
) -> RegressionMetrics:
    """Evaluate a trained model on the test partition.

    Every test row is scored through the model's encoders. Rows with an id
    that never appeared in training cannot be scored; they are skipped and
    counted. The label is the literal value of ``label_column``, which by
    default is the model's configured label column.

    Args:
        model: Trained model.
        test: Test partition.
        label_column: Column holding the regression label.

    Returns:
        RegressionMetrics with RMSE, MAE (L1) and MSE (L2).

    Raises:
        ValueError: If the label column is missing or no row can be scored.
    """
    label_column = label_column or model.options.label_column
    if label_column not in test.columns:
        raise ValueError(f"Test data missing label column '{label_column}'")

    scores = model.score_values(
        test[model.options.row_column].to_numpy(),
        test[model.options.column_column].to_numpy(),
    )
    labels = test[label_column].to_numpy(dtype=np.float64)

    scored = ~np.isnan(scores)
    n_skipped = int((~scored).sum())
    if n_skipped:
        logger.warning(
            f"Skipping {n_skipped} of {len(test)} test rows with ids unseen in training"
        )

    if not scored.any():
        raise ValueError("No test rows could be scored by the model")

    mse = float(mean_squared_error(labels[scored], scores[scored]))
    mae = float(mean_absolute_error(labels[scored], scores[scored]))
    metrics = RegressionMetrics(
        rmse=float(np.sqrt(mse)),
        mae=mae,
        mse=mse,
        n_scored=int(scored.sum()),
        n_skipped=n_skipped,
    )

    logger.info("Evaluation completed", extra=metrics.as_dict())
    return metrics
