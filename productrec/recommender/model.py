"""Trained matrix factorization model."""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Tuple

import numpy as np

from productrec.recommender.encoding import KeyEncoder

if TYPE_CHECKING:
    from productrec.recommender.train import MatrixFactorizationOptions

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainedModel:
    """Encoders plus learned factors of a one-class factorization.

    The score of a (row, column) pair is the inner product of their factor
    vectors plus both bias terms. Arrays are read-only once the model is
    built.

    Attributes:
        row_encoder: Encoder of the row-space column.
        column_encoder: Encoder of the column-space column.
        row_factors: Array of shape (n_rows, n_factors).
        column_factors: Array of shape (n_columns, n_factors).
        row_bias: Array of shape (n_rows,).
        column_bias: Array of shape (n_columns,).
        options: Options the model was trained with.
        loss_history: Training loss after each iteration.
    """

    row_encoder: KeyEncoder
    column_encoder: KeyEncoder
    row_factors: np.ndarray
    column_factors: np.ndarray
    row_bias: np.ndarray
    column_bias: np.ndarray
    options: "MatrixFactorizationOptions"
    loss_history: Tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        for array in (self.row_factors, self.column_factors, self.row_bias, self.column_bias):
            array.setflags(write=False)

    def __setstate__(self, state: dict) -> None:
        # Unpickling bypasses __init__, so the arrays come back writable
        self.__dict__.update(state)
        self.__post_init__()

    @property
    def n_factors(self) -> int:
        return self.row_factors.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return len(self.row_encoder), len(self.column_encoder)

    def score_keys(self, row_keys: Iterable[int], column_keys: Iterable[int]) -> np.ndarray:
        """Score encoded pairs.

        Pairs where either key is negative (unseen) score NaN.
        """
        row_keys = np.asarray(row_keys, dtype=np.int64)
        column_keys = np.asarray(column_keys, dtype=np.int64)
        row_keys, column_keys = np.broadcast_arrays(row_keys, column_keys)

        scores = np.full(row_keys.shape, np.nan, dtype=np.float64)
        valid = (row_keys >= 0) & (column_keys >= 0)
        if valid.any():
            rows = row_keys[valid]
            cols = column_keys[valid]
            scores[valid] = (
                np.einsum("ij,ij->i", self.row_factors[rows], self.column_factors[cols])
                + self.row_bias[rows]
                + self.column_bias[cols]
            )
        return scores

    def score_values(self, row_values: Iterable[float], column_values: Iterable[float]) -> np.ndarray:
        """Encode raw ids with the stored encoders and score them."""
        return self.score_keys(
            self.row_encoder.transform(np.atleast_1d(row_values)),
            self.column_encoder.transform(np.atleast_1d(column_values)),
        )

    def summary(self) -> List[str]:
        n_rows, n_cols = self.shape
        return [
            f"Rows ({self.options.row_column}): {n_rows}",
            f"Columns ({self.options.column_column}): {n_cols}",
            f"Latent factors: {self.n_factors}",
            f"Iterations run: {len(self.loss_history)}",
            f"Final loss: {self.loss_history[-1]:.6f}" if self.loss_history else "Final loss: n/a",
        ]
