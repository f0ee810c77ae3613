"""One-class matrix factorization training module.

This module trains a latent factor model on co-purchase pairs. Every observed
(row, column) pair is a positive interaction with target 1; every unobserved
cell is a weak negative with target ``c`` and weight ``alpha``. The loss is

    sum_obs (1 - s)^2 + alpha * sum_unobs (c - s)^2 + lambda * ||params||^2

with ``s = p_row . q_col + b_row + b_col``. It is minimised by alternating
least squares: with one side fixed, each row of the other side has a closed
form solution. The unobserved cells are never materialised; their
contribution is folded in through the Gramian of the fixed side.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from scipy.sparse import csr_matrix

from productrec.context import PipelineContext
from productrec.exceptions import TrainingFailure
from productrec.recommender.data import COMBINED_PRODUCT_ID_COLUMN, PRODUCT_ID_COLUMN
from productrec.recommender.encoding import KeyEncoder
from productrec.recommender.model import TrainedModel

# Configure module logger
logger = logging.getLogger(__name__)

# Model configuration constants
DEFAULT_ALPHA = 0.01
DEFAULT_LAMBDA = 0.025
DEFAULT_C = 1e-6
DEFAULT_N_FACTORS = 8
DEFAULT_N_ITERATIONS = 20
DEFAULT_TOLERANCE = 1e-6
DEFAULT_INIT_SCALE = 0.1
DEFAULT_BATCH_SIZE = 65536


@dataclass
class MatrixFactorizationOptions:
    """Hyperparameters and column bindings for the trainer.

    Attributes:
        row_column: Column whose values index the matrix rows.
        column_column: Column whose values index the matrix columns.
        label_column: Column used as the regression label during evaluation.
        alpha: Weight of the unobserved cells in the loss.
        lambda_: L2 regularization strength for factors and biases.
        c: Target value of the unobserved cells.
        n_factors: Dimensionality of the latent factors.
        n_iterations: Maximum number of alternating sweeps.
        tolerance: Stop early when the relative loss improvement drops
            below this value. Zero disables early stopping.
        init_scale: Standard deviation of the random factor initialisation.
        batch_size: Number of rows solved together in one batched solve.
    """

    row_column: str = COMBINED_PRODUCT_ID_COLUMN
    column_column: str = PRODUCT_ID_COLUMN
    label_column: str = COMBINED_PRODUCT_ID_COLUMN
    alpha: float = DEFAULT_ALPHA
    lambda_: float = DEFAULT_LAMBDA
    c: float = DEFAULT_C
    n_factors: int = DEFAULT_N_FACTORS
    n_iterations: int = DEFAULT_N_ITERATIONS
    tolerance: float = DEFAULT_TOLERANCE
    init_scale: float = DEFAULT_INIT_SCALE
    batch_size: int = DEFAULT_BATCH_SIZE

    def validate(self) -> None:
        """Check the hyperparameters.

        Raises:
            TrainingFailure: If any hyperparameter is out of range.
        """
        problems = []
        if not np.isfinite(self.alpha) or self.alpha < 0:
            problems.append(f"alpha must be non-negative, got {self.alpha}")
        if not np.isfinite(self.lambda_) or self.lambda_ <= 0:
            problems.append(f"lambda must be positive, got {self.lambda_}")
        if not np.isfinite(self.c):
            problems.append(f"c must be finite, got {self.c}")
        if self.n_factors < 1:
            problems.append(f"n_factors must be at least 1, got {self.n_factors}")
        if self.n_iterations < 1:
            problems.append(f"n_iterations must be at least 1, got {self.n_iterations}")
        if self.tolerance < 0:
            problems.append(f"tolerance must be non-negative, got {self.tolerance}")
        if self.init_scale <= 0:
            problems.append(f"init_scale must be positive, got {self.init_scale}")
        if self.batch_size < 1:
            problems.append(f"batch_size must be at least 1, got {self.batch_size}")
        if self.row_column == self.column_column:
            problems.append("row_column and column_column must differ")

        if problems:
            raise TrainingFailure(
                "invalid hyperparameters: " + "; ".join(problems),
                details={"problems": problems, "options": asdict(self)},
            )


def build_interaction_matrix(
    row_keys: np.ndarray,
    column_keys: np.ndarray,
    shape: Tuple[int, int],
) -> csr_matrix:
    """Build the binary interaction matrix of the observed pairs.

    Duplicate pairs collapse into a single observed cell.
    """
    data = np.ones(len(row_keys), dtype=np.float64)
    interactions = csr_matrix((data, (row_keys, column_keys)), shape=shape)
    interactions.sum_duplicates()
    interactions.data[:] = 1.0
    return interactions


def _solve_side(
    interactions: csr_matrix,
    fixed_factors: np.ndarray,
    fixed_bias: np.ndarray,
    options: MatrixFactorizationOptions,
) -> Tuple[np.ndarray, np.ndarray]:
    """Solve factors and biases of one side with the other side fixed.

    For every row u the unknowns are ``[p_u, b_u]`` and the features of
    column i are ``x_i = [q_i, 1]`` with offset ``b_i``. The normal equations

        (alpha X'X + (1 - alpha) sum_obs x x' + lambda I) theta
            = alpha X'(c - b) + sum_obs ((1 - b_i) - alpha (c - b_i)) x_i

    are assembled for a batch of rows with two sparse products and solved
    together.
    """
    alpha, c = options.alpha, options.c
    n_other, k = fixed_factors.shape
    dim = k + 1

    features = np.hstack([fixed_factors, np.ones((n_other, 1))])
    gram = alpha * features.T @ features + options.lambda_ * np.eye(dim)
    base_rhs = alpha * features.T @ (c - fixed_bias)

    outer = (features[:, :, None] * features[:, None, :]).reshape(n_other, dim * dim)
    observed_target = (1.0 - fixed_bias) - alpha * (c - fixed_bias)
    weighted = features * observed_target[:, None]

    n_own = interactions.shape[0]
    theta = np.empty((n_own, dim), dtype=np.float64)

    for start in range(0, n_own, options.batch_size):
        stop = min(start + options.batch_size, n_own)
        batch = interactions[start:stop]

        lhs = gram + (1.0 - alpha) * np.asarray(batch @ outer).reshape(-1, dim, dim)
        rhs = base_rhs + np.asarray(batch @ weighted)
        theta[start:stop] = np.linalg.solve(lhs, rhs[..., None])[..., 0]

    return theta[:, :k], theta[:, k]


def compute_loss(
    interactions: csr_matrix,
    row_factors: np.ndarray,
    column_factors: np.ndarray,
    row_bias: np.ndarray,
    column_bias: np.ndarray,
    options: MatrixFactorizationOptions,
) -> float:
    """Evaluate the full one-class objective.

    The sum over all cells uses augmented vectors ``a_u = [p_u, b_u, 1]`` and
    ``z_i = [q_i, 1, b_i]`` so that ``s_ui = a_u . z_i`` and
    ``sum s^2 = <A'A, Z'Z>``.
    """
    alpha, c = options.alpha, options.c
    n_rows, n_cols = interactions.shape

    rows, cols = interactions.nonzero()
    observed = (
        np.einsum("ij,ij->i", row_factors[rows], column_factors[cols])
        + row_bias[rows]
        + column_bias[cols]
    )

    row_aug = np.hstack([row_factors, row_bias[:, None], np.ones((n_rows, 1))])
    col_aug = np.hstack([column_factors, np.ones((n_cols, 1)), column_bias[:, None]])

    sum_sq_all = float(np.sum((row_aug.T @ row_aug) * (col_aug.T @ col_aug)))
    sum_all = float(row_aug.sum(axis=0) @ col_aug.sum(axis=0))
    all_error = c * c * n_rows * n_cols - 2.0 * c * sum_all + sum_sq_all
    unobserved_error = all_error - float(np.sum((c - observed) ** 2))

    regularization = options.lambda_ * (
        np.sum(row_factors ** 2)
        + np.sum(column_factors ** 2)
        + np.sum(row_bias ** 2)
        + np.sum(column_bias ** 2)
    )

    return float(np.sum((1.0 - observed) ** 2) + alpha * unobserved_error + regularization)


def train_matrix_factorization(
    train: pd.DataFrame,
    options: Optional[MatrixFactorizationOptions] = None,
    context: Optional[PipelineContext] = None,
) -> TrainedModel:
    """Train a one-class matrix factorization model.

    Fits the row and column key encoders on the training partition, builds
    the binary interaction matrix and runs alternating least squares until
    the iteration budget is used or the loss stops improving.

    Args:
        train: Training partition with the row and column id columns.
        options: Trainer options. Defaults reproduce the reference setup.
        context: Pipeline context providing the random generator used to
            initialise the factors.

    Returns:
        Trained, immutable model.

    Raises:
        TrainingFailure: If the options are invalid, the training data is
            empty or lacks columns, or the optimisation diverges.

    Example:
        >>> model = train_matrix_factorization(
        ...     split.train,
        ...     MatrixFactorizationOptions(n_factors=16),
        ...     PipelineContext(seed=42),
        ... )
        >>> print(model.shape)
    """
    options = options or MatrixFactorizationOptions()
    options.validate()
    context = context or PipelineContext()

    missing = {options.row_column, options.column_column} - set(train.columns)
    if missing:
        raise TrainingFailure(f"training data missing required columns: {sorted(missing)}")
    if train.empty:
        raise TrainingFailure("cannot train on an empty training partition")

    row_encoder = KeyEncoder(options.row_column)
    column_encoder = KeyEncoder(options.column_column)
    row_keys = row_encoder.fit_transform(train[options.row_column])
    column_keys = column_encoder.fit_transform(train[options.column_column])

    shape = (len(row_encoder), len(column_encoder))
    interactions = build_interaction_matrix(row_keys, column_keys, shape)

    logger.info(
        "Training matrix factorization model",
        extra={
            "n_rows": shape[0],
            "n_columns": shape[1],
            "n_observed": int(interactions.nnz),
            "n_factors": options.n_factors,
            "alpha": options.alpha,
            "lambda": options.lambda_,
        },
    )

    rng = context.spawn_rng()
    row_factors = rng.normal(0.0, options.init_scale, (shape[0], options.n_factors))
    column_factors = rng.normal(0.0, options.init_scale, (shape[1], options.n_factors))
    row_bias = np.zeros(shape[0])
    column_bias = np.zeros(shape[1])

    interactions_t = interactions.T.tocsr()
    history = []
    previous_loss = None

    for iteration in range(1, options.n_iterations + 1):
        try:
            row_factors, row_bias = _solve_side(interactions, column_factors, column_bias, options)
            column_factors, column_bias = _solve_side(interactions_t, row_factors, row_bias, options)
        except np.linalg.LinAlgError as e:
            raise TrainingFailure(f"least squares solve failed at iteration {iteration}: {e}") from e

        loss = compute_loss(
            interactions, row_factors, column_factors, row_bias, column_bias, options
        )
        if not np.isfinite(loss):
            raise TrainingFailure(
                f"loss diverged at iteration {iteration}",
                details={"iteration": iteration, "loss": str(loss)},
            )

        history.append(loss)
        logger.debug(f"Iteration {iteration}: loss={loss:.6f}")

        if previous_loss is not None and options.tolerance > 0:
            improvement = (previous_loss - loss) / max(abs(previous_loss), 1.0)
            if abs(improvement) < options.tolerance:
                logger.info(f"Converged after {iteration} iterations")
                break
        previous_loss = loss

    logger.info(f"Model training completed, final loss {history[-1]:.6f}")

    return TrainedModel(
        row_encoder=row_encoder,
        column_encoder=column_encoder,
        row_factors=row_factors,
        column_factors=column_factors,
        row_bias=row_bias,
        column_bias=column_bias,
        options=options,
        loss_history=tuple(history),
    )
