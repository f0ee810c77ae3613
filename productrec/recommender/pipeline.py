"""End-to-end co-purchase recommendation pipeline.

Loads the dataset, splits it, trains the factorization model, evaluates it
and prints a sample prediction plus the top products for a sample product:

    Loading data...
    Training the model...

    Evaluating the model...
        RMSE: 0.12
        ...
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from productrec.context import PipelineContext
from productrec.exceptions import ProductRecException
from productrec.recommender.data import (
    DEFAULT_SEPARATOR,
    DEFAULT_TEST_FRACTION,
    load_product_pairs,
    train_test_split,
)
from productrec.recommender.evaluate import RegressionMetrics, evaluate
from productrec.recommender.model import TrainedModel
from productrec.recommender.predict import DEFAULT_TOP_K, PredictionEngine, ProductId
from productrec.recommender.train import (
    DEFAULT_ALPHA,
    DEFAULT_LAMBDA,
    DEFAULT_N_FACTORS,
    DEFAULT_N_ITERATIONS,
    MatrixFactorizationOptions,
    train_matrix_factorization,
)
from productrec.recommender.utils import save_model_artifacts

# Configure module logger
logger = logging.getLogger(__name__)

# Defaults of the reference run (data from https://snap.stanford.edu/data/amazon0302.html)
DEFAULT_DATA_PATH = "data/Amazon0302.txt"
DEFAULT_SAMPLE_PAIR = (3, 63)
DEFAULT_TOP_PRODUCT_ID = 3
DEFAULT_CANDIDATE_RANGE = (1, 26211)


@dataclass
class PipelineConfig:
    """Settings of one pipeline run."""

    data_path: str = DEFAULT_DATA_PATH
    has_header: bool = True
    separator: str = DEFAULT_SEPARATOR
    test_fraction: float = DEFAULT_TEST_FRACTION
    seed: Optional[int] = None
    options: MatrixFactorizationOptions = field(default_factory=MatrixFactorizationOptions)
    sample_pair: Tuple[ProductId, ProductId] = DEFAULT_SAMPLE_PAIR
    top_product_id: ProductId = DEFAULT_TOP_PRODUCT_ID
    candidate_range: Tuple[int, int] = DEFAULT_CANDIDATE_RANGE
    top_k: int = DEFAULT_TOP_K
    model_dir: Optional[str] = None
    pause: bool = True


@dataclass(frozen=True)
class PipelineResult:
    """Everything a pipeline run produced."""

    model: TrainedModel
    metrics: RegressionMetrics
    sample_score: float
    top_products: List[Tuple[ProductId, float]]


def candidate_range(start: int, end: int) -> np.ndarray:
    """Inclusive range of candidate product ids."""
    if end < start:
        raise ValueError(f"Empty candidate range [{start}, {end}]")
    return np.arange(start, end + 1)


def run_pipeline(
    config: Optional[PipelineConfig] = None,
    out: Callable[[str], None] = print,
) -> PipelineResult:
    """Run load, split, train, evaluate and predict in sequence.

    Failures while loading, training or evaluating abort the run by
    propagating the exception. Sample ids unseen in training score NaN.

    Args:
        config: Pipeline settings; defaults reproduce the reference run.
        out: Sink for the console report lines.

    Returns:
        PipelineResult with the model, the metrics and the predictions.
    """
    config = config or PipelineConfig()
    context = PipelineContext(seed=config.seed)

    out("Loading data...")
    data = load_product_pairs(
        config.data_path,
        has_header=config.has_header,
        separator=config.separator,
    )
    partitions = train_test_split(data, test_fraction=config.test_fraction, context=context)

    out("Training the model...")
    model = train_matrix_factorization(partitions.train, config.options, context)
    out("")

    if config.model_dir:
        save_model_artifacts(model, config.model_dir)

    out("Evaluating the model...")
    metrics = evaluate(model, partitions.test)
    out(f"    RMSE: {metrics.rmse:.2f}")
    out(f"    L1: {metrics.mae:.2f}")
    out(f"    L2: {metrics.mse:.2f}")
    out("")

    # Unseen sample ids score NaN and drop out of the ranking
    engine = PredictionEngine(model, on_unseen="sentinel")

    product_id, combined_id = config.sample_pair
    out("Predicting if two products combine...")
    sample_score = engine.predict(product_id, combined_id)
    out(f"    Score of products {product_id} and {combined_id} combined: {sample_score}")
    out("")

    out(f"Calculating the top {config.top_k} products for product {config.top_product_id}...")
    top_products = engine.top_k(
        config.top_product_id,
        candidate_range(*config.candidate_range),
        k=config.top_k,
    )
    for candidate_id, score in top_products:
        out(f"    Score: {score}\tProduct: {candidate_id}")

    if config.pause and sys.stdin.isatty():
        input()

    return PipelineResult(
        model=model,
        metrics=metrics,
        sample_score=sample_score,
        top_products=top_products,
    )


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Namespace object containing parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="Train a co-purchase recommender, evaluate it and print sample predictions.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Reproduce the reference run
  python scripts/run_pipeline.py

  # Seeded run on another file, saving the model for the API
  python scripts/run_pipeline.py data/pairs.tsv --seed 42 --model-dir models --no-pause
        """,
    )

    parser.add_argument(
        "data_path",
        nargs="?",
        default=DEFAULT_DATA_PATH,
        help=f"Tab-separated file of product pairs (default: {DEFAULT_DATA_PATH})",
    )
    parser.add_argument(
        "--test-fraction",
        type=float,
        default=DEFAULT_TEST_FRACTION,
        help=f"Fraction of rows held out for evaluation (default: {DEFAULT_TEST_FRACTION})",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible splits and initialisation",
    )
    parser.add_argument(
        "--n-factors",
        type=int,
        default=DEFAULT_N_FACTORS,
        help=f"Number of latent factors (default: {DEFAULT_N_FACTORS})",
    )
    parser.add_argument(
        "--n-iterations",
        type=int,
        default=DEFAULT_N_ITERATIONS,
        help=f"Maximum number of training sweeps (default: {DEFAULT_N_ITERATIONS})",
    )
    parser.add_argument(
        "--alpha",
        type=float,
        default=DEFAULT_ALPHA,
        help=f"Weight of unobserved pairs (default: {DEFAULT_ALPHA})",
    )
    parser.add_argument(
        "--lambda",
        dest="lambda_",
        type=float,
        default=DEFAULT_LAMBDA,
        help=f"Regularization strength (default: {DEFAULT_LAMBDA})",
    )
    parser.add_argument(
        "--model-dir",
        type=str,
        default=None,
        help="Save the trained model to this directory",
    )
    parser.add_argument(
        "--no-pause",
        action="store_true",
        help="Exit without waiting for input",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for command-line execution.

    Returns:
        Exit code: 0 on success, 1 on error.
    """
    args = parse_arguments(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    config = PipelineConfig(
        data_path=args.data_path,
        test_fraction=args.test_fraction,
        seed=args.seed,
        options=MatrixFactorizationOptions(
            alpha=args.alpha,
            lambda_=args.lambda_,
            n_factors=args.n_factors,
            n_iterations=args.n_iterations,
        ),
        model_dir=args.model_dir,
        pause=not args.no_pause,
    )

    try:
        run_pipeline(config)
        return 0
    except FileNotFoundError as e:
        logger.error(f"File error: {e}")
        return 1
    except ProductRecException as e:
        logger.error(f"{type(e).__name__}: {e.message}")
        return 1
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Run interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
