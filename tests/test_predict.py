"""Tests for the prediction engine."""

import math
import random

import numpy as np
import pandas as pd
import pytest

from productrec.context import PipelineContext
from productrec.exceptions import UnseenKeyError
from productrec.recommender.data import COLUMNS
from productrec.recommender.encoding import KeyEncoder
from productrec.recommender.model import TrainedModel
from productrec.recommender.predict import PredictionEngine
from productrec.recommender.train import MatrixFactorizationOptions, train_matrix_factorization


@pytest.fixture
def handmade_model() -> TrainedModel:
    """Model for product 1 whose scores are known: 10 -> 1, 20 -> 3, 30 -> 3, 40 -> 2."""
    return TrainedModel(
        row_encoder=KeyEncoder("combined_product_id").fit([10, 20, 30, 40]),
        column_encoder=KeyEncoder("product_id").fit([1, 2]),
        row_factors=np.array([[1.0], [3.0], [3.0], [1.0]]),
        column_factors=np.array([[1.0], [0.5]]),
        row_bias=np.array([0.0, 0.0, 0.0, 1.0]),
        column_bias=np.array([0.0, 0.0]),
        options=MatrixFactorizationOptions(),
    )


@pytest.fixture
def trained_model() -> TrainedModel:
    """A model trained on random pairs over 20 products."""
    random.seed(42)
    rows = [(random.randint(1, 20), random.randint(1, 20)) for _ in range(300)]
    pairs = pd.DataFrame(rows, columns=COLUMNS, dtype=np.float64)
    return train_matrix_factorization(
        pairs,
        MatrixFactorizationOptions(n_factors=4, n_iterations=5),
        PipelineContext(seed=42),
    )


def test_predict_known_scores(handmade_model: TrainedModel) -> None:
    """Test that a score is the inner product plus biases."""
    engine = PredictionEngine(handmade_model)

    assert engine.predict(1, 20) == pytest.approx(3.0)
    assert engine.predict(2, 20) == pytest.approx(1.5)
    assert engine.predict(2, 40) == pytest.approx(1.5)


def test_predict_is_idempotent(trained_model: TrainedModel) -> None:
    """Test that the same pair always gets the identical score."""
    engine = PredictionEngine(trained_model)

    assert engine.predict(3, 7) == engine.predict(3, 7)


def test_predict_many_matches_predict(trained_model: TrainedModel) -> None:
    engine = PredictionEngine(trained_model)

    scores = engine.predict_many([3, 4, 5], [7, 8, 9])

    expected = [engine.predict(3, 7), engine.predict(4, 8), engine.predict(5, 9)]
    np.testing.assert_allclose(scores, expected)


def test_predict_unseen_id_raises(trained_model: TrainedModel) -> None:
    """Test that unseen ids raise UnseenKeyError under the default policy."""
    engine = PredictionEngine(trained_model)

    with pytest.raises(UnseenKeyError):
        engine.predict(999999, 3)
    with pytest.raises(UnseenKeyError):
        engine.predict(3, 999999)


def test_predict_unseen_id_sentinel(trained_model: TrainedModel) -> None:
    """Test that unseen ids score NaN under the sentinel policy."""
    engine = PredictionEngine(trained_model, on_unseen="sentinel")

    assert math.isnan(engine.predict(999999, 3))
    assert math.isnan(engine.predict_many([999999], [3])[0])


def test_top_k_orders_by_score_then_id(handmade_model: TrainedModel) -> None:
    """Test descending scores with ties broken by ascending candidate id."""
    engine = PredictionEngine(handmade_model)

    ranked = engine.top_k(1, [40, 30, 20, 10], k=3)

    assert ranked == [(20, 3.0), (30, 3.0), (40, 2.0)]


def test_top_k_skips_unseen_candidates(handmade_model: TrainedModel) -> None:
    """Test that candidates outside the training ids are left out."""
    engine = PredictionEngine(handmade_model)

    ranked = engine.top_k(1, range(5, 50, 5), k=10)

    assert [pid for pid, _ in ranked] == [20, 30, 40, 10]


def test_top_k_returns_non_increasing_scores(trained_model: TrainedModel) -> None:
    engine = PredictionEngine(trained_model)

    ranked = engine.top_k(3, range(1, 21), k=5)

    assert len(ranked) == 5
    scores = [score for _, score in ranked]
    assert scores == sorted(scores, reverse=True)
    assert all(isinstance(pid, int) for pid, _ in ranked)


def test_top_k_unseen_fixed_product(handmade_model: TrainedModel) -> None:
    """Test the unseen-product policy for rankings."""
    with pytest.raises(UnseenKeyError):
        PredictionEngine(handmade_model).top_k(999999, [10, 20])

    assert PredictionEngine(handmade_model, on_unseen="sentinel").top_k(999999, [10, 20]) == []


def test_top_k_invalid_k(handmade_model: TrainedModel) -> None:
    with pytest.raises(ValueError, match="k must be positive"):
        PredictionEngine(handmade_model).top_k(1, [10], k=0)


def test_invalid_unseen_policy(handmade_model: TrainedModel) -> None:
    with pytest.raises(ValueError, match="on_unseen"):
        PredictionEngine(handmade_model, on_unseen="ignore")


def test_engine_supports_swapped_orientation() -> None:
    """Test a model whose rows are products instead of combined products."""
    model = TrainedModel(
        row_encoder=KeyEncoder("product_id").fit([1]),
        column_encoder=KeyEncoder("combined_product_id").fit([10, 20]),
        row_factors=np.array([[2.0]]),
        column_factors=np.array([[1.0], [3.0]]),
        row_bias=np.array([0.5]),
        column_bias=np.array([0.0, 0.0]),
        options=MatrixFactorizationOptions(
            row_column="product_id", column_column="combined_product_id"
        ),
    )
    engine = PredictionEngine(model)

    assert engine.predict(1, 20) == pytest.approx(6.5)
    assert engine.top_k(1, [10, 20], k=1) == [(20, 6.5)]
