"""Tests for the FastAPI application endpoints.

This module contains integration tests for the ProductRec API, including
the health check, the prediction endpoints and error rendering.
"""

import json
import logging
import random
from pathlib import Path
from typing import Generator

import numpy as np
import pandas as pd
import pytest
from fastapi.testclient import TestClient

from productrec.api.logging_config import JSONFormatter
from productrec.api.main import app
from productrec.api.routes import predict as predict_routes
from productrec.context import PipelineContext
from productrec.recommender.data import COLUMNS
from productrec.recommender.predict import PredictionEngine
from productrec.recommender.train import MatrixFactorizationOptions, train_matrix_factorization
from productrec.recommender.utils import save_model_artifacts

# Create test client
client = TestClient(app)


@pytest.fixture(scope="module")
def model_dir(tmp_path_factory) -> Generator[Path, None, None]:
    """Train a small model and save it for the API to load."""
    random.seed(42)
    rows = [(random.randint(1, 30), random.randint(1, 30)) for _ in range(600)]
    pairs = pd.DataFrame(rows, columns=COLUMNS, dtype=np.float64)

    model = train_matrix_factorization(
        pairs,
        MatrixFactorizationOptions(n_factors=4, n_iterations=5),
        PipelineContext(seed=42),
    )
    directory = tmp_path_factory.mktemp("api_model")
    save_model_artifacts(model, str(directory))

    yield directory

    predict_routes._engine_cache.clear()


def test_ping_endpoint() -> None:
    """Test that the /ping endpoint returns correct status and a request id."""
    response = client.get("/ping")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert "X-Request-ID" in response.headers


def test_score_endpoint(model_dir: Path) -> None:
    """Test that /predict/score returns the engine's score."""
    response = client.get(
        "/predict/score",
        params={"product_id": 3, "combined_product_id": 7, "model_dir": str(model_dir)},
    )

    assert response.status_code == 200
    data = response.json()
    engine = predict_routes.get_engine(str(model_dir))
    assert data["product_id"] == 3
    assert data["combined_product_id"] == 7
    assert data["score"] == pytest.approx(engine.predict(3, 7))


def test_top_endpoint(model_dir: Path) -> None:
    """Test that /predict/top returns k candidates by descending score."""
    response = client.get(
        "/predict/top/3",
        params={"k": 4, "start": 1, "end": 30, "model_dir": str(model_dir)},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["product_id"] == 3
    assert len(data["results"]) == 4
    scores = [item["score"] for item in data["results"]]
    assert scores == sorted(scores, reverse=True)


def test_unseen_product_returns_404(model_dir: Path) -> None:
    """Test that an id outside the training data is reported as not found."""
    response = client.get(
        "/predict/score",
        params={"product_id": 999999, "combined_product_id": 7, "model_dir": str(model_dir)},
    )

    assert response.status_code == 404
    data = response.json()
    assert data["error"] == "UnseenKeyError"
    assert data["details"]["value"] == 999999


def test_missing_model_returns_503(tmp_path: Path) -> None:
    """Test that a missing model returns 503 Service Unavailable."""
    response = client.get(
        "/predict/score",
        params={"product_id": 3, "combined_product_id": 7, "model_dir": str(tmp_path)},
    )

    assert response.status_code == 503
    assert response.json()["error"] == "ModelNotFoundError"


def test_invalid_k_returns_422(model_dir: Path) -> None:
    response = client.get("/predict/top/3", params={"k": 0, "model_dir": str(model_dir)})

    assert response.status_code == 422


def test_empty_candidate_range_returns_400(model_dir: Path) -> None:
    response = client.get(
        "/predict/top/3", params={"start": 10, "end": 1, "model_dir": str(model_dir)}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ValueError"


def test_reload_model(model_dir: Path) -> None:
    """Test that reloading replaces the cached engine."""
    before = predict_routes.get_engine(str(model_dir))

    response = client.post("/predict/reload-model", params={"model_dir": str(model_dir)})

    assert response.status_code == 200
    assert response.json() == {"status": "Model reloaded successfully"}
    after = predict_routes.get_engine(str(model_dir))
    assert isinstance(after, PredictionEngine)
    assert after is not before


def test_json_formatter_includes_extra_fields() -> None:
    """Test that structured fields passed via extra end up in the JSON line."""
    record = logging.LogRecord(
        "productrec.test", logging.INFO, __file__, 1, "Scored %s", ("pair",), None
    )
    record.product_id = 3

    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "Scored pair"
    assert data["level"] == "INFO"
    assert data["product_id"] == 3
    assert "args" not in data
