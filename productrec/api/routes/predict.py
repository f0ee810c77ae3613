"""Prediction endpoints for the ProductRec API.

This module exposes the prediction engine: scoring a single product pair and
ranking candidate combined products for a fixed product.
"""

import logging
from typing import Dict, List

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from productrec.recommender.pipeline import DEFAULT_CANDIDATE_RANGE, candidate_range
from productrec.recommender.predict import DEFAULT_TOP_K, PredictionEngine
from productrec.recommender.utils import load_model_artifacts

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/predict",
    tags=["predictions"],
)

# Default model directory
DEFAULT_MODEL_DIR = "models"

# Loaded engines keyed by model directory
_engine_cache: Dict[str, PredictionEngine] = {}


class ScoreResponse(BaseModel):
    """Response model for pair scoring requests."""

    product_id: float = Field(..., description="Product id")
    combined_product_id: float = Field(..., description="Combined product id")
    score: float = Field(..., description="Compatibility score")


class RankedProduct(BaseModel):
    """One ranked candidate."""

    product_id: float = Field(..., description="Candidate combined product id")
    score: float = Field(..., description="Compatibility score")


class TopProductsResponse(BaseModel):
    """Response model for ranking requests."""

    product_id: float = Field(..., description="Fixed product id")
    results: List[RankedProduct] = Field(
        ..., description="Candidates ordered by descending score"
    )


def get_engine(model_dir: str = DEFAULT_MODEL_DIR) -> PredictionEngine:
    """Load the prediction engine for a model directory, caching it.

    Raises:
        ModelNotFoundError: If no model is stored in model_dir.
    """
    engine = _engine_cache.get(model_dir)
    if engine is not None:
        logger.debug(f"Using cached model for {model_dir}")
        return engine

    logger.info(f"Loading model from {model_dir}")
    engine = PredictionEngine(load_model_artifacts(model_dir))
    _engine_cache[model_dir] = engine
    return engine


@router.get("/score", response_model=ScoreResponse)
def score_pair(
    product_id: float,
    combined_product_id: float,
    model_dir: str = DEFAULT_MODEL_DIR,
) -> ScoreResponse:
    """Score how well two products combine.

    Example:
        GET /predict/score?product_id=3&combined_product_id=63
    """
    engine = get_engine(model_dir)
    score = engine.predict(product_id, combined_product_id)

    logger.info(
        "Scored product pair",
        extra={
            "product_id": product_id,
            "combined_product_id": combined_product_id,
            "score": score,
        },
    )
    return ScoreResponse(
        product_id=product_id,
        combined_product_id=combined_product_id,
        score=score,
    )


@router.get("/top/{product_id}", response_model=TopProductsResponse)
def top_products(
    product_id: float,
    k: int = Query(DEFAULT_TOP_K, ge=1, le=1000),
    start: int = DEFAULT_CANDIDATE_RANGE[0],
    end: int = DEFAULT_CANDIDATE_RANGE[1],
    model_dir: str = DEFAULT_MODEL_DIR,
) -> TopProductsResponse:
    """Rank candidate products in [start, end] against a fixed product.

    Example:
        GET /predict/top/3?k=5
    """
    engine = get_engine(model_dir)
    ranked = engine.top_k(product_id, candidate_range(start, end), k=k)

    return TopProductsResponse(
        product_id=product_id,
        results=[RankedProduct(product_id=pid, score=score) for pid, score in ranked],
    )


@router.post("/reload-model")
def reload_model(model_dir: str = DEFAULT_MODEL_DIR) -> Dict[str, str]:
    """Reload the model from disk.

    Drops the cached engine so a freshly trained model is picked up without
    restarting the server.
    """
    logger.info(f"Reloading model from {model_dir}")
    _engine_cache.pop(model_dir, None)
    get_engine(model_dir)
    return {"status": "Model reloaded successfully"}
