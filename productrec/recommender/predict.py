"""Module for scoring product combinations.

Uses a trained model to score how well two products combine and to rank
candidate products against a fixed one.
"""

import logging
from typing import Iterable, List, Literal, Optional, Tuple, Union

import numpy as np

from productrec.exceptions import UnseenKeyError
from productrec.recommender.data import COMBINED_PRODUCT_ID_COLUMN, PRODUCT_ID_COLUMN
from productrec.recommender.encoding import KeyEncoder
from productrec.recommender.model import TrainedModel

# Configure module logger
logger = logging.getLogger(__name__)

# Default parameters
DEFAULT_TOP_K = 5
SENTINEL_SCORE = float("nan")

UnseenPolicy = Literal["error", "sentinel"]
ProductId = Union[int, float]


def _as_id(value: float) -> ProductId:
    value = float(value)
    return int(value) if value.is_integer() else value


class PredictionEngine:
    """Scores (product, combined product) pairs with a trained model.

    Args:
        model: Trained model.
        on_unseen: What to do with ids that were not seen in training.
            ``"error"`` raises ``UnseenKeyError``; ``"sentinel"`` returns a
            NaN score (single predictions) or an empty ranking.
    """

    def __init__(self, model: TrainedModel, on_unseen: UnseenPolicy = "error"):
        if on_unseen not in ("error", "sentinel"):
            raise ValueError(f"on_unseen must be 'error' or 'sentinel', got {on_unseen!r}")

        options = model.options
        if {options.row_column, options.column_column} != {
            PRODUCT_ID_COLUMN,
            COMBINED_PRODUCT_ID_COLUMN,
        }:
            raise ValueError(
                "Model must be trained on product_id and combined_product_id columns"
            )

        self.model = model
        self.on_unseen = on_unseen
        self._product_is_row = options.row_column == PRODUCT_ID_COLUMN

    @property
    def product_encoder(self) -> KeyEncoder:
        return self.model.row_encoder if self._product_is_row else self.model.column_encoder

    @property
    def combined_encoder(self) -> KeyEncoder:
        return self.model.column_encoder if self._product_is_row else self.model.row_encoder

    def _lookup(self, encoder: KeyEncoder, value: ProductId) -> Optional[int]:
        if value in encoder:
            return encoder.encode(value)
        if self.on_unseen == "error":
            raise UnseenKeyError(encoder.column, value)
        logger.debug(f"Value {value} of '{encoder.column}' unseen, returning sentinel")
        return None

    def _score(self, product_keys: np.ndarray, combined_keys: np.ndarray) -> np.ndarray:
        if self._product_is_row:
            return self.model.score_keys(product_keys, combined_keys)
        return self.model.score_keys(combined_keys, product_keys)

    def predict(self, product_id: ProductId, combined_product_id: ProductId) -> float:
        """Score how well two products combine.

        Args:
            product_id: Id of the product.
            combined_product_id: Id of the product it is combined with.

        Returns:
            The model score, or NaN for unseen ids under the sentinel policy.

        Raises:
            UnseenKeyError: If either id is unseen and the policy is "error".
        """
        product_key = self._lookup(self.product_encoder, product_id)
        combined_key = self._lookup(self.combined_encoder, combined_product_id)
        if product_key is None or combined_key is None:
            return SENTINEL_SCORE

        return float(self._score(np.array([product_key]), np.array([combined_key]))[0])

    def predict_many(
        self,
        product_ids: Iterable[ProductId],
        combined_product_ids: Iterable[ProductId],
    ) -> np.ndarray:
        """Score many pairs at once; unseen pairs score NaN."""
        product_keys = self.product_encoder.transform(np.atleast_1d(np.asarray(product_ids)))
        combined_keys = self.combined_encoder.transform(
            np.atleast_1d(np.asarray(combined_product_ids))
        )
        return self._score(product_keys, combined_keys)

    def top_k(
        self,
        product_id: ProductId,
        candidates: Iterable[ProductId],
        k: int = DEFAULT_TOP_K,
    ) -> List[Tuple[ProductId, float]]:
        """Rank candidate combined products for a fixed product.

        Candidates unseen in training are skipped. Results are ordered by
        score descending, ties broken by candidate id ascending.

        Args:
            product_id: The fixed product.
            candidates: Candidate combined product ids.
            k: Maximum number of results.

        Returns:
            List of (candidate_id, score) tuples.

        Raises:
            ValueError: If k is not positive.
            UnseenKeyError: If product_id is unseen and the policy is "error".
        """
        if k < 1:
            raise ValueError(f"k must be positive, got {k}")

        product_key = self._lookup(self.product_encoder, product_id)
        if product_key is None:
            return []

        candidate_ids = np.unique(np.asarray(list(candidates), dtype=np.float64))
        candidate_keys = self.combined_encoder.transform(candidate_ids)
        known = candidate_keys >= 0

        n_unseen = int((~known).sum())
        if n_unseen:
            logger.debug(f"Skipping {n_unseen} candidates unseen in training")

        candidate_ids = candidate_ids[known]
        scores = self._score(
            np.full(len(candidate_ids), product_key, dtype=np.int64),
            candidate_keys[known],
        )

        order = np.lexsort((candidate_ids, -scores))[:k]
        ranked = [(_as_id(candidate_ids[i]), float(scores[i])) for i in order]

        logger.info(
            "Ranked candidates",
            extra={
                "product_id": _as_id(product_id),
                "n_candidates": len(candidate_ids),
                "n_unseen": n_unseen,
                "k": k,
            },
        )
        return ranked
