"""Key encoding for matrix factorization.

Raw product ids are arbitrary numbers; the factorization needs contiguous
integer indices. ``KeyEncoder`` maps each distinct value seen during fitting
to a dense key and back.
"""

import logging
from typing import Any, Dict, Iterable, Optional

import numpy as np
import pandas as pd

from productrec.exceptions import UnseenKeyError

# Configure module logger
logger = logging.getLogger(__name__)

# Key returned for values that were not seen during fitting
UNSEEN_KEY = -1


class KeyEncoder:
    """Bidirectional mapping between raw values and dense keys.

    Keys are assigned in order of first occurrence, so the mapping is stable
    for a given training partition.
    """

    def __init__(self, column: str = "value"):
        self.column = column
        self.value_to_key: Dict[float, int] = {}
        self.key_to_value: Optional[np.ndarray] = None

    def __setstate__(self, state: dict) -> None:
        self.__dict__.update(state)
        if self.key_to_value is not None:
            self.key_to_value.setflags(write=False)

    @property
    def is_fitted(self) -> bool:
        return self.key_to_value is not None

    def fit(self, values: Iterable[Any]) -> "KeyEncoder":
        """Build the mapping from the distinct values in ``values``."""
        uniques = pd.unique(pd.Series(values, dtype=np.float64))
        self.key_to_value = np.asarray(uniques, dtype=np.float64)
        self.key_to_value.setflags(write=False)
        self.value_to_key = {float(v): k for k, v in enumerate(self.key_to_value)}

        logger.debug(f"Fitted encoder for '{self.column}' with {len(self)} keys")
        return self

    def transform(self, values: Iterable[Any]) -> np.ndarray:
        """Map values to keys; unseen values map to ``UNSEEN_KEY``."""
        self._check_fitted()
        series = pd.Series(values, dtype=np.float64)
        keys = series.map(self.value_to_key)
        return keys.fillna(UNSEEN_KEY).to_numpy(dtype=np.int64)

    def fit_transform(self, values: Iterable[Any]) -> np.ndarray:
        values = pd.Series(values, dtype=np.float64)
        return self.fit(values).transform(values)

    def inverse_transform(self, keys: Iterable[int]) -> np.ndarray:
        """Map keys back to the raw values they were built from."""
        self._check_fitted()
        keys = np.asarray(keys, dtype=np.int64)
        if keys.size and (keys.min() < 0 or keys.max() >= len(self)):
            raise IndexError(f"Keys out of range for encoder with {len(self)} keys")
        return self.key_to_value[keys]

    def encode(self, value: Any) -> int:
        """Return the key of a single value.

        Raises:
            UnseenKeyError: If the value was not seen during fitting.
        """
        self._check_fitted()
        try:
            return self.value_to_key[float(value)]
        except KeyError:
            raise UnseenKeyError(self.column, value) from None

    def _check_fitted(self) -> None:
        if not self.is_fitted:
            raise RuntimeError(f"Encoder for '{self.column}' has not been fitted")

    def __contains__(self, value: Any) -> bool:
        try:
            return float(value) in self.value_to_key
        except (TypeError, ValueError):
            return False

    def __len__(self) -> int:
        return 0 if self.key_to_value is None else len(self.key_to_value)

    def __repr__(self) -> str:
        return f"KeyEncoder(column={self.column!r}, n_keys={len(self)})"
