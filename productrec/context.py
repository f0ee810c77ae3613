"""Shared pipeline context.

Every stage that needs randomness (splitting, factor initialisation) takes a
``PipelineContext`` and asks it for a generator instead of touching global
random state.
"""

import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class PipelineContext:
    """Holds the random seed for one pipeline run.

    Each call to ``spawn_rng`` returns a fresh, independent generator derived
    from the seed, so a seeded context reproduces the same streams as long as
    stages ask for generators in the same order.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._seed_sequence = np.random.SeedSequence(seed)
        logger.debug(f"Created pipeline context with seed={seed}")

    def spawn_rng(self) -> np.random.Generator:
        """Return a new generator derived from the context seed."""
        (child,) = self._seed_sequence.spawn(1)
        return np.random.default_rng(child)

    def __repr__(self) -> str:
        return f"PipelineContext(seed={self.seed})"
