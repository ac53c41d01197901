"""
Dimension scheduler.

WHAT: Hands out one scale factor per session from a shuffled queue
WHY: Every factor is used once before any factor repeats
HOW: Fisher-Yates shuffle of the factor set, popped until empty, then refilled
"""

import random
from typing import Sequence

from ..utils.randomness import shuffle
from ..utils.logger import get_logger

logger = get_logger(__name__)


class DimensionScheduler:
    """Queue of scale factors drawn without replacement."""

    def __init__(self, factors: Sequence[float], rng: random.Random | None = None):
        if not factors:
            raise ValueError("DimensionScheduler needs at least one factor")
        self.factors = tuple(factors)
        self.rng = rng or random.Random()
        self._queue: list[float] = []

    def _refill(self):
        self._queue = shuffle(self.factors, self.rng)
        logger.debug(f"Refilled dimension queue: {self._queue}")

    def next_dimension(self) -> float:
        """
        Draw the next scale factor.

        Returns:
            One of the configured factors; the queue is reshuffled when empty
        """
        if not self._queue:
            self._refill()
        return self._queue.pop()

    @property
    def remaining(self) -> int:
        """Number of factors left before the next reshuffle."""
        return len(self._queue)
