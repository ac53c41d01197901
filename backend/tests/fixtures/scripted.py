"""
Deterministic helpers for engine tests.

WHAT: Scripted random source and a session factory
WHY: Abort rolls, step draws and round counts must be predictable in tests
HOW: random.Random subclass with queued randint values
"""

import random

from bargain.models.negotiation import NegotiationConfig, NegotiationPhase, NegotiationSession
from bargain.utils.randomness import scaled


class ScriptedRandom(random.Random):
    """
    Random source with scripted integer draws.

    randint pops queued values, otherwise returns the upper bound, so an
    abort roll only fires at 100% unless a test queues a lower roll.
    choice picks the first element, uniform the lower bound.
    """

    def __init__(self, randints=None):
        super().__init__(0)
        self.randints = list(randints or [])

    def queue(self, *values):
        self.randints.extend(values)

    def randint(self, a, b):
        if self.randints:
            return self.randints.pop(0)
        return b

    def choice(self, seq):
        return seq[0]

    def uniform(self, a, b):
        return a


def make_session(
    *,
    current_offer=5500,
    scale_factor=1.0,
    round=1,
    max_rounds=12,
    config=None,
    phase=NegotiationPhase.NEGOTIATING,
    **kwargs
):
    """Build a session in an arbitrary state."""
    config = config or NegotiationConfig()
    return NegotiationSession(
        config=config,
        phase=phase,
        round=round,
        max_rounds=max_rounds,
        scale_factor=scale_factor,
        min_price=scaled(config.base_floor, scale_factor),
        initial_offer=scaled(config.initial_offer, scale_factor),
        current_offer=current_offer,
        **kwargs
    )
