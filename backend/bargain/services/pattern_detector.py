"""
Buyer behavior pattern detection.

WHAT: Detects a sustained run of minimal counter-offer increments
WHY: Nudge buyers who inch upward instead of negotiating
HOW: Recompute the trailing small-step chain over the full history every round
"""

import math
from typing import Iterable, Sequence

from ..models.negotiation import NegotiationSession
from ..utils.randomness import scaled
from ..utils.logger import get_logger

logger = get_logger(__name__)

PATTERN_MESSAGE = "You are only moving in very small steps. Please come further toward the seller."


def _qualifying_counters(values: Iterable[object], lowball_limit: int) -> list[float]:
    counters = []
    for value in values:
        if value is None or isinstance(value, bool):
            continue
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            continue
        if value >= lowball_limit:
            counters.append(value)
    return counters


def small_step_threshold(
    previous: float,
    band_limits: Sequence[int],
    thresholds: Sequence[float]
) -> float | None:
    """
    Allowed relative increase for a value in a given price band.

    Returns None above the highest band, where no increase counts as small.
    """
    for limit, threshold in zip(band_limits, thresholds):
        if previous < limit:
            return threshold
    return None


def trailing_chain_length(
    counters: Sequence[float],
    band_limits: Sequence[int],
    thresholds: Sequence[float]
) -> int:
    """
    Length of the trailing run of small positive increments.

    A run of n values contains n - 1 qualifying increases; a single value
    (or an empty sequence) yields 1 (or 0).
    """
    if not counters:
        return 0
    chain = 1
    for previous, current in zip(counters, counters[1:]):
        diff = current - previous
        threshold = small_step_threshold(previous, band_limits, thresholds)
        if threshold is not None and 0 < diff <= threshold * previous:
            chain += 1
        else:
            chain = 1
    return chain


def update_pattern_message(session: NegotiationSession) -> str:
    """
    Recompute the session's pattern advisory from its full history.

    Args:
        session: Session to update (pattern_message is overwritten)

    Returns:
        The new advisory, empty when no pattern is present
    """
    config = session.config
    f = session.scale_factor
    counters = _qualifying_counters(
        (record.counter_offer for record in session.history),
        scaled(config.lowball_limit, f),
    )
    band_limits = [scaled(limit, f) for limit in config.pattern_band_limits]
    chain = trailing_chain_length(counters, band_limits, config.pattern_thresholds)

    session.pattern_message = PATTERN_MESSAGE if chain >= config.pattern_min_chain else ""
    if session.pattern_message:
        logger.info(f"Small-step pattern detected for {session.participant_id} (chain={chain})")
    return session.pattern_message
