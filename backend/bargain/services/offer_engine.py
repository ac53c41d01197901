"""
Seller offer engine.

WHAT: Computes the seller's next counter-offer
WHY: Concessions should decay smoothly toward the floor without crossing it
HOW: Reduce the remaining margin by a randomly drawn 2-4% step, clamp, round
"""

import random
from typing import Sequence

from ..utils.randomness import round_currency, scaled
from ..utils.logger import get_logger

logger = get_logger(__name__)

CONCESSION_STEPS = (0.02, 0.025, 0.03, 0.035, 0.04)

# Earlier schedule: absolute markdowns for the first rounds, then 40% of the margin
FIXED_MARKDOWNS = {1: 1000, 2: 500, 3: 250}
LATE_ROUND_MARGIN_SHARE = 0.40


def compute_next_offer(
    previous_offer: int,
    floor: int,
    round_number: int,
    *,
    rng: random.Random,
    scale: float = 1.0,
    schedule: str = "margin_percent",
    steps: Sequence[float] = CONCESSION_STEPS
) -> int:
    """
    Compute the seller's next offer.

    Args:
        previous_offer: Seller's standing offer
        floor: Minimum price the seller will ever offer
        round_number: Current round (1-based), used by the fixed schedule
        rng: Random source for the step draw
        scale: Session scale factor, used by the fixed schedule
        schedule: "margin_percent" (default) or "fixed_markdown"
        steps: Percentage steps for the margin_percent schedule

    Returns:
        Next offer in whole currency units, never below floor, strictly below
        previous_offer unless previous_offer is already at the floor
    """
    if previous_offer <= floor:
        return previous_offer

    margin = previous_offer - floor
    if schedule == "fixed_markdown":
        markdown = FIXED_MARKDOWNS.get(round_number)
        if markdown is not None:
            proposed = previous_offer - scaled(markdown, scale)
        else:
            proposed = previous_offer - margin * LATE_ROUND_MARGIN_SHARE
    else:
        step = rng.choice(tuple(steps))
        proposed = previous_offer - margin * step

    next_offer = round_currency(max(proposed, floor))
    if next_offer >= previous_offer:
        # Margin too small to survive rounding
        next_offer = max(previous_offer - 1, floor)

    logger.debug(
        f"Offer round {round_number}: {previous_offer} -> {next_offer} "
        f"(floor={floor}, schedule={schedule})"
    )
    return next_offer
