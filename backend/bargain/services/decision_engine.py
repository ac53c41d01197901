"""
Decision engine for buyer counter-offers.

WHAT: Auto-acceptance, abort probability and the probabilistic abort roll
WHY: The seller accepts close offers and walks away from stubborn or insulting ones
HOW: Threshold rules scaled by the session factor plus a uniform 1-100 roll
"""

import random
from dataclasses import dataclass

from ..models.negotiation import FinishReason, NegotiationPhase, NegotiationSession
from ..utils.randomness import format_currency, rand_int, round_currency, scaled
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AbortDecision:
    """Outcome of one abort evaluation."""
    aborted: bool
    chance: int  # percent, after any penalty
    roll: int | None = None  # None when the instant-abort rule fired
    penalized: bool = False
    instant: bool = False


def should_auto_accept(
    initial_offer: int,
    min_price: int,
    seller_offer: int,
    buyer_offer: int,
    *,
    accept_band: tuple[int, int],
    accept_margin: float = 0.12,
    relative_gap: float = 0.05,
    floor_accept: bool = False
) -> bool:
    """
    Decide whether the seller accepts the buyer's offer outright.

    Rules (any one suffices):
    - buyer meets or beats the seller's offer
    - buyer within relative_gap of the seller's offer
    - buyer inside the scaled acceptance band
    - buyer at or above max(min_price, initial_offer * (1 - accept_margin))
    - floor_accept set (final rounds) and buyer at or above min_price

    Args:
        initial_offer: Session ceiling price
        min_price: Session floor price
        seller_offer: Seller's standing offer
        buyer_offer: Buyer's counter-offer
        accept_band: (low, high) absolute band, already scaled
        accept_margin: Fraction below the initial offer that is always accepted
        relative_gap: Maximum relative distance to the seller's offer
        floor_accept: Whether the final-round floor rule applies

    Returns:
        True if the offer is accepted
    """
    if buyer_offer >= seller_offer:
        return True
    if seller_offer > 0 and abs(seller_offer - buyer_offer) <= relative_gap * seller_offer:
        return True
    band_low, band_high = accept_band
    if band_low <= buyer_offer <= band_high:
        return True
    if buyer_offer >= max(min_price, round_currency(initial_offer * (1 - accept_margin))):
        return True
    if floor_accept and buyer_offer >= min_price:
        return True
    return False


def session_accepts(session: NegotiationSession, buyer_offer: int) -> bool:
    """Apply should_auto_accept with the session's scaled configuration."""
    config = session.config
    f = session.scale_factor
    return should_auto_accept(
        session.initial_offer,
        session.min_price,
        session.current_offer,
        buyer_offer,
        accept_band=(scaled(config.accept_band_min, f), scaled(config.accept_band_max, f)),
        accept_margin=config.accept_margin,
        relative_gap=config.auto_accept_gap,
        floor_accept=config.final_round_floor_accept and session.max_rounds - session.round <= 1,
    )


def abort_probability(seller_offer: int, buyer_offer: int, reference_diff: float) -> int:
    """
    Abort chance in percent for a given gap.

    Args:
        seller_offer: Seller's standing offer
        buyer_offer: Buyer's counter-offer
        reference_diff: Gap (already scaled) at which the chance reaches 100

    Returns:
        Integer percentage in [0, 100], non-decreasing in |seller - buyer|
    """
    ratio = abs(seller_offer - buyer_offer) / reference_diff
    return round_currency(min(max(ratio, 0.0), 1.0) * 100)


def is_instant_abort(session: NegotiationSession, buyer_offer: int) -> bool:
    """True when the offer is below the hard lowball floor."""
    return buyer_offer < scaled(session.config.extreme_lowball, session.scale_factor)


def small_step_increase(session: NegotiationSession, buyer_offer: int) -> int | None:
    """
    Increase over the previous counter-offer if it counts as a small step.

    Only applies during the first small_step_rounds rounds.
    """
    config = session.config
    if session.round > config.small_step_rounds:
        return None
    previous = session.last_counter_offer
    if previous is None:
        return None
    increase = buyer_offer - previous
    if 0 < increase <= scaled(config.small_step_limit, session.scale_factor):
        return increase
    return None


def buyer_warning(session: NegotiationSession, buyer_offer: int) -> str:
    """
    Advisory text for a submitted counter-offer.

    Lowball offers take precedence over the small-step warning.
    """
    f = session.scale_factor
    lowball_limit = scaled(session.config.lowball_limit, f)
    if buyer_offer < lowball_limit:
        return (
            f"Your offer is far below the acceptable range "
            f"({format_currency(lowball_limit)})."
        )
    if small_step_increase(session, buyer_offer) is not None:
        step_limit = scaled(session.config.small_step_limit, f)
        return (
            f"Your increase is very small (<= {format_currency(step_limit)}). "
            f"Please make a larger step."
        )
    return ""


def maybe_abort(
    session: NegotiationSession,
    buyer_offer: int,
    rng: random.Random
) -> AbortDecision:
    """
    Evaluate the abort rules for a counter-offer that was not auto-accepted.

    WHAT: Instant lowball abort, small-step penalty, then the random roll
    WHY: Stubborn or insulting bargaining risks losing the deal
    HOW: Mutates session on abort (terminal record, finish) and always
         stores the last computed chance

    Args:
        session: Session being negotiated (mutated)
        buyer_offer: Validated, rounded counter-offer
        rng: Random source for the roll

    Returns:
        AbortDecision describing what happened
    """
    config = session.config
    seller_offer = session.current_offer

    if is_instant_abort(session, buyer_offer):
        decision = AbortDecision(aborted=True, chance=100, instant=True)
    else:
        chance = abort_probability(
            seller_offer,
            buyer_offer,
            scaled(config.abort_reference_diff, session.scale_factor),
        )
        penalized = False
        if small_step_increase(session, buyer_offer) is not None:
            chance = min(chance + config.small_step_penalty, 100)
            penalized = True
        roll = rand_int(rng, 1, 100)
        decision = AbortDecision(aborted=roll <= chance, chance=chance, roll=roll, penalized=penalized)

    session.last_abort_chance = decision.chance

    if decision.aborted:
        session.append_record(counter_offer=buyer_offer, accepted=False, finished=True)
        session.finish(NegotiationPhase.ABORTED, FinishReason.ABORT, accepted=False)
        logger.info(
            f"Session {session.participant_id} aborted in round {session.round}: "
            f"buyer={buyer_offer}, seller={seller_offer}, chance={decision.chance}%, "
            f"roll={decision.roll}, instant={decision.instant}"
        )
    else:
        logger.debug(
            f"Session {session.participant_id} survived abort roll: "
            f"chance={decision.chance}%, roll={decision.roll}, penalized={decision.penalized}"
        )
    return decision
