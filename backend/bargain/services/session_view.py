"""
Session view-model builder.

WHAT: Projects a session into the data a presentation layer renders
WHY: The engine never renders; clients only read views
HOW: Pure function over the session plus an optional error message
"""

from ..models.negotiation import NegotiationPhase, NegotiationSession, SessionView
from ..utils.randomness import format_currency, scaled
from .decision_engine import abort_probability

ACTIONS_BY_PHASE = {
    NegotiationPhase.VIGNETTE: ["start"],
    NegotiationPhase.NEGOTIATING: ["submit", "accept"],
    NegotiationPhase.DECIDING: ["accept", "decline"],
    NegotiationPhase.ABORTED: ["restart"],
    NegotiationPhase.ACCEPTED: ["restart"],
    NegotiationPhase.DECLINED: ["restart"],
}


def display_abort_chance(session: NegotiationSession) -> int | None:
    """Abort chance shown to the buyer, or None outside of negotiation."""
    if session.phase == NegotiationPhase.ABORTED:
        return session.last_abort_chance
    if session.phase != NegotiationPhase.NEGOTIATING:
        return None

    config = session.config
    f = session.scale_factor
    buyer = session.last_counter_offer
    if buyer is None:
        buyer = session.current_offer
    if buyer < scaled(config.extreme_lowball, f):
        return 100
    return abort_probability(session.current_offer, buyer, scaled(config.abort_reference_diff, f))


def risk_level(chance: int | None) -> str | None:
    if chance is None:
        return None
    if chance > 50:
        return "high"
    if chance > 25:
        return "medium"
    return "low"


def outcome_text(session: NegotiationSession) -> str | None:
    if not session.finished:
        return None
    if session.accepted:
        return f"Deal reached at {format_currency(session.deal_price)}."
    if session.phase == NegotiationPhase.ABORTED:
        return f"The seller ended the negotiation (abort chance {session.last_abort_chance}%). No deal."
    return "No deal."


def build_view(session: NegotiationSession, error: str | None = None) -> SessionView:
    """
    Build the view-model for a session.

    Args:
        session: Session to render
        error: Rejection message for the last action, if any

    Returns:
        SessionView snapshot
    """
    chance = display_abort_chance(session)
    return SessionView(
        participant_id=session.participant_id,
        phase=session.phase,
        round=session.round,
        max_rounds=session.max_rounds,
        scale_factor=session.scale_factor,
        initial_offer=session.initial_offer,
        current_offer=session.current_offer,
        current_offer_display=format_currency(session.current_offer),
        abort_chance=chance,
        risk_level=risk_level(chance),
        warning_text=session.warning_text,
        pattern_message=session.pattern_message,
        error=error,
        last_concession=session.last_concession,
        history=list(session.history),
        finished=session.finished,
        accepted=session.accepted,
        finish_reason=session.finish_reason,
        deal_price=session.deal_price,
        outcome_text=outcome_text(session),
        available_actions=list(ACTIONS_BY_PHASE[session.phase]),
    )
