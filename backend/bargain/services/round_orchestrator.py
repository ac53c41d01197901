"""
Round orchestrator.

WHAT: State machine for one buyer-vs-seller negotiation session
WHY: Validate buyer input and drive the decision, offer and pattern engines in order
HOW: Each action works on a deep copy of the session and returns
     the new session, its view and the events to dispatch
"""

import math
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..models.negotiation import (
    FinishReason,
    NegotiationConfig,
    NegotiationPhase,
    NegotiationSession,
    RoundLogRow,
    SessionEvent,
    SessionIdentity,
    SessionView,
)
from ..utils.randomness import rand_int, round_currency, scaled
from ..utils.logger import get_logger
from .decision_engine import buyer_warning, maybe_abort, session_accepts
from .offer_engine import compute_next_offer
from .pattern_detector import update_pattern_message
from .session_view import build_view

logger = get_logger(__name__)


@dataclass
class Rejection:
    """Why an action was refused; the session is left untouched."""
    code: str  # INVALID_ACTION, INVALID_OFFER, OFFER_DECREASED, CONSENT_REQUIRED
    message: str


@dataclass
class TransitionResult:
    """Outcome of one orchestrator action."""
    session: NegotiationSession
    view: SessionView
    events: list[SessionEvent] = field(default_factory=list)
    rejection: Rejection | None = None

    @property
    def rejected(self) -> bool:
        return self.rejection is not None


def parse_counter_offer(raw: Any) -> int | None:
    """
    Parse buyer input into whole currency units.

    Returns:
        Rounded offer, or None if the input is not a finite non-negative number
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        number = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return round_currency(number)


class RoundOrchestrator:
    """
    Drives a session through vignette, negotiation, decision and outcome.

    Phases: vignette -> negotiating -> (deciding) -> aborted | accepted | declined
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()

    def new_session(
        self,
        config: NegotiationConfig,
        scale_factor: float,
        identity: SessionIdentity | None = None
    ) -> NegotiationSession:
        """
        Create a fresh session in the vignette phase.

        Args:
            config: Resolved negotiation configuration
            scale_factor: Factor from the dimension scheduler
            identity: External player identifiers

        Returns:
            New NegotiationSession
        """
        initial_offer = scaled(config.initial_offer, scale_factor)
        session = NegotiationSession(
            identity=identity or SessionIdentity(),
            config=config,
            max_rounds=rand_int(self.rng, config.min_rounds, config.max_rounds),
            scale_factor=scale_factor,
            min_price=min(scaled(config.base_floor, scale_factor), initial_offer),
            initial_offer=initial_offer,
            current_offer=initial_offer,
        )
        logger.info(
            f"Created session {session.participant_id}: scale={scale_factor}, "
            f"offer={session.initial_offer}, floor={session.min_price}, max_rounds={session.max_rounds}"
        )
        return session

    def view(self, session: NegotiationSession) -> SessionView:
        return build_view(session)

    # ===== Actions =====

    def start(self, session: NegotiationSession, consent: bool = True) -> TransitionResult:
        """Leave the vignette once the participant has consented."""
        if session.phase != NegotiationPhase.VIGNETTE:
            return self.reject(session, "INVALID_ACTION", f"Cannot start a session in phase '{session.phase.value}'.")
        if not consent:
            return self.reject(session, "CONSENT_REQUIRED", "Please agree to the anonymous storage of your data first.")

        working = self._working_copy(session)
        working.phase = NegotiationPhase.NEGOTIATING
        return self._complete(session, working)

    def submit(self, session: NegotiationSession, raw_offer: Any) -> TransitionResult:
        """
        Process a buyer counter-offer.

        WHAT: Validate, then auto-accept, abort, or concede and advance the round
        WHY: Single entry point for the negotiating phase
        HOW: Decision engine first, offer engine and pattern detector only when continuing

        Args:
            session: Current session (not mutated)
            raw_offer: Buyer input as typed (string or number)

        Returns:
            TransitionResult; rejected results carry the unchanged session
        """
        if session.phase != NegotiationPhase.NEGOTIATING:
            return self.reject(session, "INVALID_ACTION", f"Cannot submit an offer in phase '{session.phase.value}'.")

        offer = parse_counter_offer(raw_offer)
        if offer is None:
            return self.reject(session, "INVALID_OFFER", "Please enter a valid number.")

        previous = session.last_counter_offer
        if previous is not None and offer < previous:
            return self.reject(
                session,
                "OFFER_DECREASED",
                f"You cannot offer less than your previous offer ({previous}).",
            )

        working = self._working_copy(session)
        working.warning_text = buyer_warning(working, offer)

        if session_accepts(working, offer):
            working.append_record(counter_offer=offer, accepted=True, finished=True, deal_price=offer)
            working.finish(NegotiationPhase.ACCEPTED, FinishReason.AUTO_ACCEPT, accepted=True, deal_price=offer)
            logger.info(f"Session {working.participant_id} auto-accepted {offer} in round {working.round}")
            return self._complete(session, working)

        decision = maybe_abort(working, offer, self.rng)
        if decision.aborted:
            return self._complete(session, working)

        working.append_record(counter_offer=offer)
        next_offer = compute_next_offer(
            working.current_offer,
            working.min_price,
            working.round,
            rng=self.rng,
            scale=working.scale_factor,
            schedule=working.config.concession_schedule,
            steps=working.config.concession_steps,
        )
        working.last_concession = working.current_offer - next_offer
        working.current_offer = next_offer
        update_pattern_message(working)

        if working.round >= working.max_rounds:
            working.phase = NegotiationPhase.DECIDING
        else:
            working.round += 1

        logger.info(
            f"Session {working.participant_id} round {session.round}: buyer={offer}, "
            f"seller {session.current_offer} -> {next_offer}, phase={working.phase.value}"
        )
        return self._complete(session, working)

    def accept(self, session: NegotiationSession) -> TransitionResult:
        """Buyer accepts the seller's standing offer."""
        if session.phase not in (NegotiationPhase.NEGOTIATING, NegotiationPhase.DECIDING):
            return self.reject(session, "INVALID_ACTION", f"Cannot accept in phase '{session.phase.value}'.")

        working = self._working_copy(session)
        price = working.current_offer
        working.append_record(counter_offer=None, accepted=True, finished=True, deal_price=price)
        working.finish(NegotiationPhase.ACCEPTED, FinishReason.ACCEPTED, accepted=True, deal_price=price)
        logger.info(f"Session {working.participant_id} accepted seller offer {price}")
        return self._complete(session, working)

    def decline(self, session: NegotiationSession) -> TransitionResult:
        """Buyer declines the final offer."""
        if session.phase != NegotiationPhase.DECIDING:
            return self.reject(session, "INVALID_ACTION", f"Cannot decline in phase '{session.phase.value}'.")

        working = self._working_copy(session)
        working.append_record(counter_offer=None, accepted=False, finished=True)
        working.finish(NegotiationPhase.DECLINED, FinishReason.MAX_ROUNDS, accepted=False)
        logger.info(f"Session {working.participant_id} declined final offer {working.current_offer}")
        return self._complete(session, working)

    # ===== Helpers =====

    @staticmethod
    def _working_copy(session: NegotiationSession) -> NegotiationSession:
        working = session.model_copy(deep=True)
        working.updated_at = datetime.utcnow()
        return working

    def reject(self, session: NegotiationSession, code: str, message: str) -> TransitionResult:
        logger.warning(f"Rejected action for {session.participant_id} ({code}): {message}")
        return TransitionResult(
            session=session,
            view=build_view(session, error=message),
            rejection=Rejection(code=code, message=message),
        )

    def _complete(self, before: NegotiationSession, after: NegotiationSession) -> TransitionResult:
        events: list[SessionEvent] = []
        for record in after.history[len(before.history):]:
            row = RoundLogRow.from_record(after, record)
            events.append(SessionEvent(type="round_logged", data=row.model_dump(mode="json")))
        if after.phase != before.phase:
            events.append(SessionEvent(
                type="phase_changed",
                data={
                    "participant_id": after.participant_id,
                    "from": before.phase.value,
                    "to": after.phase.value,
                    "round": after.round,
                },
            ))
        view = build_view(after)
        events.append(SessionEvent(type="state_updated", data=view.model_dump(mode="json")))
        return TransitionResult(session=after, view=view, events=events)
