"""
Negotiation domain models.

WHAT: Session state, round records, resolved configuration and view-model
WHY: Consistent typing across engines, orchestrator, sinks and API schemas
HOW: Pydantic v2 models; round records and configuration are frozen
"""

import enum
from datetime import datetime
from typing import Any, Literal, TypedDict
from uuid import uuid4

from pydantic import BaseModel, Field


class NegotiationPhase(str, enum.Enum):
    """States of the round state machine."""
    VIGNETTE = "vignette"
    NEGOTIATING = "negotiating"
    DECIDING = "deciding"
    ABORTED = "aborted"
    ACCEPTED = "accepted"
    DECLINED = "declined"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_PHASES


TERMINAL_PHASES = frozenset({
    NegotiationPhase.ABORTED,
    NegotiationPhase.ACCEPTED,
    NegotiationPhase.DECLINED,
})


class FinishReason(str, enum.Enum):
    """Why a session reached a terminal phase."""
    AUTO_ACCEPT = "auto_accept"
    ACCEPTED = "accepted"
    ABORT = "abort"
    MAX_ROUNDS = "max_rounds"


class NegotiationConfig(BaseModel):
    """
    Resolved configuration for one session.

    Monetary amounts are base values; they are multiplied by the session's
    scale factor wherever they are used.
    """

    initial_offer: float = Field(default=5500, gt=0)
    min_price: float = Field(default=3500, gt=0)
    min_price_factor: float | None = Field(default=None, gt=0, lt=1)
    accept_margin: float = Field(default=0.12, ge=0.0, le=1.0)
    accept_band_min: float = Field(default=5000, ge=0)
    accept_band_max: float = Field(default=5500, ge=0)
    auto_accept_gap: float = Field(default=0.05, ge=0.0)
    final_round_floor_accept: bool = False

    min_rounds: int = Field(default=8, ge=1)
    max_rounds: int = Field(default=12, ge=1)
    think_delay_min_ms: int = Field(default=1000, ge=0)
    think_delay_max_ms: int = Field(default=2500, ge=0)

    concession_schedule: Literal["margin_percent", "fixed_markdown"] = "margin_percent"
    concession_steps: tuple[float, ...] = (0.02, 0.025, 0.03, 0.035, 0.04)

    extreme_lowball: float = 1500
    lowball_limit: float = 2250
    small_step_limit: float = 100
    small_step_penalty: int = 15
    small_step_rounds: int = 4
    abort_reference_diff: float = Field(default=7500, gt=0)

    pattern_band_limits: tuple[float, ...] = (3000, 4000, 5000)
    pattern_thresholds: tuple[float, ...] = (0.05, 0.04, 0.03)
    pattern_min_chain: int = 3

    model_config = {"frozen": True}

    @property
    def base_floor(self) -> float:
        """Floor price before scaling."""
        if self.min_price_factor is not None:
            return self.initial_offer * self.min_price_factor
        return self.min_price


class SessionIdentity(BaseModel):
    """External identifiers forwarded with every round-log row."""

    player_id: str | None = None
    proband_code: str | None = None

    model_config = {"frozen": True}


class RoundRecord(BaseModel):
    """One completed round; immutable once appended."""

    round: int = Field(ge=1)
    seller_offer: int
    counter_offer: int | None = None
    accepted: bool = False
    finished: bool = False
    deal_price: int | None = None

    model_config = {"frozen": True}


class NegotiationSession(BaseModel):
    """Complete state of one negotiation."""

    participant_id: str = Field(default_factory=lambda: str(uuid4()))
    identity: SessionIdentity = Field(default_factory=SessionIdentity)
    config: NegotiationConfig = Field(default_factory=NegotiationConfig)
    phase: NegotiationPhase = NegotiationPhase.VIGNETTE

    round: int = Field(default=1, ge=1)
    max_rounds: int = Field(ge=1)
    scale_factor: float = Field(gt=0)
    min_price: int
    initial_offer: int
    current_offer: int

    history: list[RoundRecord] = Field(default_factory=list)
    last_concession: int | None = None
    last_abort_chance: int | None = None

    warning_text: str = ""
    pattern_message: str = ""

    finished: bool = False
    accepted: bool = False
    finish_reason: FinishReason | None = None
    deal_price: int | None = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def last_counter_offer(self) -> int | None:
        """Buyer's most recent counter-offer, if any round recorded one."""
        for record in reversed(self.history):
            if record.counter_offer is not None:
                return record.counter_offer
        return None

    def append_record(
        self,
        *,
        counter_offer: int | None,
        accepted: bool = False,
        finished: bool = False,
        deal_price: int | None = None
    ) -> RoundRecord:
        """Append a round record for the current round and seller offer."""
        record = RoundRecord(
            round=self.round,
            seller_offer=self.current_offer,
            counter_offer=counter_offer,
            accepted=accepted,
            finished=finished,
            deal_price=deal_price,
        )
        self.history.append(record)
        return record

    def finish(
        self,
        phase: NegotiationPhase,
        reason: FinishReason,
        *,
        accepted: bool,
        deal_price: int | None = None
    ):
        """Apply the single terminal transition."""
        if self.finished:
            raise RuntimeError(f"Session {self.participant_id} already finished")
        self.phase = phase
        self.finished = True
        self.accepted = accepted
        self.finish_reason = reason
        self.deal_price = deal_price


class SessionEvent(TypedDict):
    """Event emitted by a transition, forwarded to sinks and SSE subscribers."""
    type: Literal["round_logged", "phase_changed", "state_updated"]
    data: dict


class RoundLogRow(BaseModel):
    """Row handed to round-log sinks."""

    participant_id: str
    player_id: str | None = None
    proband_code: str | None = None
    scale_factor: float
    round: int
    seller_offer: int
    counter_offer: int | None = None
    accepted: bool
    finished: bool
    deal_price: int | None = None
    logged_at: datetime = Field(default_factory=datetime.utcnow)

    @classmethod
    def from_record(cls, session: NegotiationSession, record: RoundRecord) -> "RoundLogRow":
        return cls(
            participant_id=session.participant_id,
            player_id=session.identity.player_id,
            proband_code=session.identity.proband_code,
            scale_factor=session.scale_factor,
            **record.model_dump(),
        )

    def to_sink_payload(self) -> dict[str, Any]:
        """JSON payload with missing values sent as empty strings."""
        payload = self.model_dump(mode="json")
        for key in ("player_id", "proband_code", "counter_offer", "deal_price"):
            if payload[key] is None:
                payload[key] = ""
        return payload


class SessionView(BaseModel):
    """Everything a presentation layer needs to render the session."""

    participant_id: str
    phase: NegotiationPhase
    round: int
    max_rounds: int
    scale_factor: float
    initial_offer: int
    current_offer: int
    current_offer_display: str
    abort_chance: int | None = None
    risk_level: Literal["low", "medium", "high"] | None = None
    warning_text: str = ""
    pattern_message: str = ""
    error: str | None = None
    last_concession: int | None = None
    history: list[RoundRecord] = Field(default_factory=list)
    finished: bool = False
    accepted: bool = False
    finish_reason: FinishReason | None = None
    deal_price: int | None = None
    outcome_text: str | None = None
    available_actions: list[str] = Field(default_factory=list)
