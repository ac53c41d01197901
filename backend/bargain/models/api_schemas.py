"""
Pydantic API schemas for the session endpoints.

WHAT: Request models for FastAPI (responses use SessionView)
WHY: Type-safe validation of what the browser client sends
HOW: Pydantic v2 models; configuration values stay loose and are normalized later
"""

from typing import Optional, Union
from pydantic import BaseModel, Field


# ========== Session Configuration ==========

class ConfigOverrides(BaseModel):
    """
    Per-session configuration supplied by the client.

    Values are not range-checked here; the config resolver replaces unusable
    values with defaults instead of rejecting the request.
    """
    initial_offer: Optional[float] = Field(default=None, description="Seller's opening price (before scaling)")
    min_price_factor: Optional[float] = Field(default=None, description="Floor as a fraction of the opening price")
    accept_margin: Optional[float] = Field(default=None, description="Offers within this fraction of the opening price are accepted")
    min_rounds: Optional[int] = Field(default=None, description="Lower bound for the number of rounds")
    max_rounds: Optional[int] = Field(default=None, description="Upper bound for the number of rounds")
    think_delay_min_ms: Optional[int] = Field(default=None, description="Minimum seller thinking delay")
    think_delay_max_ms: Optional[int] = Field(default=None, description="Maximum seller thinking delay")
    accept_band_min: Optional[float] = Field(default=None, description="Lower edge of the acceptance band")
    accept_band_max: Optional[float] = Field(default=None, description="Upper edge of the acceptance band")
    concession_schedule: Optional[str] = Field(default=None, description="margin_percent or fixed_markdown")


# ========== Request Schemas ==========

class CreateSessionRequest(BaseModel):
    """Request to create a new negotiation session."""
    player_id: Optional[str] = Field(default=None, max_length=100, description="External player identifier")
    proband_code: Optional[str] = Field(default=None, max_length=100, description="External participant code")
    config: ConfigOverrides = Field(default_factory=ConfigOverrides)


class StartSessionRequest(BaseModel):
    """Request to leave the vignette."""
    consent: bool = Field(default=False, description="Participant agreed to anonymous storage")


class SubmitOfferRequest(BaseModel):
    """Buyer counter-offer, as typed by the participant."""
    offer: Union[float, str, None] = Field(..., description="Counter-offer amount")
