"""
Round log sinks.

WHAT: Destinations for round records (remote webhook, SQL table)
WHY: Round data is collected outside the engine for later analysis
HOW: Sinks share a small async protocol; the dispatcher treats them as fire-and-forget
"""

from typing import Protocol

import httpx

from ..core.config import settings
from ..core.database import get_db
from ..core.models import RoundLog
from ..models.negotiation import RoundLogRow
from ..utils.logger import get_logger

logger = get_logger(__name__)


class RoundLogSink(Protocol):
    """Protocol every round log sink implements."""

    name: str

    async def write(self, row: RoundLogRow) -> None:
        """Persist or forward one row. May raise; callers log and move on."""
        ...


class WebhookRoundLogSink:
    """POSTs each row as JSON to an append-only remote log."""

    name = "webhook"

    def __init__(self, url: str, timeout: float = 5.0, client: httpx.AsyncClient | None = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def write(self, row: RoundLogRow) -> None:
        payload = row.to_sink_payload()
        if self._client is not None:
            response = await self._client.post(self.url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                response = await client.post(self.url, json=payload)
        response.raise_for_status()
        logger.debug(f"Round row for {row.participant_id} round {row.round} sent to {self.url}")


class DatabaseRoundLogSink:
    """Inserts each row into the round_logs table."""

    name = "database"

    async def write(self, row: RoundLogRow) -> None:
        with get_db() as db:
            db.add(RoundLog(
                participant_id=row.participant_id,
                player_id=row.player_id,
                proband_code=row.proband_code,
                scale_factor=row.scale_factor,
                round=row.round,
                seller_offer=row.seller_offer,
                counter_offer=row.counter_offer,
                accepted=row.accepted,
                finished=row.finished,
                deal_price=row.deal_price,
                logged_at=row.logged_at,
            ))


def build_round_log_sinks() -> list[RoundLogSink]:
    """
    Build the sinks enabled in settings.

    Returns:
        List of sinks (possibly empty)
    """
    sinks: list[RoundLogSink] = []
    if settings.ROUND_LOG_TO_DATABASE:
        sinks.append(DatabaseRoundLogSink())
    if settings.ROUND_LOG_WEBHOOK_URL:
        sinks.append(WebhookRoundLogSink(settings.ROUND_LOG_WEBHOOK_URL, timeout=settings.ROUND_LOG_TIMEOUT))
    logger.info(f"Round log sinks enabled: {[sink.name for sink in sinks] or 'none'}")
    return sinks
