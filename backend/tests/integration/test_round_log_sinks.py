"""
Integration tests for round log sinks and the event dispatcher.

WHAT: Test webhook and database sinks plus fire-and-forget delivery
WHY: Round data must reach every sink, and a failing sink must not stop others
HOW: Mock HTTP with respx, real SQLite table for the database sink
"""

import json

import httpx
import pytest
import respx
from sqlalchemy import select

from bargain.core.database import get_db, init_db
from bargain.core.models import RoundLog
from bargain.models.negotiation import RoundLogRow
from bargain.services.event_dispatcher import EventDispatcher
from bargain.services.round_log_sink import DatabaseRoundLogSink, WebhookRoundLogSink

WEBHOOK_URL = "https://logs.example.test/rounds"


def _row(**overrides):
    values = dict(
        participant_id="pid-1",
        player_id="player-7",
        proband_code=None,
        scale_factor=1.3,
        round=2,
        seller_offer=7100,
        counter_offer=None,
        accepted=True,
        finished=True,
        deal_price=7100,
    )
    values.update(overrides)
    return RoundLogRow(**values)


class RecordingSink:
    name = "recording"

    def __init__(self):
        self.rows = []

    async def write(self, row):
        self.rows.append(row)


class FailingSink:
    name = "failing"

    async def write(self, row):
        raise RuntimeError("sink down")


@pytest.mark.integration
class TestWebhookSink:
    """Webhook sink posts JSON payloads."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_posts_payload_with_empty_strings_for_missing(self):
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(200))

        await WebhookRoundLogSink(WEBHOOK_URL).write(_row())

        assert route.called
        body = json.loads(route.calls.last.request.content)
        assert body["participant_id"] == "pid-1"
        assert body["player_id"] == "player-7"
        assert body["proband_code"] == ""
        assert body["counter_offer"] == ""
        assert body["deal_price"] == 7100
        assert body["scale_factor"] == 1.3

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_raises(self):
        respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(503))

        with pytest.raises(httpx.HTTPStatusError):
            await WebhookRoundLogSink(WEBHOOK_URL).write(_row())

    @pytest.mark.asyncio
    @respx.mock
    async def test_uses_injected_client(self):
        route = respx.post(WEBHOOK_URL).mock(return_value=httpx.Response(201))

        async with httpx.AsyncClient() as client:
            await WebhookRoundLogSink(WEBHOOK_URL, client=client).write(_row(round=5))

        assert route.call_count == 1


@pytest.mark.integration
class TestDatabaseSink:
    """Database sink inserts into round_logs."""

    @pytest.mark.asyncio
    async def test_row_is_inserted(self):
        init_db()
        await DatabaseRoundLogSink().write(_row(participant_id="db-sink-1", counter_offer=6900, deal_price=None))

        with get_db() as db:
            stored = db.execute(
                select(RoundLog).where(RoundLog.participant_id == "db-sink-1")
            ).scalars().all()

        assert len(stored) == 1
        assert stored[0].counter_offer == 6900
        assert stored[0].deal_price is None
        assert stored[0].proband_code is None
        assert stored[0].finished is True


@pytest.mark.integration
class TestEventDispatcher:
    """Dispatcher fan-out to subscribers and sinks."""

    def _events(self):
        return [
            {"type": "round_logged", "data": _row().model_dump(mode="json")},
            {"type": "state_updated", "data": {"participant_id": "pid-1", "finished": True}},
        ]

    @pytest.mark.asyncio
    async def test_deliver_writes_round_rows_only(self):
        sink = RecordingSink()
        await EventDispatcher([sink]).deliver(self._events())

        assert len(sink.rows) == 1
        assert sink.rows[0].participant_id == "pid-1"

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_block_others(self):
        sink = RecordingSink()
        dispatcher = EventDispatcher([FailingSink(), sink])

        await dispatcher.deliver(self._events())

        assert len(sink.rows) == 1

    @pytest.mark.asyncio
    async def test_publish_reaches_matching_subscribers(self):
        dispatcher = EventDispatcher()
        queue = dispatcher.subscribe("pid-1")
        other = dispatcher.subscribe("pid-2")

        dispatcher.publish(self._events())

        assert queue.qsize() == 2
        assert other.empty()

        dispatcher.unsubscribe("pid-1", queue)
        assert dispatcher.subscriber_count("pid-1") == 0
        assert dispatcher.subscriber_count("pid-2") == 1
