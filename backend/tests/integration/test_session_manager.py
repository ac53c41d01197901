"""
Integration tests for the session manager and SSE generator.

WHAT: Test session registry, locking, restart, eviction and event streaming
WHY: The manager is the only owner of live sessions
HOW: Isolated SessionManager with a scripted random source
"""

import asyncio
import json
from datetime import datetime, timedelta

import pytest

from bargain.api.v1.endpoints.streaming import session_event_generator
from bargain.models.negotiation import NegotiationPhase, SessionIdentity
from bargain.utils.exceptions import SessionNotFoundException


@pytest.mark.integration
class TestSessionManager:
    """Session lifecycle through the manager."""

    def test_create_and_lookup(self, manager):
        session = manager.create_session(SessionIdentity(player_id="p1"), {"max_rounds": 9})

        assert manager.get_session(session.participant_id) is session
        assert session.config.max_rounds == 9
        assert manager.get_view(session.participant_id).phase == NegotiationPhase.VIGNETTE

    def test_unknown_session_raises(self, manager):
        with pytest.raises(SessionNotFoundException):
            manager.get_session("missing")

    @pytest.mark.asyncio
    async def test_actions_replace_stored_session(self, manager):
        pid = manager.create_session().participant_id

        await manager.start(pid, True)
        result = await manager.submit_offer(pid, "3000")

        assert manager.get_session(pid) is result.session
        assert manager.get_session(pid).round == 2

    @pytest.mark.asyncio
    async def test_rejected_action_keeps_session(self, manager):
        pid = manager.create_session().participant_id
        await manager.start(pid, True)
        before = manager.get_session(pid)

        result = await manager.submit_offer(pid, "-1")

        assert result.rejected
        assert manager.get_session(pid) is before

    @pytest.mark.asyncio
    async def test_concurrent_offers_are_serialized(self, manager):
        pid = manager.create_session().participant_id
        await manager.start(pid, True)

        results = await asyncio.gather(
            manager.submit_offer(pid, 3000),
            manager.submit_offer(pid, 3200),
        )

        assert not any(result.rejected for result in results)
        assert [record.counter_offer for record in manager.get_session(pid).history] == [3000, 3200]

    @pytest.mark.asyncio
    async def test_restart_requires_finished_session(self, manager):
        pid = manager.create_session().participant_id
        result = await manager.restart(pid)
        assert result.rejection.code == "INVALID_ACTION"

    @pytest.mark.asyncio
    async def test_restart_creates_fresh_session(self, manager):
        session = manager.create_session(SessionIdentity(proband_code="X1"), {"max_rounds": 9})
        pid = session.participant_id
        await manager.start(pid, True)
        await manager.submit_offer(pid, 500)

        result = await manager.restart(pid)

        assert result.session.participant_id != pid
        assert result.session.phase == NegotiationPhase.VIGNETTE
        assert result.session.identity.proband_code == "X1"
        assert result.session.config.max_rounds == 9
        with pytest.raises(SessionNotFoundException):
            manager.get_session(pid)

    def test_stale_finished_sessions_are_evicted(self, manager):
        old = manager.create_session()
        old.phase = NegotiationPhase.ABORTED
        old.finished = True
        old.updated_at = datetime.utcnow() - timedelta(days=1)
        live = manager.create_session()

        assert old.participant_id not in manager.sessions
        assert live.participant_id in manager.sessions

    def test_idle_unfinished_sessions_are_evicted(self, manager):
        idle = manager.create_session()
        idle.phase = NegotiationPhase.NEGOTIATING
        idle.updated_at = datetime.utcnow() - timedelta(days=30)
        recent = manager.create_session()
        recent.phase = NegotiationPhase.NEGOTIATING
        recent.updated_at = datetime.utcnow() - timedelta(hours=3)

        manager.cleanup_stale_sessions()

        assert idle.participant_id not in manager.sessions
        assert idle.participant_id not in manager._locks
        assert recent.participant_id in manager.sessions

    @pytest.mark.asyncio
    async def test_think_delay_uses_config(self, manager, monkeypatch):
        session = manager.create_session(overrides={"think_delay_min_ms": 200, "think_delay_max_ms": 400})
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr("bargain.core.session_manager.asyncio.sleep", fake_sleep)
        await manager.start(session.participant_id, True)
        await manager.submit_offer(session.participant_id, 3000)

        assert delays == [0.2]


@pytest.mark.integration
class TestSessionEventStream:
    """SSE generator behavior."""

    @pytest.mark.asyncio
    async def test_finished_session_closes_immediately(self, manager):
        pid = manager.create_session().participant_id
        await manager.start(pid, True)
        await manager.submit_offer(pid, 100)

        events = [event async for event in session_event_generator(manager, pid, heartbeat_interval=0.01)]

        assert [event["event"] for event in events] == ["connected", "stream_complete"]
        assert manager.dispatcher.subscriber_count(pid) == 0

    @pytest.mark.asyncio
    async def test_stream_forwards_events_until_finished(self, manager):
        pid = manager.create_session().participant_id
        await manager.start(pid, True)
        stream = session_event_generator(manager, pid, heartbeat_interval=0.01)

        connected = await stream.__anext__()
        assert connected["event"] == "connected"
        assert json.loads(connected["data"])["view"]["phase"] == "negotiating"

        heartbeat = await stream.__anext__()
        assert heartbeat["event"] == "heartbeat"

        await manager.submit_offer(pid, 1000)
        received = [event["event"] async for event in stream]

        assert received[-1] == "stream_complete"
        assert "round_logged" in received
        assert "phase_changed" in received
        assert manager.dispatcher.subscriber_count(pid) == 0
