"""
Session manager.

WHAT: Registry of live negotiation sessions and entry point for buyer actions
WHY: Own the shared scheduler and random source, serialize actions per session
HOW: In-memory dict keyed by participant id, one asyncio.Lock per session,
     thinking delay before offers are processed, lazy eviction of stale sessions
"""

import asyncio
import random
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from .config import settings
from ..models.negotiation import NegotiationConfig, NegotiationSession, SessionIdentity, SessionView
from ..services.config_resolver import resolve_config
from ..services.dimension_scheduler import DimensionScheduler
from ..services.event_dispatcher import EventDispatcher
from ..services.round_log_sink import build_round_log_sinks
from ..services.round_orchestrator import RoundOrchestrator, TransitionResult
from ..services.session_view import build_view
from ..utils.exceptions import SessionNotFoundException
from ..utils.logger import get_logger, get_session_logger

logger = get_logger(__name__)


class SessionManager:
    """
    Manage session lifecycle.

    WHAT: Create, look up, drive and restart sessions
    WHY: Sessions are single-occupancy; every action runs to completion before the next
    HOW: Delegates transitions to RoundOrchestrator and publishes their events
    """

    def __init__(
        self,
        *,
        rng: Optional[random.Random] = None,
        scheduler: Optional[DimensionScheduler] = None,
        dispatcher: Optional[EventDispatcher] = None,
        base_config: Optional[NegotiationConfig] = None,
    ):
        self.rng = rng or random.Random()
        self.scheduler = scheduler or DimensionScheduler(settings.get_dimension_factors(), rng=self.rng)
        self.orchestrator = RoundOrchestrator(rng=self.rng)
        self.dispatcher = dispatcher or EventDispatcher(build_round_log_sinks())
        self.base_config = base_config
        self.sessions: Dict[str, NegotiationSession] = {}
        self._overrides: Dict[str, dict] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def create_session(
        self,
        identity: Optional[SessionIdentity] = None,
        overrides: Optional[dict] = None
    ) -> NegotiationSession:
        """
        Create a session in the vignette phase.

        Args:
            identity: External player identifiers
            overrides: Raw per-session configuration overrides

        Returns:
            The new session
        """
        self.cleanup_stale_sessions()
        overrides = dict(overrides or {})
        config = resolve_config(overrides, base=self.base_config)
        session = self.orchestrator.new_session(config, self.scheduler.next_dimension(), identity)
        self.sessions[session.participant_id] = session
        self._overrides[session.participant_id] = overrides
        self._locks[session.participant_id] = asyncio.Lock()
        return session

    def get_session(self, participant_id: str) -> NegotiationSession:
        session = self.sessions.get(participant_id)
        if session is None:
            raise SessionNotFoundException(participant_id)
        return session

    def get_view(self, participant_id: str) -> SessionView:
        return build_view(self.get_session(participant_id))

    async def start(self, participant_id: str, consent: bool) -> TransitionResult:
        return await self._apply(participant_id, lambda s: self.orchestrator.start(s, consent))

    async def submit_offer(self, participant_id: str, raw_offer: Any) -> TransitionResult:
        return await self._apply(
            participant_id,
            lambda s: self.orchestrator.submit(s, raw_offer),
            think=True,
        )

    async def accept(self, participant_id: str) -> TransitionResult:
        return await self._apply(participant_id, self.orchestrator.accept)

    async def decline(self, participant_id: str) -> TransitionResult:
        return await self._apply(participant_id, self.orchestrator.decline)

    async def restart(self, participant_id: str) -> TransitionResult:
        """
        Replace a finished session with a brand new one.

        The new session keeps identity and overrides but gets a new participant id
        and the next scale factor.
        """
        lock = self._lock_for(participant_id)
        async with lock:
            session = self.get_session(participant_id)
            if not session.phase.is_terminal:
                return self.orchestrator.reject(
                    session, "INVALID_ACTION", "Only a finished negotiation can be restarted."
                )
            overrides = self._overrides.get(participant_id, {})
            replacement = self.create_session(session.identity, overrides)
            self._forget(participant_id)
            get_session_logger(__name__, participant_id).info(f"Restarted as {replacement.participant_id}")
            return TransitionResult(session=replacement, view=build_view(replacement))

    async def _apply(
        self,
        participant_id: str,
        action: Callable[[NegotiationSession], TransitionResult],
        *,
        think: bool = False
    ) -> TransitionResult:
        lock = self._lock_for(participant_id)
        async with lock:
            session = self.get_session(participant_id)
            if think:
                await self._think(session)
            result = action(session)
            if not result.rejected:
                self.sessions[participant_id] = result.session
                self.dispatcher.publish(result.events)
            return result

    async def _think(self, session: NegotiationSession):
        """Artificial seller thinking delay."""
        config = session.config
        if config.think_delay_max_ms <= 0:
            return
        delay_ms = self.rng.uniform(config.think_delay_min_ms, config.think_delay_max_ms)
        get_session_logger(__name__, session.participant_id).debug(f"Seller thinking for {delay_ms:.0f}ms")
        await asyncio.sleep(delay_ms / 1000)

    def _lock_for(self, participant_id: str) -> asyncio.Lock:
        if participant_id not in self.sessions:
            raise SessionNotFoundException(participant_id)
        return self._locks.setdefault(participant_id, asyncio.Lock())

    def _forget(self, participant_id: str):
        self.sessions.pop(participant_id, None)
        self._overrides.pop(participant_id, None)
        self._locks.pop(participant_id, None)

    def cleanup_stale_sessions(self):
        """
        Remove sessions that outlived their TTL.

        WHAT: Evict terminal sessions after SESSION_TTL_MINUTES and abandoned
              unfinished ones after SESSION_IDLE_TTL_MINUTES
        WHY: Sessions are transient; keep memory bounded
        HOW: Compare updated_at against the cutoff for the session's phase;
             sessions with an action in progress are skipped
        """
        now = datetime.utcnow()
        finished_cutoff = now - timedelta(minutes=settings.SESSION_TTL_MINUTES)
        idle_cutoff = now - timedelta(minutes=settings.SESSION_IDLE_TTL_MINUTES)
        stale = []
        for pid, session in self.sessions.items():
            lock = self._locks.get(pid)
            if lock is not None and lock.locked():
                continue
            cutoff = finished_cutoff if session.phase.is_terminal else idle_cutoff
            if session.updated_at < cutoff:
                stale.append(pid)
        for pid in stale:
            self._forget(pid)
        if stale:
            logger.info(f"Removed {len(stale)} stale sessions")


# Singleton instance
session_manager = SessionManager()


def get_session_manager() -> SessionManager:
    """FastAPI dependency returning the process-wide manager."""
    return session_manager
