"""
Session event dispatcher.

WHAT: Forwards transition events to live subscribers and round log sinks
WHY: Keep the orchestrator free of I/O; logging must never block a session
HOW: In-memory asyncio queues per session, sink writes with errors logged and dropped
"""

import asyncio
from collections import defaultdict
from typing import Dict, Iterable, List

from ..models.negotiation import RoundLogRow, SessionEvent
from ..utils.logger import get_logger
from .round_log_sink import RoundLogSink

logger = get_logger(__name__)


class EventDispatcher:
    """Fan-out of session events."""

    def __init__(self, sinks: Iterable[RoundLogSink] = ()):
        self.sinks: List[RoundLogSink] = list(sinks)
        self._subscribers: Dict[str, List[asyncio.Queue]] = defaultdict(list)

    def subscribe(self, participant_id: str) -> asyncio.Queue:
        """Register a queue receiving every event of one session."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers[participant_id].append(queue)
        logger.debug(f"Subscriber added for {participant_id} ({len(self._subscribers[participant_id])} total)")
        return queue

    def unsubscribe(self, participant_id: str, queue: asyncio.Queue):
        queues = self._subscribers.get(participant_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._subscribers.pop(participant_id, None)

    def subscriber_count(self, participant_id: str) -> int:
        return len(self._subscribers.get(participant_id, []))

    def publish(self, events: Iterable[SessionEvent]):
        """Push events to live subscribers without waiting."""
        for event in events:
            participant_id = event["data"].get("participant_id")
            for queue in self._subscribers.get(participant_id, []):
                queue.put_nowait(event)

    async def deliver(self, events: Iterable[SessionEvent]):
        """
        Write round_logged events to every sink.

        WHAT: Fire-and-forget delivery of round rows
        WHY: A failing sink must not affect the session or other sinks
        HOW: Each write is awaited; exceptions are logged and dropped
        """
        for event in events:
            if event["type"] != "round_logged":
                continue
            row = RoundLogRow.model_validate(event["data"])
            for sink in self.sinks:
                try:
                    await sink.write(row)
                except Exception as e:
                    logger.error(
                        f"Round log sink '{getattr(sink, 'name', sink)}' failed for "
                        f"{row.participant_id} round {row.round}: {e}"
                    )
