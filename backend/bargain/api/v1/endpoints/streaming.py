"""
SSE streaming endpoint.

WHAT: Server-Sent Events stream of one session's transitions
WHY: Presentation layers subscribe to state changes instead of polling
HOW: EventSourceResponse over a dispatcher queue, with heartbeats
"""

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse
from typing import AsyncIterator
import asyncio
import json
from datetime import datetime

from ....core.config import settings
from ....core.session_manager import SessionManager, get_session_manager
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _sse(event_type: str, payload: dict) -> dict:
    payload = {"type": event_type, "timestamp": datetime.now().isoformat(), **payload}
    return {"event": event_type, "data": json.dumps(payload)}


async def session_event_generator(
    manager: SessionManager,
    participant_id: str,
    heartbeat_interval: float | None = None
) -> AsyncIterator[dict]:
    """
    Generate SSE events for a session.

    Args:
        manager: Session manager owning the dispatcher
        participant_id: Session to follow
        heartbeat_interval: Seconds between heartbeats (settings default)

    Yields:
        SSE event dicts; the stream ends once the session is finished
    """
    interval = heartbeat_interval or settings.SSE_HEARTBEAT_INTERVAL
    view = manager.get_view(participant_id)
    queue = manager.dispatcher.subscribe(participant_id)
    logger.info(f"Starting SSE stream for session {participant_id}")

    try:
        yield _sse("connected", {"participant_id": participant_id, "view": view.model_dump(mode="json")})
        if view.finished:
            yield _sse("stream_complete", {"participant_id": participant_id})
            return

        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=interval)
            except asyncio.TimeoutError:
                yield _sse("heartbeat", {"participant_id": participant_id})
                continue

            yield {"event": event["type"], "data": json.dumps(event["data"])}
            if event["type"] == "state_updated" and event["data"].get("finished"):
                yield _sse("stream_complete", {"participant_id": participant_id})
                break
    finally:
        manager.dispatcher.unsubscribe(participant_id, queue)
        logger.info(f"SSE stream closed for session {participant_id}")


@router.get("/sessions/{participant_id}/events")
async def stream_session_events(participant_id: str, manager: SessionManager = Depends(get_session_manager)):
    """
    Stream session events.

    Raises:
        SessionNotFoundException: Unknown participant id (404)
    """
    manager.get_session(participant_id)
    return EventSourceResponse(session_event_generator(manager, participant_id))
