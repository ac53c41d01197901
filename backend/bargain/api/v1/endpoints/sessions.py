"""
Negotiation session endpoints.

WHAT: Create sessions and drive them through start, offers, accept, decline, restart
WHY: HTTP surface for the browser client
HOW: FastAPI router delegating to SessionManager; round rows are delivered
     to sinks as background tasks after the response
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from typing import Optional

from ....core.session_manager import SessionManager, get_session_manager
from ....models.api_schemas import CreateSessionRequest, StartSessionRequest, SubmitOfferRequest
from ....models.negotiation import SessionIdentity, SessionView
from ....services.round_orchestrator import TransitionResult
from ....utils.exceptions import InvalidActionException, OfferRejectedException
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _finalize(
    result: TransitionResult,
    manager: SessionManager,
    background_tasks: BackgroundTasks
) -> SessionView:
    """Raise on rejection, otherwise queue sink delivery and return the view."""
    if result.rejection is not None:
        view = result.view.model_dump(mode="json")
        if result.rejection.code == "INVALID_ACTION":
            raise InvalidActionException(result.rejection.message, result.session.phase.value, view)
        raise OfferRejectedException(result.rejection.message, result.rejection.code, view)

    if result.events:
        background_tasks.add_task(manager.dispatcher.deliver, result.events)
    return result.view


@router.post("/sessions", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: Optional[CreateSessionRequest] = None,
    manager: SessionManager = Depends(get_session_manager)
):
    """
    Create a negotiation session.

    WHAT: New session in the vignette phase
    WHY: Entry point for a participant
    HOW: Resolve config overrides, draw the next scale factor
    """
    request = request or CreateSessionRequest()
    session = manager.create_session(
        identity=SessionIdentity(player_id=request.player_id, proband_code=request.proband_code),
        overrides=request.config.model_dump(exclude_none=True),
    )
    return manager.get_view(session.participant_id)


@router.get("/sessions/{participant_id}", response_model=SessionView)
async def get_session(participant_id: str, manager: SessionManager = Depends(get_session_manager)):
    """Current view of a session."""
    return manager.get_view(participant_id)


@router.post("/sessions/{participant_id}/start", response_model=SessionView)
async def start_session(
    participant_id: str,
    request: StartSessionRequest,
    background_tasks: BackgroundTasks,
    manager: SessionManager = Depends(get_session_manager)
):
    """Leave the vignette (requires consent)."""
    result = await manager.start(participant_id, request.consent)
    return _finalize(result, manager, background_tasks)


@router.post("/sessions/{participant_id}/offers", response_model=SessionView)
async def submit_offer(
    participant_id: str,
    request: SubmitOfferRequest,
    background_tasks: BackgroundTasks,
    manager: SessionManager = Depends(get_session_manager)
):
    """
    Submit a buyer counter-offer.

    WHAT: One negotiation round
    WHY: Core interaction of the simulation
    HOW: Thinking delay, then the orchestrator's submit transition

    Raises:
        OfferRejectedException: Invalid or decreasing offer (422)
        InvalidActionException: Session not in the negotiating phase (409)
    """
    result = await manager.submit_offer(participant_id, request.offer)
    return _finalize(result, manager, background_tasks)


@router.post("/sessions/{participant_id}/accept", response_model=SessionView)
async def accept_offer(
    participant_id: str,
    background_tasks: BackgroundTasks,
    manager: SessionManager = Depends(get_session_manager)
):
    """Accept the seller's standing offer."""
    result = await manager.accept(participant_id)
    return _finalize(result, manager, background_tasks)


@router.post("/sessions/{participant_id}/decline", response_model=SessionView)
async def decline_offer(
    participant_id: str,
    background_tasks: BackgroundTasks,
    manager: SessionManager = Depends(get_session_manager)
):
    """Decline the seller's final offer."""
    result = await manager.decline(participant_id)
    return _finalize(result, manager, background_tasks)


@router.post("/sessions/{participant_id}/restart", response_model=SessionView, status_code=status.HTTP_201_CREATED)
async def restart_session(
    participant_id: str,
    background_tasks: BackgroundTasks,
    manager: SessionManager = Depends(get_session_manager)
):
    """Replace a finished session with a fresh one (new participant id)."""
    result = await manager.restart(participant_id)
    return _finalize(result, manager, background_tasks)
