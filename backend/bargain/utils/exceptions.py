"""
Custom business exceptions for the session API.

WHAT: Domain errors raised by endpoints, each bound to an HTTP status
WHY: Rejections from the state machine reach clients with the current view
HOW: BusinessException carries code, message, details and status_code;
     the error handler renders them uniformly
"""

from typing import Any, Dict, Optional


class BusinessException(Exception):
    """Base class for business logic exceptions."""

    status_code: int = 400

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class SessionNotFoundException(BusinessException):
    """Unknown or evicted participant id."""

    status_code = 404

    def __init__(self, participant_id: str):
        super().__init__(
            message=f"Session not found: {participant_id}",
            code="SESSION_NOT_FOUND",
            details={"participant_id": participant_id}
        )


class InvalidActionException(BusinessException):
    """Action not allowed in the session's current phase."""

    status_code = 409

    def __init__(self, message: str, phase: str, view: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code="INVALID_ACTION",
            details={"phase": phase, "view": view}
        )


class OfferRejectedException(BusinessException):
    """
    Buyer input refused by the state machine.

    Codes: INVALID_OFFER, OFFER_DECREASED, CONSENT_REQUIRED. The session is
    unchanged; details carry its view including the error message.
    """

    status_code = 422

    def __init__(self, message: str, code: str, view: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code=code,
            details={"view": view}
        )
