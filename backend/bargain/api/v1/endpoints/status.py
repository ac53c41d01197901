"""
Status and health check endpoints.

WHAT: Health monitoring for the database and session registry
WHY: Quick diagnostics for the frontend and ops
HOW: FastAPI endpoint calling the database ping
"""

from fastapi import APIRouter, Depends

from ....core.database import ping_database
from ....core.config import settings
from ....core.session_manager import SessionManager, get_session_manager
from ....utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(manager: SessionManager = Depends(get_session_manager)):
    """
    Overall application health check.

    Returns:
        JSON with overall health status; the database only matters when it is a sink
    """
    db_status = ping_database()
    db_available = db_status["available"]
    healthy = db_available or not settings.ROUND_LOG_TO_DATABASE

    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.APP_VERSION,
        "app_name": settings.APP_NAME,
        "components": {
            "database": {
                "available": db_available,
                "round_log_table": db_status["round_log_table"],
                "error": db_status["error"]
            },
            "sessions": {
                "active": len(manager.sessions),
                "sinks": [sink.name for sink in manager.dispatcher.sinks]
            }
        }
    }
