"""
API v1 router aggregation.

WHAT: Mount session, streaming and status routes under /api/v1
WHY: Single place to register all API routes
HOW: One prefixed router including each endpoint module
"""

from fastapi import APIRouter

from .endpoints import sessions, status, streaming

API_V1_PREFIX = "/api/v1"

api_router = APIRouter(prefix=API_V1_PREFIX)

api_router.include_router(sessions.router, tags=["sessions"])
api_router.include_router(streaming.router, tags=["streaming"])
api_router.include_router(status.router, tags=["status"])
