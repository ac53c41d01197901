"""
FastAPI application entry point.

WHAT: Bargain simulator service (session API, SSE, round logging)
WHY: Wire configuration, logging, storage and routes in one place
HOW: FastAPI app with lifespan hooks, CORS, business exception handlers
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.database import init_db, close_db
from .core.session_manager import session_manager
from .utils.logger import setup_logging, get_logger
from .middleware.error_handler import register_exception_handlers
from .api.v1.router import api_router

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    WHAT: Prepare the round log table, report the negotiation setup
    WHY: Sinks need their table before the first round is logged
    HOW: Startup creates tables; shutdown disposes connections and
         reports sessions that are dropped with the process
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    if settings.ROUND_LOG_TO_DATABASE:
        init_db()
    logger.info(
        f"Scale factors {settings.get_dimension_factors()}, "
        f"rounds {settings.MIN_ROUNDS}-{settings.MAX_ROUNDS}, "
        f"schedule {settings.CONCESSION_SCHEDULE}"
    )

    yield

    unfinished = sum(1 for s in session_manager.sessions.values() if not s.finished)
    if unfinished:
        logger.warning(f"Shutting down with {unfinished} unfinished sessions (not persisted)")
    close_db()
    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Buyer-vs-seller negotiation sessions with a synthetic seller",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(api_router)


@app.get("/")
async def root():
    """Service banner with links to the API."""
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/api/v1/health"
    }


def run():
    """Console entry point (bargain-server)."""
    import uvicorn

    uvicorn.run(
        "bargain.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    run()
