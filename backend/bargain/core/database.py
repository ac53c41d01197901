"""
Database utilities and connection management.

WHAT: Engine, session scope and table setup for the round log
WHY: The database sink appends one row per round; nothing else is persisted
HOW: SQLAlchemy 2 sync engine; SQLite gets WAL mode and a created data directory
"""

from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

SQLITE_FILE_PREFIX = "sqlite:///"
_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

if settings.DATABASE_URL.startswith(SQLITE_FILE_PREFIX):
    Path(settings.DATABASE_URL[len(SQLITE_FILE_PREFIX):]).parent.mkdir(parents=True, exist_ok=True)

engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    echo=settings.DEBUG,
    future=True
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """WAL mode so sink inserts do not block readers."""
    if not _is_sqlite:
        return
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


SessionLocal = sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
    autocommit=False
)

Base = declarative_base()


@contextmanager
def get_db():
    """
    Transactional session scope.

    Usage:
        with get_db() as db:
            db.add(RoundLog(...))

    Commits on success, rolls back and re-raises on error.

    Yields:
        Session: SQLAlchemy session
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ping_database() -> dict:
    """
    Check connectivity and whether the round log table exists.

    Returns:
        Dict with availability, table status and error text
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
            has_table = inspect(conn).has_table("round_logs")
        return {
            "available": True,
            "round_log_table": has_table,
            "error": None
        }
    except Exception as e:
        logger.error(f"Database ping failed: {e}")
        return {
            "available": False,
            "round_log_table": False,
            "error": str(e)
        }


def init_db():
    """Create the round log table if it does not exist."""
    from . import models  # noqa: F401  (registers RoundLog on Base)

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready: {sorted(Base.metadata.tables)}")


def close_db():
    """Dispose pooled connections."""
    engine.dispose()
    logger.info("Database connections closed")
