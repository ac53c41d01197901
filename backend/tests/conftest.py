"""
Pytest configuration and shared fixtures for backend tests.

WHAT: Centralized test configuration, markers and shared fixtures
WHY: Engine behavior depends on random draws and settings read at import
HOW: Environment set before the app is imported, scripted random sources,
     and a TestClient wired to an isolated SessionManager
"""

import os
import tempfile
from pathlib import Path

import pytest

# Settings are read at import time; point everything at a temp dir first
_TEST_DIR = Path(tempfile.mkdtemp(prefix="bargain-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{(_TEST_DIR / 'test.db').as_posix()}"
os.environ["LOG_FILE"] = str(_TEST_DIR / "logs" / "app.log")
os.environ["THINK_DELAY_MIN_MS"] = "0"
os.environ["THINK_DELAY_MAX_MS"] = "0"
os.environ["ROUND_LOG_WEBHOOK_URL"] = ""
os.environ["ROUND_LOG_TO_DATABASE"] = "true"

from bargain.core.session_manager import SessionManager  # noqa: E402
from bargain.models.negotiation import NegotiationConfig  # noqa: E402
from bargain.services.dimension_scheduler import DimensionScheduler  # noqa: E402
from bargain.services.event_dispatcher import EventDispatcher  # noqa: E402
from bargain.services.round_orchestrator import RoundOrchestrator  # noqa: E402
from tests.fixtures.scripted import ScriptedRandom, make_session  # noqa: E402


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (isolated component tests)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (multiple components)"
    )


@pytest.fixture
def rng():
    """Scripted random source (rolls never abort unless queued)."""
    return ScriptedRandom()


@pytest.fixture
def config():
    """Default negotiation configuration (5500 opening, 3500 floor, 8-12 rounds)."""
    return NegotiationConfig(think_delay_min_ms=0, think_delay_max_ms=0)


@pytest.fixture
def orchestrator(rng):
    return RoundOrchestrator(rng=rng)


@pytest.fixture
def negotiating_session(orchestrator, config):
    """Session at scale 1.0, past the vignette, 12 rounds."""
    session = orchestrator.new_session(config, 1.0)
    return orchestrator.start(session, consent=True).session


@pytest.fixture
def session_factory():
    return make_session


@pytest.fixture
def manager(rng):
    """SessionManager with a single scale factor and no sinks."""
    return SessionManager(
        rng=rng,
        scheduler=DimensionScheduler([1.0], rng=rng),
        dispatcher=EventDispatcher([]),
        base_config=NegotiationConfig(think_delay_min_ms=0, think_delay_max_ms=0),
    )


@pytest.fixture
def client(manager):
    """
    FastAPI test client using the isolated manager.

    WHAT: TestClient with get_session_manager overridden
    WHY: Keep API tests independent of the process-wide registry
    HOW: dependency_overrides, cleared after the test
    """
    from fastapi.testclient import TestClient
    from bargain.main import app
    from bargain.core.session_manager import get_session_manager

    app.dependency_overrides[get_session_manager] = lambda: manager
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
