# tests/conftest.py
import logging
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from dream_interpreter.services.interpretation.orchestrator import SessionOrchestrator
from dream_interpreter.services.interpretation.synchronizer import PersistenceSynchronizer
from fakes import InMemoryDreamRepository, ScriptedAssistant

for name in (
    "asyncio",              # selector_events etc.
    "sqlalchemy.pool",      # connection checkout/return
    "sqlalchemy.engine.Engine",
):
    logging.getLogger(name).setLevel(logging.WARNING)

# leave the application namespace free to speak at INFO
logging.getLogger("dream_interpreter").setLevel(logging.INFO)


@pytest.fixture
def mock_session_scope():
    """Patch the unit-of-work so repositories receive a mock session."""
    with patch("dream_interpreter.infrastructure.db.bootstrap.session_scope") as scope:
        session = AsyncMock()
        scope.return_value.__aenter__.return_value = session
        yield session


@pytest_asyncio.fixture
async def dream_repo():
    return InMemoryDreamRepository()


@pytest_asyncio.fixture
async def synchronizer(dream_repo, mock_session_scope):
    return PersistenceSynchronizer(dream_repo)


@pytest_asyncio.fixture
async def assistant():
    return ScriptedAssistant()


@pytest_asyncio.fixture
async def orchestrator(assistant, synchronizer):
    return SessionOrchestrator(
        assistant=assistant,
        synchronizer=synchronizer,
        poll_max_attempts=3,
        poll_interval_s=0,
        failure_budget=2,
    )
