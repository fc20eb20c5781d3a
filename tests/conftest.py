"""
Pytest Configuration and Fixtures for GameVault Tests
======================================================

Purpose
-------
Centralized test fixtures for the GameVault test suite: database lifecycle,
configuration, event bus and the service container.

Responsibilities
----------------
- Point configuration at throwaway directories before gamevault is imported
- Database per test: a fresh SQLite file by default, or a PostgreSQL
  testcontainer when ``GAMEVAULT_TEST_POSTGRES=1``
- Real ServiceContainer wired to an isolated EventBus
- Mocks for unit tests (event bus, config manager)

Architecture Notes
------------------
- Unit tests use mocks (fast, isolated)
- Integration tests hit a real database through DatabaseService
- Database fixtures provide a clean slate per test
"""

from __future__ import annotations

import os
import tempfile
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional, Tuple

# Must run before any gamevault import: Config and logging read these at import
_TEST_ROOT = tempfile.mkdtemp(prefix="gamevault-tests-")
os.environ["ENVIRONMENT"] = "testing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["LOGS_DIR"] = os.path.join(_TEST_ROOT, "logs")
os.environ["DATA_DIR"] = os.path.join(_TEST_ROOT, "data")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_ROOT, 'default.db')}"
os.environ["OWNER_PASSWORD"] = "owner-secret"

import pytest
import pytest_asyncio

from gamevault.core.config.manager import ConfigManager
from gamevault.core.database.service import DatabaseService
from gamevault.core.event.bus import EventBus
from gamevault.core.logging.logger import get_logger
from gamevault.core.services.container import ServiceContainer

logger = get_logger(__name__)

USE_POSTGRES = os.environ.get("GAMEVAULT_TEST_POSTGRES") == "1"


# ============================================================================
# TESTCONTAINERS FIXTURES (optional PostgreSQL)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_url() -> Generator[Optional[str], None, None]:
    """
    Start a PostgreSQL testcontainer when GAMEVAULT_TEST_POSTGRES=1.

    Scope: session (container persists across all tests)
    """
    if not USE_POSTGRES:
        yield None
        return

    from testcontainers.postgres import PostgresContainer

    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
    container.start()

    yield container.get_connection_url()

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest_asyncio.fixture
async def database(tmp_path, postgres_url) -> AsyncGenerator[str, None]:
    """
    Initialize DatabaseService against a clean schema.

    Scope: function (fresh database per test)
    """
    url = postgres_url or f"sqlite+aiosqlite:///{tmp_path / 'gamevault-test.db'}"

    await DatabaseService.initialize(url)
    if postgres_url:
        await DatabaseService.drop_schema()
    await DatabaseService.create_schema()

    yield url

    await DatabaseService.shutdown()


@pytest.fixture
def config_manager() -> Generator[type, None, None]:
    """
    Real ConfigManager loaded from config/*.yaml.

    Overrides applied with ``set()`` are dropped after each test.
    """
    ConfigManager.reset()
    yield ConfigManager
    ConfigManager.reset()


@pytest.fixture
def event_bus() -> EventBus:
    """Isolated EventBus so tests never touch the global singleton."""
    return EventBus()


@pytest.fixture
def published(event_bus: EventBus) -> List[Tuple[str, Dict[str, Any]]]:
    """
    Record every event published on ``event_bus`` as (name, payload).

    Wraps ``publish`` so the event name is captured alongside the payload.
    """
    events: List[Tuple[str, Dict[str, Any]]] = []
    original_publish = event_bus.publish

    async def recording_publish(event_name: str, data: Dict[str, Any]) -> list:
        events.append((event_name, data))
        return await original_publish(event_name, data)

    event_bus.publish = recording_publish  # type: ignore[method-assign]
    return events


@pytest_asyncio.fixture
async def services(database, config_manager, event_bus) -> AsyncGenerator[ServiceContainer, None]:
    """Initialized ServiceContainer backed by the per-test database."""
    container = ServiceContainer(config_manager, event_bus, get_logger("tests.container"))
    await container.initialize()
    yield container
    await container.shutdown()
    await event_bus.drain()


@pytest_asyncio.fixture
async def register(services):
    """
    Factory: register a player and return the register() result dict.

    Usage:
        alice = await register("g1", "alice")
    """

    async def _register(game_id: str = "g1", username: str = "alice", password: str = "pw") -> Dict[str, Any]:
        return await services.identity.register(game_id, username, password)

    return _register


@pytest_asyncio.fixture
async def funded_player(services, register):
    """
    Factory: register a player and set its balance.

    Usage:
        bob = await funded_player("bob", 100)
    """

    async def _funded(username: str = "alice", credits: int = 100, game_id: str = "g1") -> Dict[str, Any]:
        player = await register(game_id, username)
        await services.ledger.admin_set(player["player_id"], credits)
        return player

    return _funded


# ============================================================================
# MOCK FIXTURES (Unit Tests)
# ============================================================================


@pytest.fixture
def mock_event_bus(mocker):
    """
    Mock EventBus for unit tests.

    Scope: function
    """
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock(return_value=[])
    mock_bus.subscribe = mocker.MagicMock()
    return mock_bus


@pytest.fixture
def mock_config_manager(mocker):
    """
    Mock ConfigManager for unit tests; ``get`` returns the call-site default.

    Scope: function
    """
    mock_config = mocker.MagicMock()
    mock_config.get = mocker.MagicMock(side_effect=lambda key, default=None: default)
    return mock_config
