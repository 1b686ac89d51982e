"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tests.test_fixtures import (  # noqa: E402
    ConversationScenario,
    FakeClock,
    InMemoryCoordinationStore,
    RecordingPublisher,
)

# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def test_settings():
    """
    Fresh settings singleton per test with test-friendly overrides.

    Retry waits use a zero time unit so ordering retries never sleep.
    """
    from replygen.core.config.settings import reload_settings

    settings = reload_settings(
        ENVIRONMENT="test",
        LOG_FORMAT="console",
        JOB_RETRY_TIME_UNIT_SECONDS=0.0,
        EXECUTION_TRACKING_ENABLED=True,
    )
    yield settings
    reload_settings()


@pytest.fixture
def mock_settings():
    """
    Mock application settings for testing.

    Returns a MagicMock with the section attributes code reads.
    """
    from replygen.core.config.settings import Settings

    settings = MagicMock(spec=Settings)

    settings.generation.BROADCAST_THROTTLE_SECONDS = 0.1
    settings.generation.STALENESS_DURABLE_REFRESH_INTERVAL = 10
    settings.generation.CLAIM_TIMEOUT_SECONDS = 600.0
    settings.generation.BROADCAST_CHANNEL_PREFIX = "conversation:"

    settings.worker.JOB_MAX_ATTEMPTS = 3
    settings.worker.JOB_RETRY_TIME_UNIT_SECONDS = 1.0
    settings.worker.JOB_QUEUE_KEY = "replygen:jobs"
    settings.worker.JOB_POLL_INTERVAL_SECONDS = 0.01
    settings.worker.MESSAGE_STORE_FACTORY = None

    settings.app.ENVIRONMENT = "test"
    settings.app.EXECUTION_TRACKING_ENABLED = True

    return settings


# ============================================================================
# Infrastructure Fixtures
# ============================================================================


@pytest.fixture
def coordination_store():
    """Dict-backed coordination store (stands in for Redis)."""
    return InMemoryCoordinationStore()


@pytest.fixture
def publisher():
    """Broadcast publisher that records every publish."""
    return RecordingPublisher()


@pytest.fixture
def clock():
    """Manually advanced monotonic clock for throttle timing."""
    return FakeClock()


@pytest.fixture
def scenario():
    """Seeded conversation: a user question followed by an empty assistant message."""
    return ConversationScenario()


@pytest.fixture
def tracker():
    from replygen.core.observability.execution_tracker import ExecutionTracker

    return ExecutionTracker(enabled=True)


@pytest.fixture
def mock_redis_client():
    """
    Mock RedisClient for publisher and queue tests.

    Provides async mock methods for the commands the infrastructure uses.
    """
    from replygen.infrastructure.cache.redis_client import RedisClient

    client = AsyncMock(spec=RedisClient)
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=None)
    client.publish = AsyncMock(return_value=1)
    client.lpush = AsyncMock(return_value=1)
    client.rpop = AsyncMock(return_value=None)
    client.llen = AsyncMock(return_value=0)
    return client


# ============================================================================
# Orchestrator Fixtures
# ============================================================================


@pytest.fixture
def make_orchestrator(scenario, coordination_store, publisher, tracker, clock, test_settings):
    """
    Build a GenerationOrchestrator around a provider.

    Usage:
        orchestrator = make_orchestrator(ScriptedProvider(chunks=["Hi"]))
    """
    from replygen.llm_stream.services.generation_orchestrator import GenerationOrchestrator
    from tests.test_fixtures import factory_for

    def _make(provider, message_store=None, publisher_override=None):
        return GenerationOrchestrator(
            message_store=message_store or scenario.store,
            coordination_store=coordination_store,
            publisher=publisher_override or publisher,
            provider_factory=factory_for(provider),
            execution_tracker=tracker,
            settings=test_settings,
            monotonic=clock,
        )

    return _make
