"""
Test Fixtures Package

Shared test utilities and helpers for consistent testing across all modules.
"""

from .provider_factory import ScriptedProvider, factory_for
from .scenario_factory import ConversationScenario
from .stores import FakeClock, InMemoryCoordinationStore, RecordingPublisher

__all__ = [
    "ConversationScenario",
    "FakeClock",
    "InMemoryCoordinationStore",
    "RecordingPublisher",
    "ScriptedProvider",
    "factory_for",
]
