"""
Core Interfaces

Protocols for the external collaborators of the orchestrator. Production
implementations live in ``replygen.infrastructure``; tests substitute fakes.
"""

from .broadcast import BroadcastPublisher
from .coordination import CoordinationStore
from .message_store import MessageStore

__all__ = [
    "BroadcastPublisher",
    "CoordinationStore",
    "MessageStore",
]
