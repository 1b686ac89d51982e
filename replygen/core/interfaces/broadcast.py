"""
Broadcast Publisher Protocol

Delivers message snapshots to live subscribers of a conversation.
Fire-and-forget: no acknowledgment, no delivery guarantee.
"""

from typing import Any, Protocol, runtime_checkable

from replygen.domain.models import BroadcastHints


@runtime_checkable
class BroadcastPublisher(Protocol):
    async def publish(self, snapshot: dict[str, Any], hints: BroadcastHints) -> None:
        """
        Publish a message snapshot to the subscribers of its conversation.

        Args:
            snapshot: Message.snapshot() output (must carry conversation_id)
            hints: Presentation hints (thinking, scroll behaviour, timestamp)
        """
        ...
