"""
Coordination Store Protocol

A shared, low-latency key-value store reachable by every worker. Used only
for advisory hints: which message was cancelled and which assistant message
is the newest of a conversation.

Semantics: unconditional last-write-wins, no TTL, no cross-key transactions.
Readers must tolerate stale values.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class CoordinationStore(Protocol):
    """
    Implementations:
    - RedisClient: production Redis-backed store
    """

    async def get(self, key: str) -> str | None:
        """
        Get a value.

        Returns:
            The stored string, or None when the key is absent

        Raises:
            CoordinationStoreError: If the store cannot be read
        """
        ...

    async def set(self, key: str, value: str) -> None:
        """
        Overwrite a value.

        Raises:
            CoordinationStoreError: If the store cannot be written
        """
        ...
