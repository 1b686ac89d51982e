"""
Message/Conversation Store Protocol

The durable record of users, assistants, conversations and messages. The
orchestrator reads prior state and writes final state; schema and indexing
belong to the implementation.
"""

from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from replygen.domain.models import Assistant, Conversation, Message, Role, User


@runtime_checkable
class MessageStore(Protocol):
    """
    Implementations:
    - InMemoryMessageStore: process-local store for tests and local runs

    Every read returns a detached copy; mutate it and call save_message()
    to persist.
    """

    async def get_message(self, message_id: int) -> Message | None:
        ...

    async def get_assistant(self, assistant_id: int) -> Assistant | None:
        ...

    async def get_conversation(self, conversation_id: int) -> Conversation | None:
        ...

    async def get_user(self, user_id: int) -> User | None:
        ...

    async def find_message(
        self,
        conversation_id: int,
        version: int,
        index: int,
        role: Role | None = None,
    ) -> Message | None:
        """Message at ``index`` of a conversation version, optionally filtered by role."""
        ...

    async def list_messages(self, conversation_id: int, version: int) -> list[Message]:
        """Messages of a conversation version ordered by index."""
        ...

    async def latest_message_for_version(self, conversation_id: int, version: int) -> Message | None:
        """Message with the highest index of a conversation version."""
        ...

    async def claim_message(
        self,
        message_id: int,
        now: datetime,
        claim_timeout: timedelta,
    ) -> Message | None:
        """
        Atomic claim.

        Sets ``processed_at = now`` and clears ``content_text`` only if the
        message is neither cancelled nor populated and is either unclaimed or
        was claimed at least ``claim_timeout`` before ``now`` (a run that
        died mid-stream).

        Returns:
            The claimed message, or None if another run holds the claim
        """
        ...

    async def save_message(self, message: Message) -> None:
        """
        Persist content_text, processed_at and cancelled_at.

        Raises:
            MessageStoreError: If the write fails
        """
        ...

    async def touch_conversation(self, conversation_id: int, now: datetime) -> None:
        """Bump the conversation's updated_at recency marker."""
        ...

    async def mark_cancelled(self, message_id: int, now: datetime) -> Message | None:
        """Set cancelled_at unless already set; returns the message or None if missing."""
        ...
