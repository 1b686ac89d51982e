"""
Cancellation Signals

The writing side of staleness: what the rest of the application calls when a
user stops a reply, or when a new assistant message is created for a
conversation.
"""

from collections.abc import Callable
from datetime import datetime

from replygen.core.config.constants import CANCELLED_MESSAGE_KEY, latest_assistant_message_key
from replygen.core.exceptions import MessageNotFoundError
from replygen.core.interfaces import CoordinationStore, MessageStore
from replygen.core.logging.logger import get_logger
from replygen.domain.models import Message, utc_now

logger = get_logger(__name__)


class CancellationService:
    def __init__(
        self,
        message_store: MessageStore,
        coordination_store: CoordinationStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._messages = message_store
        self._coordination = coordination_store
        self._clock = clock

    async def cancel(self, message_id: int) -> Message:
        """
        Cancel a message's generation.

        Sets the durable cancelled_at first, then the fast hint read by
        running generations.

        Raises:
            MessageNotFoundError: If the message does not exist
            CoordinationStoreError: If the hint cannot be written
        """
        message = await self._messages.mark_cancelled(message_id, self._clock())
        if message is None:
            raise MessageNotFoundError(
                f"Message {message_id} not found",
                details={"message_id": message_id},
            )

        await self._coordination.set(CANCELLED_MESSAGE_KEY, str(message_id))
        logger.info("Message cancelled", stage="C.1", message_id=message_id)
        return message

    async def record_latest_assistant_message(self, conversation_id: int, message_id: int) -> None:
        """Point the conversation's latest-assistant-message hint at ``message_id``."""
        await self._coordination.set(latest_assistant_message_key(conversation_id), str(message_id))
        logger.debug(
            "Latest assistant message recorded",
            stage="C.2",
            conversation_id=conversation_id,
            message_id=message_id,
        )
