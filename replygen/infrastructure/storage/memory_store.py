from __future__ import annotations

from datetime import datetime, timedelta
from threading import RLock

from replygen.core.exceptions import MessageStoreError
from replygen.domain.models import Assistant, Conversation, Message, Role, User


class InMemoryMessageStore:
    """
    Process-local MessageStore.

    Reads hand out deep copies; only save_message() and claim_message()
    change stored state.
    """

    def __init__(self) -> None:
        self._users: dict[int, User] = {}
        self._assistants: dict[int, Assistant] = {}
        self._conversations: dict[int, Conversation] = {}
        self._messages: dict[int, Message] = {}
        self._lock = RLock()

    # --- seeding -----------------------------------------------------------

    def add_user(self, user: User) -> User:
        with self._lock:
            self._users[user.id] = user.model_copy(deep=True)
        return user

    def add_assistant(self, assistant: Assistant) -> Assistant:
        with self._lock:
            self._assistants[assistant.id] = assistant.model_copy(deep=True)
        return assistant

    def add_conversation(self, conversation: Conversation) -> Conversation:
        with self._lock:
            self._conversations[conversation.id] = conversation.model_copy(deep=True)
        return conversation

    def add_message(self, message: Message) -> Message:
        with self._lock:
            clash = self._find(message.conversation_id, message.version, message.index)
            if clash is not None and clash.id != message.id:
                raise MessageStoreError(
                    "Index already taken in this conversation version",
                    details={
                        "conversation_id": message.conversation_id,
                        "version": message.version,
                        "index": message.index,
                    },
                )
            self._messages[message.id] = message.model_copy(deep=True)
        return message

    # --- reads -------------------------------------------------------------

    @staticmethod
    def _copy(record):
        return record.model_copy(deep=True) if record is not None else None

    def _find(self, conversation_id: int, version: int, index: int) -> Message | None:
        for message in self._messages.values():
            if (
                message.conversation_id == conversation_id
                and message.version == version
                and message.index == index
            ):
                return message
        return None

    async def get_message(self, message_id: int) -> Message | None:
        with self._lock:
            return self._copy(self._messages.get(message_id))

    async def get_assistant(self, assistant_id: int) -> Assistant | None:
        with self._lock:
            return self._copy(self._assistants.get(assistant_id))

    async def get_conversation(self, conversation_id: int) -> Conversation | None:
        with self._lock:
            return self._copy(self._conversations.get(conversation_id))

    async def get_user(self, user_id: int) -> User | None:
        with self._lock:
            return self._copy(self._users.get(user_id))

    async def find_message(
        self,
        conversation_id: int,
        version: int,
        index: int,
        role: Role | None = None,
    ) -> Message | None:
        with self._lock:
            message = self._find(conversation_id, version, index)
            if message is None or (role is not None and message.role != role):
                return None
            return self._copy(message)

    async def list_messages(self, conversation_id: int, version: int) -> list[Message]:
        with self._lock:
            messages = [
                m for m in self._messages.values()
                if m.conversation_id == conversation_id and m.version == version
            ]
            return [self._copy(m) for m in sorted(messages, key=lambda m: m.index)]

    async def latest_message_for_version(self, conversation_id: int, version: int) -> Message | None:
        messages = await self.list_messages(conversation_id, version)
        return messages[-1] if messages else None

    # --- writes ------------------------------------------------------------

    async def claim_message(
        self,
        message_id: int,
        now: datetime,
        claim_timeout: timedelta,
    ) -> Message | None:
        with self._lock:
            message = self._messages.get(message_id)
            if message is None or message.is_cancelled or message.is_populated:
                return None
            if message.processed_at is not None and now - message.processed_at < claim_timeout:
                return None
            message.processed_at = now
            message.content_text = ""
            return self._copy(message)

    async def save_message(self, message: Message) -> None:
        with self._lock:
            stored = self._messages.get(message.id)
            if stored is None:
                raise MessageStoreError("Message does not exist", details={"message_id": message.id})
            stored.content_text = message.content_text
            stored.processed_at = message.processed_at
            # The first recorded cancellation wins and is never undone
            stored.cancelled_at = stored.cancelled_at or message.cancelled_at

    async def touch_conversation(self, conversation_id: int, now: datetime) -> None:
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise MessageStoreError(
                    "Conversation does not exist", details={"conversation_id": conversation_id}
                )
            conversation.updated_at = now

    async def mark_cancelled(self, message_id: int, now: datetime) -> Message | None:
        with self._lock:
            message = self._messages.get(message_id)
            if message is None:
                return None
            if message.cancelled_at is None:
                message.cancelled_at = now
            return self._copy(message)
