"""
Conversation Scenario Factory

Seeds an InMemoryMessageStore with a user, an assistant, a conversation and
its messages.
"""

from datetime import datetime, timedelta, timezone

from replygen.domain.models import Assistant, Conversation, Message, Role, User
from replygen.infrastructure.storage.memory_store import InMemoryMessageStore

EPOCH = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

USER_ID = 1
ASSISTANT_ID = 10
CONVERSATION_ID = 100


class ConversationScenario:
    """
    Default layout (version 1):
        index 0  user       id=1000  "What is the capital of France?"
        index 1  assistant  id=1001  ""          <- target
    """

    def __init__(
        self,
        store: InMemoryMessageStore | None = None,
        model: str = "gpt-4o",
        openai_key: str | None = "sk-test-openai",
        anthropic_key: str | None = "sk-ant-test",
        instructions: str | None = "You are a helpful assistant.",
    ):
        self.store = store or InMemoryMessageStore()
        self.user = self.store.add_user(User(id=USER_ID, openai_key=openai_key, anthropic_key=anthropic_key))
        self.assistant = self.store.add_assistant(
            Assistant(
                id=ASSISTANT_ID,
                user_id=USER_ID,
                name="Helper",
                model=model,
                instructions=instructions,
            )
        )
        self.conversation = self.store.add_conversation(
            Conversation(id=CONVERSATION_ID, user_id=USER_ID, assistant_id=ASSISTANT_ID, updated_at=EPOCH)
        )
        self._next_id = 1000
        self.question = self.add(Role.USER, "What is the capital of France?")
        self.target = self.add(Role.ASSISTANT)

    def add(
        self,
        role: Role,
        content_text: str = "",
        processed_at: datetime | None = None,
        cancelled_at: datetime | None = None,
        version: int = 1,
        index: int | None = None,
    ) -> Message:
        if index is None:
            index = len([m for m in self.store._messages.values() if m.version == version])
        message = Message(
            id=self._next_id,
            conversation_id=CONVERSATION_ID,
            assistant_id=ASSISTANT_ID if role == Role.ASSISTANT else None,
            version=version,
            index=index,
            role=role,
            content_text=content_text,
            processed_at=processed_at,
            cancelled_at=cancelled_at,
            created_at=EPOCH + timedelta(seconds=self._next_id - 1000),
        )
        self._next_id += 1
        return self.store.add_message(message)

    async def reload(self, message: Message) -> Message:
        return await self.store.get_message(message.id)
