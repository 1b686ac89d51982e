"""
Domain records read and written by the orchestrator.

The relational schema lives elsewhere; these models carry only the fields
reply generation needs.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from replygen.core.config.constants import (
    HINT_ONLY_SCROLL_DOWN_IF_WAS_BOTTOM,
    HINT_STREAMED,
    HINT_THINKING,
    HINT_TIMESTAMP,
    Backend,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class User(BaseModel):
    """Owner of assistants and conversations; holds per-backend API keys."""

    id: int
    openai_key: str | None = None
    anthropic_key: str | None = None

    def api_key_for(self, backend: Backend) -> str | None:
        if backend == Backend.OPENAI:
            return self.openai_key
        return self.anthropic_key


class Assistant(BaseModel):
    """
    Assistant configuration.

    ``backend`` is an explicit override; when unset the backend is derived
    from the model name.
    """

    id: int
    user_id: int
    name: str
    model: str
    backend: Backend | None = None
    instructions: str | None = None
    max_tokens: int | None = None


class Conversation(BaseModel):
    id: int
    user_id: int
    assistant_id: int | None = None
    updated_at: datetime = Field(default_factory=utc_now)


class Message(BaseModel):
    """
    A single message of a conversation version.

    ``processed_at`` marks the message as claimed by a generation run;
    ``cancelled_at`` is the authoritative cancellation flag.
    """

    model_config = {"validate_assignment": True}

    id: int
    conversation_id: int
    assistant_id: int | None = None
    version: int = 1
    index: int
    role: Role
    content_text: str = ""
    processed_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_processed(self) -> bool:
        return self.processed_at is not None

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled_at is not None

    @property
    def is_populated(self) -> bool:
        return bool(self.content_text and self.content_text.strip())

    def snapshot(self) -> dict[str, Any]:
        """Serializable view of the message sent to subscribers."""
        return self.model_dump(mode="json")


class BackendCredentials(BaseModel):
    """Credentials handed to a backend adapter for one run."""

    backend: Backend
    api_key: str | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


class HistoryEntry(BaseModel):
    """One turn of conversation history fed to the backend."""

    role: Literal["system", "user", "assistant"]
    content: str


class BroadcastHints(BaseModel):
    """Presentation hints sent alongside a message snapshot."""

    thinking: bool
    only_scroll_down_if_was_bottom: bool = True
    timestamp_ms: int = Field(default_factory=lambda: int(utc_now().timestamp() * 1000))
    streamed: bool = True

    def as_locals(self) -> dict[str, Any]:
        return {
            HINT_THINKING: self.thinking,
            HINT_ONLY_SCROLL_DOWN_IF_WAS_BOTTOM: self.only_scroll_down_if_was_bottom,
            HINT_TIMESTAMP: self.timestamp_ms,
            HINT_STREAMED: self.streamed,
        }


class GenerationOutcome(str, Enum):
    """Terminal result of one orchestration run."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"
    FAILED_HANDLED = "failed_handled"
    FAILED = "failed"


class Disposition(str, Enum):
    """How a run's failure (or cancellation) is presented to the user."""

    CANCELLED = "cancelled"
    MISSING_CREDENTIALS = "missing_credentials"
    EMPTY_RESPONSE = "empty_response"
    CONNECTION_FAILED = "connection_failed"
    RATE_LIMITED = "rate_limited"
    UNCLASSIFIED = "unclassified"
