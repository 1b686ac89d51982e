import asyncio
import random
from collections.abc import AsyncGenerator
from typing import Any

from replygen.core.logging import get_logger
from replygen.domain.models import Assistant, HistoryEntry
from replygen.llm_stream.providers.base_provider import BaseProvider, ProviderConfig, StreamChunk

logger = get_logger(__name__)

LOREM_IPSUM = (
    "Lorem ipsum dolor sit amet, consectetur adipiscing elit. "
    "Sed do eiusmod tempor incididunt ut labore et dolore magna aliqua. "
    "Ut enim ad minim veniam, quis nostrud exercitation ullamco laboris "
    "nisi ut aliquip ex ea commodo consequat."
)


class FakeProvider(BaseProvider):
    """
    A fake backend for local runs and tests.

    Streams a scripted list of chunks (or a lorem-ipsum reply split into
    token-sized pieces) with configurable latency. Can be told to fail after
    the script, or to return its reply only as a final text.
    """

    def __init__(
        self,
        config: ProviderConfig,
        chunks: list[str] | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
        final_text: str | None = None,
    ):
        super().__init__(config)
        self.chunks = chunks
        self.delay = delay
        self.error = error
        self.final_text = final_text
        self.calls: list[dict[str, Any]] = []

    async def _stream_internal(
        self,
        api_key: str,
        assistant: Assistant,
        history: list[HistoryEntry],
    ) -> AsyncGenerator[StreamChunk, None]:
        self.calls.append({"model": assistant.model, "history": list(history)})

        chunks = self.chunks if self.chunks is not None else self._chunk_text(self._reply_for(history))
        for chunk_text in chunks:
            if self.delay:
                await asyncio.sleep(self.delay)
            yield StreamChunk(content=chunk_text, model=assistant.model)

        if self.error is not None:
            raise self.error

        yield StreamChunk(
            content="",
            model=assistant.model,
            finish_reason="stop",
            full_text=self.final_text,
        )

    def _reply_for(self, history: list[HistoryEntry]) -> str:
        # Reply length varies with the last user turn
        last_user = next((entry.content for entry in reversed(history) if entry.role == "user"), "")
        multiplier = (len(last_user) % 3) + 1
        return LOREM_IPSUM * multiplier

    @staticmethod
    def _chunk_text(text: str) -> list[str]:
        """Splits text into small chunks to simulate tokens."""
        chunks = []
        i = 0
        while i < len(text):
            chunk_size = random.randint(2, 6)
            chunks.append(text[i : i + chunk_size])
            i += chunk_size
        return chunks
