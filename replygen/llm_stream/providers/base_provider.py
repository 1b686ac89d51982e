#!/usr/bin/env python3
"""
Base Provider Abstract Class

This module defines the abstract base class for all language-model backends.
Concrete implementations (OpenAI, Anthropic, Fake) inherit from this class.

Architectural Decision: Abstract base class for consistent patterns
- Common interface for all backends: stream(credentials, assistant, history)
- Every backend failure surfaces as a ProviderError subclass
- Streams are cancellable iterators: the consumer can stop() them at any
  chunk boundary and no further chunks are delivered
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from contextlib import aclosing
from dataclasses import dataclass

from replygen.core.config.constants import OPENAI_MODEL_PREFIX, Backend
from replygen.core.exceptions import ProviderCredentialsError
from replygen.core.logging.logger import get_logger
from replygen.domain.models import Assistant, BackendCredentials, HistoryEntry, User

logger = get_logger(__name__)


@dataclass
class StreamChunk:
    """
    Represents a single chunk of streamed response.

    Attributes:
        content: Text delta of the chunk (may be empty)
        finish_reason: Why streaming ended (if applicable)
        model: Model that generated the chunk
        full_text: A complete reply the backend returned outside of deltas
    """
    content: str
    finish_reason: str | None = None
    model: str | None = None
    full_text: str | None = None


@dataclass
class ProviderConfig:
    """
    Configuration for a backend adapter.

    API keys are not part of the config: they arrive per run in
    BackendCredentials.
    """
    name: str
    base_url: str
    timeout: int = 60
    default_max_tokens: int = 2000


class ChatCompletionStream:
    """
    Lazy, finite, non-restartable sequence of StreamChunks.

    Usage:
        stream = provider.stream(credentials, assistant, history)
        async for chunk in stream:
            if should_stop:
                await stream.stop()
                break
        fallback = stream.final_text
    """

    def __init__(self, generator: AsyncGenerator[StreamChunk, None], backend: str):
        self._generator = generator
        self.backend = backend
        self.final_text: str | None = None
        self._stopped = False
        self._exhausted = False

    @property
    def stopped(self) -> bool:
        return self._stopped

    def __aiter__(self) -> "ChatCompletionStream":
        return self

    async def __anext__(self) -> StreamChunk:
        if self._stopped or self._exhausted:
            raise StopAsyncIteration
        try:
            chunk = await self._generator.__anext__()
        except Exception:
            # Returned or raised: either way the generator is finished
            self._exhausted = True
            raise
        if chunk.full_text:
            self.final_text = chunk.full_text
        return chunk

    async def stop(self) -> None:
        """
        Halt chunk delivery and release the backend connection. Idempotent.
        """
        if self._stopped:
            return
        self._stopped = True
        await self._generator.aclose()
        if not self._exhausted:
            logger.info("Stream stopped by consumer", stage="4.S", provider=self.backend)


class BaseProvider(ABC):
    """
    Abstract base class for language-model backends.

    Subclasses must implement:
    - _stream_internal(): backend-specific streaming, raising ProviderError
      subclasses on failure

    Usage:
        class OpenAIProvider(BaseProvider):
            async def _stream_internal(self, api_key, assistant, history):
                ...
    """

    def __init__(self, config: ProviderConfig):
        """
        Initialize base provider.

        STAGE-3.0: Provider initialization
        """
        self.config = config
        self.name = config.name

        logger.info(
            "Provider initialized",
            stage="3.0",
            provider=config.name,
            base_url=config.base_url[:50] + "..." if len(config.base_url) > 50 else config.base_url
        )

    def stream(
        self,
        credentials: BackendCredentials,
        assistant: Assistant,
        history: list[HistoryEntry],
    ) -> ChatCompletionStream:
        """
        Open a chat completion stream for the assistant.

        Nothing is sent until the first chunk is awaited.

        Raises (while iterating):
            ProviderCredentialsError: If credentials are not configured
            ProviderRateLimitError, ProviderConnectionError,
            ProviderResponseError, ProviderError: backend failures
        """
        return ChatCompletionStream(self._logged_stream(credentials, assistant, history), self.name)

    async def _logged_stream(
        self,
        credentials: BackendCredentials,
        assistant: Assistant,
        history: list[HistoryEntry],
    ) -> AsyncGenerator[StreamChunk, None]:
        api_key = self._require_api_key(credentials)

        logger.info(
            "Starting stream",
            stage="4.1",
            provider=self.name,
            model=assistant.model,
            history_length=len(history)
        )

        chunk_count = 0
        total_content_length = 0
        try:
            # aclosing: stopping the outer stream must close the backend response
            async with aclosing(self._stream_internal(api_key, assistant, history)) as chunks:
                async for chunk in chunks:
                    chunk_count += 1
                    total_content_length += len(chunk.content)
                    yield chunk

            logger.info(
                "Stream completed",
                stage="4.1",
                provider=self.name,
                chunk_count=chunk_count,
                total_length=total_content_length
            )

        except Exception as e:
            logger.warning(
                "Stream failed",
                stage="4.1",
                provider=self.name,
                chunk_count=chunk_count,
                error_type=type(e).__name__,
                error=str(e)
            )
            raise

    def _require_api_key(self, credentials: BackendCredentials) -> str:
        if not credentials.configured:
            raise ProviderCredentialsError(
                message=f"No API key configured for {self.name}",
                details={"backend": self.name}
            )
        return credentials.api_key

    def max_tokens_for(self, assistant: Assistant) -> int:
        return assistant.max_tokens or self.config.default_max_tokens

    @abstractmethod
    async def _stream_internal(
        self,
        api_key: str,
        assistant: Assistant,
        history: list[HistoryEntry],
    ) -> AsyncGenerator[StreamChunk, None]:
        """
        Backend-specific streaming.

        STAGE-4.2: Provider-specific streaming

        Yields:
            StreamChunk: Response chunks
        """
        pass

    async def close(self) -> None:
        """Release long-lived resources (HTTP clients)."""
        return None


def resolve_credentials(user: User, backend: Backend) -> BackendCredentials:
    """Pick the user's API key for a backend."""
    return BackendCredentials(backend=backend, api_key=user.api_key_for(backend))


class ProviderFactory:
    """
    Factory for backend adapters.

    STAGE-3.F: Provider factory

    This class provides:
    - Adapter registration and lazy creation
    - Backend selection for an assistant

    Usage:
        factory = ProviderFactory()
        factory.register(Backend.OPENAI, OpenAIProvider, config)

        backend = ProviderFactory.select_backend(assistant)
        provider = factory.get(backend)
    """

    def __init__(self):
        self._providers: dict[Backend, BaseProvider] = {}
        self._configs: dict[Backend, ProviderConfig] = {}
        self._classes: dict[Backend, type] = {}

        logger.debug("Provider factory initialized", stage="3.F")

    def register(
        self,
        backend: Backend,
        provider_class: type,
        config: ProviderConfig
    ) -> None:
        """
        Register an adapter class for a backend.

        Re-registering replaces any adapter already created for the backend.
        """
        backend = Backend(backend)
        self._classes[backend] = provider_class
        self._configs[backend] = config
        self._providers.pop(backend, None)

        logger.info(f"Registered provider: {backend.value}", stage="3.F.1", provider_class=provider_class.__name__)

    def get(self, backend: Backend) -> BaseProvider:
        """
        Get or create the adapter for a backend.

        Raises:
            ValueError: If no adapter is registered for the backend
        """
        backend = Backend(backend)
        if backend not in self._classes:
            raise ValueError(f"Provider not registered: {backend.value}")

        if backend not in self._providers:
            self._providers[backend] = self._classes[backend](self._configs[backend])

        return self._providers[backend]

    @staticmethod
    def select_backend(assistant: Assistant) -> Backend:
        """
        Choose the backend for an assistant.

        STAGE-3.1: Backend selection

        An explicit assistant.backend override wins; otherwise models named
        "gpt-..." go to OpenAI and everything else to Anthropic.
        """
        if assistant.backend is not None:
            return assistant.backend
        if assistant.model.startswith(OPENAI_MODEL_PREFIX):
            return Backend.OPENAI
        return Backend.ANTHROPIC

    def for_assistant(self, assistant: Assistant) -> tuple[Backend, BaseProvider]:
        backend = self.select_backend(assistant)
        return backend, self.get(backend)

    def get_available(self) -> list[Backend]:
        return list(self._classes.keys())

    async def close_all(self) -> None:
        for provider in self._providers.values():
            await provider.close()
        self._providers.clear()


# Global provider factory
_provider_factory: ProviderFactory | None = None


def get_provider_factory() -> ProviderFactory:
    """Get the global provider factory (populate it with register_providers())."""
    global _provider_factory
    if _provider_factory is None:
        _provider_factory = ProviderFactory()
    return _provider_factory
