#!/usr/bin/env python3
"""
OpenAI Provider Implementation

Streams chat completions with the official AsyncOpenAI client and maps
OpenAI SDK exceptions onto the internal provider exception hierarchy.

Architectural Decision: Use official SDK
- Best compatibility with OpenAI features
- Client retries disabled; ordering retries belong to the job runner
"""

from collections.abc import AsyncGenerator

from openai import (
    APIConnectionError,
    APIError,
    AsyncOpenAI,
    AuthenticationError,
    RateLimitError,
)

from replygen.core.exceptions import (
    ProviderConnectionError,
    ProviderCredentialsError,
    ProviderError,
    ProviderRateLimitError,
)
from replygen.core.logging import get_logger
from replygen.domain.models import Assistant, HistoryEntry
from replygen.llm_stream.providers.base_provider import BaseProvider, ProviderConfig, StreamChunk

logger = get_logger(__name__)


class OpenAIProvider(BaseProvider):
    """
    OpenAI chat completions backend.

    STAGE-OPENAI: OpenAI provider operations

    A client is created per stream because every user brings their own key.
    """

    def __init__(self, config: ProviderConfig):
        super().__init__(config)

    def _client(self, api_key: str) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=api_key,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            max_retries=0
        )

    def build_messages(self, assistant: Assistant, history: list[HistoryEntry]) -> list[dict[str, str]]:
        """Chat messages payload; assistant instructions become the system message."""
        messages = []
        if assistant.instructions:
            messages.append({"role": "system", "content": assistant.instructions})
        messages.extend(
            {"role": entry.role, "content": entry.content}
            for entry in history
            if entry.role != "system"
        )
        return messages

    async def _stream_internal(
        self,
        api_key: str,
        assistant: Assistant,
        history: list[HistoryEntry],
    ) -> AsyncGenerator[StreamChunk, None]:
        """
        Stream a chat completion.

        STAGE-OPENAI.STREAM: Streaming execution

        Raises:
            ProviderCredentialsError: For invalid API keys
            ProviderRateLimitError: For throttling and quota errors
            ProviderConnectionError: For connection issues and timeouts
            ProviderError: For any other API error
        """
        client = self._client(api_key)
        try:
            stream_response = await client.chat.completions.create(
                model=assistant.model,
                messages=self.build_messages(assistant, history),
                max_tokens=self.max_tokens_for(assistant),
                stream=True,
            )

            async for chunk in stream_response:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield StreamChunk(
                        content=chunk.choices[0].delta.content,
                        model=chunk.model,
                    )

                if chunk.choices and chunk.choices[0].finish_reason:
                    yield StreamChunk(
                        content="",
                        model=chunk.model,
                        finish_reason=chunk.choices[0].finish_reason
                    )

        except AuthenticationError as auth_error:
            logger.warning("OpenAI authentication failed", stage="OPENAI.ERR", error=str(auth_error))
            raise ProviderCredentialsError(
                message="Invalid OpenAI API key",
                details={"backend": self.name}
            ) from auth_error

        except RateLimitError as rate_error:
            logger.warning("OpenAI rate limit exceeded", stage="OPENAI.ERR", error=str(rate_error))
            raise ProviderRateLimitError(
                message=f"OpenAI rate limit or quota exceeded: {rate_error.message}",
                details={"backend": self.name, "code": rate_error.code}
            ) from rate_error

        except APIConnectionError as conn_error:
            # The SDK message is generic; the transport error carries the description
            description = str(conn_error.__cause__ or conn_error) or type(conn_error).__name__
            logger.warning("OpenAI connection failed", stage="OPENAI.ERR", error=description)
            raise ProviderConnectionError(
                message=description,
                details={"backend": self.name}
            ) from conn_error

        except APIError as api_error:
            logger.error("OpenAI API error", stage="OPENAI.ERR", error=str(api_error))
            raise ProviderError(
                message=f"OpenAI API returned an error: {api_error.message}",
                details={"backend": self.name, "code": api_error.code}
            ) from api_error

        finally:
            await client.close()
