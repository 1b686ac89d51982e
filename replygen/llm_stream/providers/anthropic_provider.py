#!/usr/bin/env python3
"""
Anthropic Provider Implementation

Streams the Anthropic Messages API over server-sent events with httpx.

Architectural Decision: Plain HTTP client instead of an SDK
- One pooled httpx.AsyncClient shared by every run (keys travel per request)
- Events are parsed with orjson; malformed events are a response error
- HTTP status codes map onto the internal provider exception hierarchy
"""

from collections.abc import AsyncGenerator
from typing import Any

import httpx
import orjson

from replygen.core.config.settings import get_settings
from replygen.core.exceptions import (
    ProviderConnectionError,
    ProviderCredentialsError,
    ProviderError,
    ProviderRateLimitError,
    ProviderResponseError,
)
from replygen.core.logging import get_logger
from replygen.domain.models import Assistant, HistoryEntry
from replygen.llm_stream.providers.base_provider import BaseProvider, ProviderConfig, StreamChunk

logger = get_logger(__name__)

MESSAGES_PATH = "/v1/messages"

CREDENTIAL_STATUS_CODES = {401, 403}
# 402 billing, 429 throttling, 529 overloaded
RATE_LIMIT_STATUS_CODES = {402, 429, 529}

CREDENTIAL_ERROR_TYPES = {"authentication_error", "permission_error"}
RATE_LIMIT_ERROR_TYPES = {"rate_limit_error", "overloaded_error", "billing_error"}


class AnthropicProvider(BaseProvider):
    """
    Anthropic Messages API backend.

    STAGE-ANTHROPIC: Anthropic provider operations
    """

    def __init__(self, config: ProviderConfig, api_version: str | None = None):
        super().__init__(config)
        self.api_version = api_version or get_settings().llm.ANTHROPIC_API_VERSION
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=httpx.Timeout(self.config.timeout),
            )
        return self._client

    def build_payload(self, assistant: Assistant, history: list[HistoryEntry]) -> dict[str, Any]:
        """Messages API request body; instructions travel in the top-level system field."""
        payload: dict[str, Any] = {
            "model": assistant.model,
            "max_tokens": self.max_tokens_for(assistant),
            "stream": True,
            "messages": [
                {"role": entry.role, "content": entry.content}
                for entry in history
                if entry.role != "system"
            ],
        }
        system_parts = [entry.content for entry in history if entry.role == "system"]
        if assistant.instructions and assistant.instructions not in system_parts:
            system_parts.insert(0, assistant.instructions)
        if system_parts:
            payload["system"] = "\n\n".join(system_parts)
        return payload

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "x-api-key": api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
            "accept": "text/event-stream",
        }

    async def _stream_internal(
        self,
        api_key: str,
        assistant: Assistant,
        history: list[HistoryEntry],
    ) -> AsyncGenerator[StreamChunk, None]:
        """
        Stream a Messages API response.

        STAGE-ANTHROPIC.STREAM: Streaming execution

        Raises:
            ProviderCredentialsError: For rejected API keys
            ProviderRateLimitError: For throttling, overload and billing errors
            ProviderConnectionError: For transport failures and timeouts
            ProviderResponseError: For malformed response bodies
            ProviderError: For any other HTTP error
        """
        client = self._get_client()
        try:
            async with client.stream(
                "POST",
                MESSAGES_PATH,
                headers=self._headers(api_key),
                content=orjson.dumps(self.build_payload(assistant, history)),
            ) as response:
                if response.status_code >= 400:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise self._http_error(response.status_code, body)

                content_type = response.headers.get("content-type", "")
                if "text/event-stream" not in content_type:
                    # Non-streamed reply: surfaced as the stream's final text
                    body = orjson.loads(await response.aread())
                    yield StreamChunk(
                        content="",
                        model=body.get("model"),
                        finish_reason=body.get("stop_reason"),
                        full_text=self._text_from_message(body),
                    )
                    return

                async for line in response.aiter_lines():
                    chunk = self._parse_event_line(line, assistant.model)
                    if chunk is not None:
                        yield chunk

        except httpx.TransportError as transport_error:
            logger.warning("Anthropic connection failed", stage="ANTHROPIC.ERR", error=str(transport_error))
            raise ProviderConnectionError(
                message=str(transport_error) or type(transport_error).__name__,
                details={"backend": self.name}
            ) from transport_error

        except orjson.JSONDecodeError as decode_error:
            logger.warning("Anthropic response could not be parsed", stage="ANTHROPIC.ERR", error=str(decode_error))
            raise ProviderResponseError(
                message=f"Unparseable Anthropic response: {decode_error}",
                details={"backend": self.name}
            ) from decode_error

    def _parse_event_line(self, line: str, model: str) -> StreamChunk | None:
        """
        Turn one SSE line into a chunk.

        Only ``data:`` lines carry payloads; ``event:`` lines repeat the
        payload's type and are ignored.
        """
        if not line.startswith("data:"):
            return None

        data = line[len("data:"):].strip()
        if not data:
            return None

        event = orjson.loads(data)
        event_type = event.get("type")

        if event_type == "content_block_delta":
            delta = event.get("delta") or {}
            text = delta.get("text")
            if text:
                return StreamChunk(content=text, model=model)
            return None

        if event_type == "message_delta":
            stop_reason = (event.get("delta") or {}).get("stop_reason")
            if stop_reason:
                return StreamChunk(content="", model=model, finish_reason=stop_reason)
            return None

        if event_type == "error":
            error = event.get("error")
            raise self._stream_error(error if isinstance(error, dict) else {"message": error})

        return None

    @staticmethod
    def _text_from_message(body: dict[str, Any]) -> str:
        return "".join(
            block.get("text", "")
            for block in body.get("content") or []
            if block.get("type") == "text"
        )

    def _http_error(self, status_code: int, body: str) -> ProviderError:
        details = {"backend": self.name, "status_code": status_code}
        message = self._error_message(body) or f"HTTP {status_code}"

        if status_code in CREDENTIAL_STATUS_CODES:
            logger.warning("Anthropic rejected credentials", stage="ANTHROPIC.ERR", status_code=status_code)
            return ProviderCredentialsError(message=message, details=details)

        if status_code in RATE_LIMIT_STATUS_CODES or "credit balance" in body.lower():
            logger.warning("Anthropic rate limit or quota error", stage="ANTHROPIC.ERR", status_code=status_code)
            return ProviderRateLimitError(message=message, details=details)

        logger.error("Anthropic API error", stage="ANTHROPIC.ERR", status_code=status_code, error=message)
        return ProviderError(message=f"Anthropic API returned an error: {message}", details=details)

    def _stream_error(self, error: dict[str, Any]) -> ProviderError:
        error_type = error.get("type", "")
        message = error.get("message") or error_type or "stream error"
        details = {"backend": self.name, "error_type": error_type}

        if error_type in CREDENTIAL_ERROR_TYPES:
            return ProviderCredentialsError(message=message, details=details)
        if error_type in RATE_LIMIT_ERROR_TYPES:
            return ProviderRateLimitError(message=message, details=details)
        return ProviderError(message=f"Anthropic stream error: {message}", details=details)

    @staticmethod
    def _error_message(body: str) -> str | None:
        try:
            parsed = orjson.loads(body)
        except orjson.JSONDecodeError:
            return body[:200] or None
        if not isinstance(parsed, dict):
            return None
        error = parsed.get("error")
        if isinstance(error, dict):
            return error.get("message")
        return str(error) if error else None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
