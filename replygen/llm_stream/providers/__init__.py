from .anthropic_provider import AnthropicProvider
from .base_provider import (
    BaseProvider,
    ChatCompletionStream,
    ProviderConfig,
    ProviderFactory,
    StreamChunk,
    get_provider_factory,
    resolve_credentials,
)
from .fake_provider import FakeProvider
from .openai_provider import OpenAIProvider
from .registry import register_providers

__all__ = [
    "AnthropicProvider",
    "BaseProvider",
    "ChatCompletionStream",
    "FakeProvider",
    "OpenAIProvider",
    "ProviderConfig",
    "ProviderFactory",
    "StreamChunk",
    "get_provider_factory",
    "register_providers",
    "resolve_credentials",
]
