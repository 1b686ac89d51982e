"""
Backend Registry

Registers the language-model backends with the provider factory during
worker startup.

Architectural Decision: Centralized provider registration
- Single location for all backend configurations
- No API keys here: every user brings their own, resolved per run
- USE_FAKE_LLM swaps every backend for the scripted fake provider
"""

from replygen.core.config.constants import Backend
from replygen.core.config.settings import get_settings
from replygen.core.logging.logger import get_logger
from replygen.llm_stream.providers.anthropic_provider import AnthropicProvider
from replygen.llm_stream.providers.base_provider import (
    ProviderConfig,
    ProviderFactory,
    get_provider_factory,
)
from replygen.llm_stream.providers.fake_provider import FakeProvider
from replygen.llm_stream.providers.openai_provider import OpenAIProvider

logger = get_logger(__name__)


def register_providers(factory: ProviderFactory | None = None) -> ProviderFactory:
    """
    Register every backend with the factory.

    Args:
        factory: Optional ProviderFactory instance. If None, uses global factory.

    Returns:
        The populated factory
    """
    settings = get_settings()
    factory = factory or get_provider_factory()

    if settings.llm.USE_FAKE_LLM:
        for backend in Backend:
            factory.register(
                backend,
                FakeProvider,
                ProviderConfig(name=backend.value, base_url="fake-url"),
            )
        logger.info("Registered fake provider for every backend", stage="3.F.2")
        return factory

    factory.register(
        Backend.OPENAI,
        OpenAIProvider,
        ProviderConfig(
            name=Backend.OPENAI.value,
            base_url=settings.llm.OPENAI_BASE_URL,
            timeout=settings.llm.LLM_TIMEOUT,
            default_max_tokens=settings.llm.LLM_DEFAULT_MAX_TOKENS,
        ),
    )

    factory.register(
        Backend.ANTHROPIC,
        AnthropicProvider,
        ProviderConfig(
            name=Backend.ANTHROPIC.value,
            base_url=settings.llm.ANTHROPIC_BASE_URL,
            timeout=settings.llm.LLM_TIMEOUT,
            default_max_tokens=settings.llm.LLM_DEFAULT_MAX_TOKENS,
        ),
    )

    logger.info("Registered OpenAI and Anthropic providers", stage="3.F.2")
    return factory
