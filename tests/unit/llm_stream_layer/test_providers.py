"""
Unit Tests for LLM Providers

Tests backend selection, the provider factory, stream semantics shared by all
adapters, the fake provider and backend registration.
"""


import pytest

from replygen.core.config.constants import Backend
from replygen.core.config.settings import reload_settings
from replygen.core.exceptions import ProviderCredentialsError
from replygen.domain.models import Assistant, BackendCredentials, HistoryEntry, User
from replygen.llm_stream.providers.anthropic_provider import AnthropicProvider
from replygen.llm_stream.providers.base_provider import (
    ProviderConfig,
    ProviderFactory,
    StreamChunk,
    resolve_credentials,
)
from replygen.llm_stream.providers.fake_provider import FakeProvider
from replygen.llm_stream.providers.openai_provider import OpenAIProvider
from replygen.llm_stream.providers.registry import register_providers
from tests.test_fixtures import ScriptedProvider


def _assistant(model="gpt-4o", backend=None, max_tokens=None):
    return Assistant(id=1, user_id=1, name="Helper", model=model, backend=backend, max_tokens=max_tokens)


def _config(name="fake"):
    return ProviderConfig(name=name, base_url="fake-url")


CREDENTIALS = BackendCredentials(backend=Backend.OPENAI, api_key="sk-test")
HISTORY = [HistoryEntry(role="user", content="Hello there")]


@pytest.mark.unit
class TestBackendSelection:
    @pytest.mark.parametrize(
        "model, expected",
        [
            ("gpt-4o", Backend.OPENAI),
            ("gpt-3.5-turbo", Backend.OPENAI),
            ("claude-3-opus-20240229", Backend.ANTHROPIC),
            ("some-other-model", Backend.ANTHROPIC),
        ],
    )
    def test_backend_follows_model_name(self, model, expected):
        assert ProviderFactory.select_backend(_assistant(model=model)) == expected

    def test_explicit_backend_wins(self):
        assistant = _assistant(model="gpt-4o", backend=Backend.ANTHROPIC)

        assert ProviderFactory.select_backend(assistant) == Backend.ANTHROPIC

    def test_resolve_credentials_picks_backend_key(self):
        user = User(id=1, openai_key="sk-openai", anthropic_key="sk-ant")

        assert resolve_credentials(user, Backend.OPENAI).api_key == "sk-openai"
        assert resolve_credentials(user, Backend.ANTHROPIC).api_key == "sk-ant"

    def test_missing_key_is_not_configured(self):
        user = User(id=1, openai_key="")

        assert resolve_credentials(user, Backend.OPENAI).configured is False
        assert resolve_credentials(user, Backend.ANTHROPIC).configured is False


@pytest.mark.unit
class TestProviderFactory:
    """Test suite for ProviderFactory."""

    @pytest.fixture
    def factory(self):
        return ProviderFactory()

    def test_get_available_providers(self, factory):
        factory.register(Backend.OPENAI, FakeProvider, _config("openai"))

        assert factory.get_available() == [Backend.OPENAI]

    def test_get_creates_adapter_once(self, factory):
        factory.register(Backend.OPENAI, FakeProvider, _config("openai"))

        provider = factory.get(Backend.OPENAI)

        assert isinstance(provider, FakeProvider)
        assert provider.name == "openai"
        assert factory.get("openai") is provider

    def test_get_unknown_provider_raises(self, factory):
        with pytest.raises(ValueError):
            factory.get(Backend.ANTHROPIC)

    def test_reregistering_replaces_adapter(self, factory):
        factory.register(Backend.OPENAI, FakeProvider, _config("openai"))
        first = factory.get(Backend.OPENAI)

        factory.register(Backend.OPENAI, FakeProvider, _config("openai"))

        assert factory.get(Backend.OPENAI) is not first

    def test_for_assistant(self, factory):
        factory.register(Backend.ANTHROPIC, FakeProvider, _config("anthropic"))

        backend, provider = factory.for_assistant(_assistant(model="claude-3-haiku"))

        assert backend == Backend.ANTHROPIC
        assert provider.name == "anthropic"

    async def test_close_all_drops_adapters(self, factory):
        factory.register(Backend.OPENAI, FakeProvider, _config("openai"))
        first = factory.get(Backend.OPENAI)

        await factory.close_all()

        assert factory.get(Backend.OPENAI) is not first


@pytest.mark.unit
class TestChatCompletionStream:
    async def test_missing_credentials_raise_on_iteration(self):
        provider = FakeProvider(_config(), chunks=["a"])
        stream = provider.stream(BackendCredentials(backend=Backend.OPENAI), _assistant(), HISTORY)

        with pytest.raises(ProviderCredentialsError) as exc_info:
            await stream.__anext__()

        assert exc_info.value.backend == "fake"
        assert provider.calls == []

    async def test_stop_ends_delivery(self):
        provider = FakeProvider(_config(), chunks=["one", "two", "three"])
        stream = provider.stream(CREDENTIALS, _assistant(), HISTORY)

        first = await stream.__anext__()
        await stream.stop()
        await stream.stop()

        remaining = [chunk async for chunk in stream]
        assert first.content == "one"
        assert remaining == []
        assert stream.stopped is True

    async def test_stop_closes_backend_generator(self):
        provider = ScriptedProvider(chunks=["one", "two"])
        stream = provider.stream(CREDENTIALS, _assistant(), HISTORY)

        await stream.__anext__()
        await stream.stop()

        assert provider.closed is True
        assert provider.delivered == ["one"]

    async def test_final_text_is_recorded(self):
        provider = FakeProvider(_config(), chunks=[], final_text="Whole reply")
        stream = provider.stream(CREDENTIALS, _assistant(), HISTORY)

        chunks = [chunk async for chunk in stream]

        assert chunks[-1].finish_reason == "stop"
        assert stream.final_text == "Whole reply"

    async def test_stream_is_finite(self):
        provider = FakeProvider(_config(), chunks=["a"])
        stream = provider.stream(CREDENTIALS, _assistant(), HISTORY)

        assert len([chunk async for chunk in stream]) == 2
        assert [chunk async for chunk in stream] == []


@pytest.mark.unit
class TestFakeProvider:
    """Test suite for FakeProvider."""

    async def test_streams_lorem_ipsum_by_default(self):
        provider = FakeProvider(_config())

        chunks = [chunk async for chunk in provider.stream(CREDENTIALS, _assistant(), HISTORY)]

        assert all(isinstance(chunk, StreamChunk) for chunk in chunks)
        assert all(chunk.content for chunk in chunks[:-1])
        assert chunks[-1].finish_reason == "stop"
        assert "".join(chunk.content for chunk in chunks).startswith("Lorem ipsum")

    async def test_records_calls(self):
        provider = FakeProvider(_config(), chunks=["x"])

        [chunk async for chunk in provider.stream(CREDENTIALS, _assistant(model="gpt-4"), HISTORY)]

        assert provider.calls == [{"model": "gpt-4", "history": HISTORY}]

    async def test_raises_scripted_error_after_chunks(self):
        provider = FakeProvider(_config(), chunks=["partial"], error=RuntimeError("boom"))
        received = []

        with pytest.raises(RuntimeError):
            async for chunk in provider.stream(CREDENTIALS, _assistant(), HISTORY):
                received.append(chunk.content)

        assert received == ["partial"]

    def test_max_tokens_prefers_assistant_setting(self):
        provider = FakeProvider(ProviderConfig(name="fake", base_url="u", default_max_tokens=512))

        assert provider.max_tokens_for(_assistant()) == 512
        assert provider.max_tokens_for(_assistant(max_tokens=64)) == 64


@pytest.mark.unit
class TestRegisterProviders:
    def test_registers_real_backends(self):
        factory = register_providers(ProviderFactory())

        assert isinstance(factory.get(Backend.OPENAI), OpenAIProvider)
        assert isinstance(factory.get(Backend.ANTHROPIC), AnthropicProvider)

    def test_fake_llm_replaces_every_backend(self):
        reload_settings(ENVIRONMENT="test", USE_FAKE_LLM=True)

        factory = register_providers(ProviderFactory())

        for backend in Backend:
            provider = factory.get(backend)
            assert isinstance(provider, FakeProvider)
            assert provider.name == backend.value
