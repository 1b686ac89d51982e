"""
Unit Tests for the Message Store Loader

The worker must refuse to start unless MESSAGE_STORE_FACTORY names a
callable that builds a MessageStore.
"""

import pytest

from replygen.core.exceptions import ConfigurationError
from replygen.infrastructure.storage import InMemoryMessageStore, load_message_store


@pytest.mark.unit
class TestLoadMessageStore:
    def test_builds_store_from_import_path(self):
        store = load_message_store("replygen.infrastructure.storage.memory_store:InMemoryMessageStore")

        assert isinstance(store, InMemoryMessageStore)

    @pytest.mark.parametrize("import_path", [None, ""])
    def test_unset_path_fails_fast(self, import_path):
        with pytest.raises(ConfigurationError) as exc_info:
            load_message_store(import_path)

        assert exc_info.value.details["setting"] == "MESSAGE_STORE_FACTORY"

    @pytest.mark.parametrize(
        "import_path",
        [
            "replygen.infrastructure.storage.memory_store",
            "replygen.infrastructure.storage.missing_module:build",
            "replygen.infrastructure.storage.memory_store:build_store",
        ],
    )
    def test_unusable_path_raises(self, import_path):
        with pytest.raises(ConfigurationError):
            load_message_store(import_path)

    def test_factory_must_return_message_store(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_message_store("collections:OrderedDict")

        assert "OrderedDict" in exc_info.value.message
