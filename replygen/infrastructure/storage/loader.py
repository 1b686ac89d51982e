"""
Message Store Loader

The durable store is deployment-specific. The worker names it with
MESSAGE_STORE_FACTORY="package.module:callable" and calls the callable with
no arguments.
"""

import importlib

from replygen.core.exceptions import ConfigurationError
from replygen.core.interfaces import MessageStore
from replygen.core.logging import get_logger

logger = get_logger(__name__)


def load_message_store(import_path: str | None) -> MessageStore:
    """
    Build the MessageStore named by ``import_path``.

    Raises:
        ConfigurationError: The path is unset, malformed or not importable, or
            the callable does not return a MessageStore
    """
    details = {"setting": "MESSAGE_STORE_FACTORY", "value": import_path}
    if not import_path:
        raise ConfigurationError(
            "MESSAGE_STORE_FACTORY is not set; the worker needs a durable MessageStore", details=details
        )

    module_name, _, attribute = import_path.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(
            f"MESSAGE_STORE_FACTORY must look like 'module:callable', got {import_path!r}", details=details
        )

    try:
        factory = getattr(importlib.import_module(module_name), attribute)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot import {import_path}: {e}", details=details) from e

    store = factory()
    if not isinstance(store, MessageStore):
        raise ConfigurationError(
            f"{import_path} returned {type(store).__name__}, not a MessageStore", details=details
        )

    logger.info("Message store loaded", stage="0", store=type(store).__name__)
    return store
