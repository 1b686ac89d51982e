"""
Exception Module

Structured exception hierarchy for the reply generation service.

Module Structure:
-----------------
- **base.py**: ReplyGenError base class + ConfigurationError
- **provider.py**: language-model backend exceptions
- **generation.py**: orchestration lifecycle exceptions
- **store.py**: coordination store, message store and queue exceptions

Usage:
------
```python
from replygen.core.exceptions import ProviderRateLimitError, WaitForPreviousError
```
"""

from replygen.core.exceptions.base import ConfigurationError, ReplyGenError
from replygen.core.exceptions.generation import (
    AssistantNotFoundError,
    FinalizationError,
    GenerationError,
    MessageNotFoundError,
    ResponseCancelledError,
    RetriesExhaustedError,
    WaitForPreviousError,
)
from replygen.core.exceptions.provider import (
    ProviderConnectionError,
    ProviderCredentialsError,
    ProviderError,
    ProviderRateLimitError,
    ProviderResponseError,
)
from replygen.core.exceptions.store import (
    CoordinationStoreError,
    MessageStoreError,
    QueueError,
)

__all__ = [
    # Base
    "ReplyGenError",
    "ConfigurationError",
    # Provider
    "ProviderError",
    "ProviderCredentialsError",
    "ProviderRateLimitError",
    "ProviderConnectionError",
    "ProviderResponseError",
    # Generation
    "GenerationError",
    "WaitForPreviousError",
    "ResponseCancelledError",
    "FinalizationError",
    "RetriesExhaustedError",
    "MessageNotFoundError",
    "AssistantNotFoundError",
    # Stores
    "CoordinationStoreError",
    "MessageStoreError",
    "QueueError",
]
