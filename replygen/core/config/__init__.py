"""
Configuration Module

Components:
-----------
- **settings.py**: Pydantic-based configuration with environment variable loading
- **constants.py**: Stage identifiers, backend enum, coordination-store keys

Usage:
------
```python
from replygen.core.config import get_settings
from replygen.core.config.constants import Backend, Stage

settings = get_settings()
throttle = settings.generation.BROADCAST_THROTTLE_SECONDS
```
"""

from replygen.core.config.constants import (
    CANCELLED_MESSAGE_KEY,
    Backend,
    Stage,
    latest_assistant_message_key,
)
from replygen.core.config.settings import Settings, get_settings, reload_settings

__all__ = [
    "Backend",
    "CANCELLED_MESSAGE_KEY",
    "Settings",
    "Stage",
    "get_settings",
    "latest_assistant_message_key",
    "reload_settings",
]
