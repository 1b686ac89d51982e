"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the reply generation service.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for magic strings (Redis keys, billing URLs)
- Type-safe enums for stage tracking and backend selection
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for execution tracking and logging)
# ============================================================================


class Stage(str, Enum):
    """
    Generation processing stages for execution tracking.

    Format: {SEQUENCE}_{DESCRIPTIVE_NAME}

    Each stage represents a major phase of one orchestration run.
    """

    # Main generation lifecycle (sequential 0.0 - 5.0)
    LOAD = "0.0_LOAD_RECORDS"
    READINESS = "1.0_READINESS_CHECK"
    CLAIM = "2.0_CLAIM_MESSAGE"
    BACKEND_SELECTION = "3.0_BACKEND_SELECTION"
    LLM_STREAMING = "4.0_LLM_STREAMING"
    FINALIZATION = "5.0_FINALIZATION"

    # Cross-cutting concerns (alphabetic prefixes)
    STALENESS = "S_STALENESS_CHECK"
    BROADCAST = "B_BROADCAST"
    RETRY = "R_RETRY_LOGIC"
    QUEUE = "Q_JOB_QUEUE"


# ============================================================================
# Language-model backends
# ============================================================================


class Backend(str, Enum):
    """
    Supported language-model backends.

    The display name is used in user-facing failure texts.
    """

    OPENAI = "openai"
    ANTHROPIC = "anthropic"

    @property
    def display_name(self) -> str:
        return BACKEND_DISPLAY_NAMES[self]


BACKEND_DISPLAY_NAMES = {
    Backend.OPENAI: "OpenAI",
    Backend.ANTHROPIC: "Anthropic",
}

# Model names with this prefix are served by OpenAI unless overridden
OPENAI_MODEL_PREFIX = "gpt-"

BILLING_URLS = {
    Backend.OPENAI: "https://platform.openai.com/account/billing/overview",
    Backend.ANTHROPIC: "https://console.anthropic.com/settings/plans",
}


# ============================================================================
# Coordination store keys
# ============================================================================

# Global pointer to the most recently cancelled message id (last write wins)
CANCELLED_MESSAGE_KEY = "message-cancelled-id"

# Per-conversation pointer to the newest assistant message id
LATEST_ASSISTANT_MESSAGE_KEY = "conversation-{conversation_id}-latest-assistant_message-id"


def latest_assistant_message_key(conversation_id: int | str) -> str:
    """Build the per-conversation latest-assistant-message key."""
    return LATEST_ASSISTANT_MESSAGE_KEY.format(conversation_id=conversation_id)


# ============================================================================
# Broadcasts
# ============================================================================

HINT_THINKING = "thinking"
HINT_ONLY_SCROLL_DOWN_IF_WAS_BOTTOM = "only_scroll_down_if_was_bottom"
HINT_TIMESTAMP = "timestamp"
HINT_STREAMED = "streamed"
