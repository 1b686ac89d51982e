from .models import (
    Assistant,
    BackendCredentials,
    BroadcastHints,
    Conversation,
    Disposition,
    GenerationOutcome,
    HistoryEntry,
    Message,
    Role,
    User,
    utc_now,
)

__all__ = [
    "Assistant",
    "BackendCredentials",
    "BroadcastHints",
    "Conversation",
    "Disposition",
    "GenerationOutcome",
    "HistoryEntry",
    "Message",
    "Role",
    "User",
    "utc_now",
]
