from .loader import load_message_store
from .memory_store import InMemoryMessageStore

__all__ = ["InMemoryMessageStore", "load_message_store"]
