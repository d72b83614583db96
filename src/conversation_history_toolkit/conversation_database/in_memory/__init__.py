from conversation_history_toolkit.conversation_database.in_memory.conversation_storage import (
    InMemoryConversationStorage,
)
from conversation_history_toolkit.conversation_database.in_memory.poll_database import InMemoryPollDatabase

__all__ = ["InMemoryConversationStorage", "InMemoryPollDatabase"]
