from conversation_history_toolkit.conversation_database.data_models.conversation import (
    CONVERSATION_LIMITS,
    Conversation,
    ConversationDatabase,
    ConversationStatus,
    ConversationStorage,
)
from conversation_history_toolkit.conversation_database.data_models.message import Message, MessageDatabase, MessageRole
from conversation_history_toolkit.conversation_database.data_models.poll import Poll, PollDatabase

__all__ = [
    "CONVERSATION_LIMITS",
    "Conversation",
    "ConversationDatabase",
    "ConversationStatus",
    "ConversationStorage",
    "Message",
    "MessageDatabase",
    "MessageRole",
    "Poll",
    "PollDatabase",
]
