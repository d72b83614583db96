"""
Conversation history toolkit.

Keeps one consistent list of conversations across a remote store and a local
cache: merging both into a deduplicated view, ordering it favorites-first, and
deleting a conversation with its messages and linked poll as one unit.

    from conversation_history_toolkit import ConversationHistoryController
"""

from loguru import logger

from conversation_history_toolkit.cascade import CascadeDeleteEngine, DeleteCascadeResult, DeletionState
from conversation_history_toolkit.controller import ConversationHistoryController
from conversation_history_toolkit.conversation_database import merge_conversations, same_entity
from conversation_history_toolkit.conversation_database.data_models import (
    Conversation,
    ConversationStatus,
    ConversationStorage,
    Message,
    MessageRole,
    Poll,
    PollDatabase,
)
from conversation_history_toolkit.filters import ConversationFilters, ConversationStats, compute_stats
from conversation_history_toolkit.log import configure_logging
from conversation_history_toolkit.sorting import SortCriteria, SortOptions, SortOrder, sort_conversations

logger.disable("conversation_history_toolkit")

__all__ = [
    "CascadeDeleteEngine",
    "Conversation",
    "ConversationFilters",
    "ConversationHistoryController",
    "ConversationStats",
    "ConversationStatus",
    "ConversationStorage",
    "DeleteCascadeResult",
    "DeletionState",
    "Message",
    "MessageRole",
    "Poll",
    "PollDatabase",
    "SortCriteria",
    "SortOptions",
    "SortOrder",
    "compute_stats",
    "configure_logging",
    "merge_conversations",
    "same_entity",
    "sort_conversations",
]
