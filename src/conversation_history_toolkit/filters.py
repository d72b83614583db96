"""
Filtering and summary statistics over a merged conversation list.

Filters combine with AND; inside 'status' and 'tags' any listed value matches.
'date_from' / 'date_to' bound 'created_at' inclusively.
"""

from collections.abc import Iterable

from pydantic import AwareDatetime, BaseModel

from conversation_history_toolkit.conversation_database.data_models.conversation import (
    Conversation,
    ConversationStatus,
)


class ConversationFilters(BaseModel):
    status: list[ConversationStatus] | None = None
    is_favorite: bool | None = None
    has_linked_poll: bool | None = None
    date_from: AwareDatetime | None = None
    date_to: AwareDatetime | None = None
    tags: list[str] | None = None


class ConversationStats(BaseModel):
    total_conversations: int
    active_conversations: int
    completed_conversations: int
    archived_conversations: int
    total_messages: int
    average_messages_per_conversation: float
    polls_generated: int


def matches(conversation: Conversation, filters: ConversationFilters) -> bool:
    if filters.status and conversation.status not in filters.status:
        return False
    if filters.is_favorite is not None and conversation.is_favorite != filters.is_favorite:
        return False
    if filters.has_linked_poll is not None and (conversation.poll_reference is not None) != filters.has_linked_poll:
        return False
    if filters.date_from and conversation.created_at < filters.date_from:
        return False
    if filters.date_to and conversation.created_at > filters.date_to:
        return False
    if filters.tags and not conversation.tags.intersection(filters.tags):
        return False
    return True


def filter_conversations(
    conversations: Iterable[Conversation], filters: ConversationFilters | None = None
) -> list[Conversation]:
    if filters is None:
        return list(conversations)
    return [conversation for conversation in conversations if matches(conversation, filters)]


def compute_stats(conversations: Iterable[Conversation]) -> ConversationStats:
    conversations = list(conversations)
    total = len(conversations)
    total_messages = sum(conversation.message_count for conversation in conversations)

    def count(status: ConversationStatus) -> int:
        return sum(1 for conversation in conversations if conversation.status == status)

    return ConversationStats(
        total_conversations=total,
        active_conversations=count(ConversationStatus.ACTIVE),
        completed_conversations=count(ConversationStatus.COMPLETED),
        archived_conversations=count(ConversationStatus.ARCHIVED),
        total_messages=total_messages,
        average_messages_per_conversation=total_messages / total if total else 0.0,
        polls_generated=sum(1 for conversation in conversations if conversation.poll_reference is not None),
    )
