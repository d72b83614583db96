"""
Conversation data model and storage interface.

A conversation can live in two places at once: the remote store (authoritative,
shared across devices) and the local cache (device-local, written first). A
record created offline gets a temporary local id; once the remote store accepts
it under a new id, the local copy keeps that remote id in 'back_reference_id'.
Older records carried the same link inside 'metadata' ('backReferenceId',
'pollId'), which the 'back_reference' and 'poll_reference' properties still
honour.

The 'ConversationDatabase' ABC is the pluggable storage backend for conversation
records. 'ConversationStorage' bundles it with 'MessageDatabase': each of the
two stores (remote and local) is one 'ConversationStorage'.
"""

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Any

from pydantic import AwareDatetime, BaseModel, Field

from conversation_history_toolkit.conversation_database.data_models.message import MessageDatabase


class ConversationStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


CONVERSATION_LIMITS = {
    "first_message_preview_length": 100,
    "max_title_length": 100,
}

LEGACY_BACK_REFERENCE_KEY = "backReferenceId"
LEGACY_POLL_KEY = "pollId"


class Conversation(BaseModel):
    """
    A single conversation owned by a user.

    'favorite_rank' is only meaningful while 'is_favorite' is true: 1 is the top
    favorite, 2 the next one, and so on. 'message_count' mirrors the number of
    stored messages and is what the activity ordering reads. Timestamps must be
    timezone-aware so they stay comparable across both stores.
    """

    id: str
    title: str
    owner_id: str | None = None
    status: ConversationStatus = ConversationStatus.ACTIVE
    created_at: AwareDatetime
    updated_at: AwareDatetime
    first_message: str = ""
    message_count: int = Field(default=0, ge=0)
    is_favorite: bool = False
    favorite_rank: int | None = Field(default=None, ge=1)
    tags: set[str] = Field(default_factory=set)
    linked_poll_id: str | None = None
    back_reference_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def back_reference(self) -> str | None:
        """Remote id this record was synchronised into, if any."""
        if self.back_reference_id:
            return self.back_reference_id
        legacy = self.metadata.get(LEGACY_BACK_REFERENCE_KEY)
        return legacy if isinstance(legacy, str) and legacy else None

    @property
    def poll_reference(self) -> str | None:
        """Id of the poll generated from this conversation, if any."""
        if self.linked_poll_id:
            return self.linked_poll_id
        legacy = self.metadata.get(LEGACY_POLL_KEY)
        return legacy if isinstance(legacy, str) and legacy else None


class ConversationDatabase(ABC):
    """Abstract repository for 'Conversation' records."""

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        pass

    @abstractmethod
    async def list_conversations(self, owner_id: str) -> list[Conversation]:
        pass

    @abstractmethod
    async def create_conversation(self, conversation: Conversation) -> Conversation:
        pass

    @abstractmethod
    async def update_conversation(self, conversation: Conversation) -> Conversation:
        pass

    @abstractmethod
    async def delete_conversation(self, conversation_id: str) -> None:
        pass


class ConversationStorage(ConversationDatabase, MessageDatabase, ABC):
    """
    One conversation store: the records and the messages they own.

    The remote store and the local cache each implement this contract. The
    cascade delete engine needs both halves from the same backend so that a
    conversation and its messages are always removed from the same place.
    """
