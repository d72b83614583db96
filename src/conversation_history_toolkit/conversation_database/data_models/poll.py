"""
Poll data model and storage interface.

Polls are produced from a conversation by the poll-creation flow and are only
referenced here, never owned. The relation is 1:1 by convention: a conversation
holds at most one 'linked_poll_id' and a poll can be found from the id of the
conversation that created it.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import AwareDatetime, BaseModel, Field


class Poll(BaseModel):
    id: str
    title: str = ""
    conversation_id: str | None = None
    created_at: AwareDatetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class PollDatabase(ABC):
    """Abstract repository for 'Poll' records."""

    @abstractmethod
    async def get_poll(self, poll_id: str) -> Poll | None:
        pass

    @abstractmethod
    async def find_poll_by_conversation_id(self, conversation_id: str) -> Poll | None:
        pass

    @abstractmethod
    async def create_poll(self, poll: Poll) -> Poll:
        pass

    @abstractmethod
    async def delete_poll(self, poll_id: str) -> None:
        pass
