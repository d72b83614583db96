"""
Message data model and storage interface.

Messages are owned exclusively by their conversation: they are created by the
chat flow and only ever removed together with the conversation, through the
cascade delete engine. 'create_messages' exists so that a failed cascade can put
backed-up messages back in place.
"""

from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Any

from pydantic import AwareDatetime, BaseModel, Field


class MessageRole(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single message within a conversation."""

    id: str
    conversation_id: str
    role: MessageRole
    content: str
    timestamp: AwareDatetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class MessageDatabase(ABC):
    """Abstract repository for 'Message' records."""

    @abstractmethod
    async def get_messages(self, conversation_id: str) -> list[Message]:
        pass

    @abstractmethod
    async def create_messages(self, messages: list[Message]) -> list[Message]:
        pass

    @abstractmethod
    async def delete_messages(self, conversation_id: str) -> None:
        pass
