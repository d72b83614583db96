"""
In-memory 'ConversationStorage' backend.

Useful as a local cache stand-in and in tests. Records are deep-copied on the
way in and on the way out so that callers never mutate stored state through a
returned object, which is what a real persisted store would guarantee.
"""

from conversation_history_toolkit.conversation_database.data_models.conversation import (
    Conversation,
    ConversationStorage,
)
from conversation_history_toolkit.conversation_database.data_models.message import Message


class InMemoryConversationStorage(ConversationStorage):
    def __init__(
        self,
        conversations: list[Conversation] | None = None,
        messages: list[Message] | None = None,
    ) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._messages: dict[str, dict[str, Message]] = {}
        for conversation in conversations or []:
            self._conversations[conversation.id] = conversation.model_copy(deep=True)
        for message in messages or []:
            self._messages.setdefault(message.conversation_id, {})[message.id] = message.model_copy(deep=True)

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        conversation = self._conversations.get(conversation_id)
        return conversation.model_copy(deep=True) if conversation else None

    async def list_conversations(self, owner_id: str) -> list[Conversation]:
        return [
            conversation.model_copy(deep=True)
            for conversation in self._conversations.values()
            if conversation.owner_id == owner_id
        ]

    async def create_conversation(self, conversation: Conversation) -> Conversation:
        if conversation.id in self._conversations:
            raise ValueError(f"Conversation with id {conversation.id} already exists")
        self._conversations[conversation.id] = conversation.model_copy(deep=True)
        return conversation.model_copy(deep=True)

    async def update_conversation(self, conversation: Conversation) -> Conversation:
        if conversation.id not in self._conversations:
            raise ValueError(f"Conversation with id {conversation.id} not found")
        self._conversations[conversation.id] = conversation.model_copy(deep=True)
        return conversation.model_copy(deep=True)

    async def delete_conversation(self, conversation_id: str) -> None:
        self._conversations.pop(conversation_id, None)

    async def get_messages(self, conversation_id: str) -> list[Message]:
        stored = self._messages.get(conversation_id, {})
        return [message.model_copy(deep=True) for message in sorted(stored.values(), key=lambda m: m.timestamp)]

    async def create_messages(self, messages: list[Message]) -> list[Message]:
        for message in messages:
            self._messages.setdefault(message.conversation_id, {})[message.id] = message.model_copy(deep=True)
        return [message.model_copy(deep=True) for message in messages]

    async def delete_messages(self, conversation_id: str) -> None:
        self._messages.pop(conversation_id, None)
