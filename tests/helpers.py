"""
Test helpers: fixed clock, owner id and failure-injecting stores.

'FlakyConversationStorage' and 'FlakyPollDatabase' fail chosen calls so that
cascade delete failure and rollback paths can be exercised without a real
backend.
"""

from datetime import datetime, timezone
from typing import Any

from conversation_history_toolkit.conversation_database.data_models.conversation import Conversation
from conversation_history_toolkit.conversation_database.data_models.message import Message
from conversation_history_toolkit.conversation_database.in_memory import (
    InMemoryConversationStorage,
    InMemoryPollDatabase,
)

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
OWNER = "user-1"


class StoreFailure(RuntimeError):
    pass


class FlakyConversationStorage(InMemoryConversationStorage):
    """
    In-memory storage whose listed methods raise 'StoreFailure'.

    With 'partial_message_delete' set, 'delete_messages' removes the first
    message before failing, like a backend that dies half way through.
    """

    def __init__(self, *args: Any, fail_on: set[str] | None = None, partial_message_delete: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_on = set(fail_on or ())
        self.partial_message_delete = partial_message_delete
        self.calls: list[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise StoreFailure(f"{name} failed")

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        self._check("get_conversation")
        return await super().get_conversation(conversation_id)

    async def list_conversations(self, owner_id: str) -> list[Conversation]:
        self._check("list_conversations")
        return await super().list_conversations(owner_id)

    async def create_conversation(self, conversation: Conversation) -> Conversation:
        self._check("create_conversation")
        return await super().create_conversation(conversation)

    async def update_conversation(self, conversation: Conversation) -> Conversation:
        self._check("update_conversation")
        return await super().update_conversation(conversation)

    async def delete_conversation(self, conversation_id: str) -> None:
        self._check("delete_conversation")
        await super().delete_conversation(conversation_id)

    async def get_messages(self, conversation_id: str) -> list[Message]:
        self._check("get_messages")
        return await super().get_messages(conversation_id)

    async def create_messages(self, messages: list[Message]) -> list[Message]:
        self._check("create_messages")
        return await super().create_messages(messages)

    async def delete_messages(self, conversation_id: str) -> None:
        if self.partial_message_delete and "delete_messages" in self.fail_on:
            stored = self._messages.get(conversation_id, {})
            if stored:
                stored.pop(next(iter(stored)))
        self._check("delete_messages")
        await super().delete_messages(conversation_id)

    @property
    def mutations(self) -> list[str]:
        return [call for call in self.calls if call.split("_")[0] in {"create", "update", "delete"}]


class FlakyPollDatabase(InMemoryPollDatabase):
    def __init__(self, *args: Any, fail_on: set[str] | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_on = set(fail_on or ())
        self.calls: list[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise StoreFailure(f"{name} failed")

    async def get_poll(self, poll_id):
        self._check("get_poll")
        return await super().get_poll(poll_id)

    async def find_poll_by_conversation_id(self, conversation_id):
        self._check("find_poll_by_conversation_id")
        return await super().find_poll_by_conversation_id(conversation_id)

    async def create_poll(self, poll):
        self._check("create_poll")
        return await super().create_poll(poll)

    async def delete_poll(self, poll_id):
        self._check("delete_poll")
        await super().delete_poll(poll_id)
