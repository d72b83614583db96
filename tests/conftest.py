"""
Shared fixtures for the test suite.

Factories build conversations and messages anchored at 'BASE_TIME'; the
failure-injecting stores live in 'helpers'.
"""

from datetime import timedelta
from itertools import count
from typing import Any

import pytest

from conversation_history_toolkit.conversation_database.data_models.conversation import Conversation
from conversation_history_toolkit.conversation_database.data_models.message import Message, MessageRole
from helpers import BASE_TIME, OWNER


_message_ids = count(1)


@pytest.fixture
def make_conversation():
    def _make(conversation_id: str, **overrides: Any) -> Conversation:
        minutes = overrides.pop("minutes", 0)
        fields: dict[str, Any] = {
            "id": conversation_id,
            "title": f"Conversation {conversation_id}",
            "owner_id": OWNER,
            "created_at": BASE_TIME + timedelta(minutes=minutes),
            "updated_at": BASE_TIME + timedelta(minutes=minutes),
        }
        fields.update(overrides)
        return Conversation(**fields)

    return _make


@pytest.fixture
def make_messages():
    def _make(conversation_id: str, number: int) -> list[Message]:
        return [
            Message(
                id=f"msg-{next(_message_ids)}",
                conversation_id=conversation_id,
                role=MessageRole.USER if index % 2 == 0 else MessageRole.ASSISTANT,
                content=f"message {index}",
                timestamp=BASE_TIME + timedelta(seconds=index),
            )
            for index in range(number)
        ]

    return _make
