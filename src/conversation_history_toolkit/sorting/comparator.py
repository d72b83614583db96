"""
Unified sort comparator for conversation lists.

Favorites always come first (unless 'favorite_first' is switched off), ordered
by 'favorite_rank' ascending with unranked favorites after ranked ones.
Everything else is ordered by the chosen criteria:

    'activity'   - 'updated_at', with 'message_count' breaking ties between
                   identical timestamps (default).
    'updated_at' - last modification time.
    'created_at' - creation time.
    'title'      - case- and accent-insensitive, numbers compared by value
                   ("Poll 2" before "Poll 10").

'order' applies to the criteria only; rank order is always ascending. The
comparator is a strict weak ordering, so 'sorted' with 'cmp_to_key' gives a
deterministic result for a given input order.
"""

import re
import unicodedata
from collections.abc import Iterable
from enum import StrEnum
from functools import cmp_to_key
from typing import Any

from pydantic import BaseModel

from conversation_history_toolkit.conversation_database.data_models.conversation import Conversation


class SortCriteria(StrEnum):
    ACTIVITY = "activity"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    TITLE = "title"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


class SortOptions(BaseModel):
    criteria: SortCriteria = SortCriteria.ACTIVITY
    order: SortOrder = SortOrder.DESC
    favorite_first: bool = True


_DIGITS = re.compile(r"(\d+)")


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def activity_score(conversation: Conversation) -> tuple[float, int]:
    """Recency first; the message count only matters between identical timestamps."""
    return conversation.updated_at.timestamp(), conversation.message_count


def title_key(title: str) -> tuple[str | int, ...]:
    folded = unicodedata.normalize("NFKD", title.casefold())
    folded = "".join(char for char in folded if not unicodedata.combining(char))
    # re.split with a capture group alternates text and digit runs, so equal
    # positions always hold the same type
    return tuple(int(part) if index % 2 else part for index, part in enumerate(_DIGITS.split(folded)))


def _compare_ranks(a: int | None, b: int | None) -> int:
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    return _cmp(a, b)


def _compare_by_criteria(a: Conversation, b: Conversation, criteria: SortCriteria) -> int:
    match criteria:
        case SortCriteria.ACTIVITY:
            return _cmp(activity_score(a), activity_score(b))
        case SortCriteria.CREATED_AT:
            return _cmp(a.created_at, b.created_at)
        case SortCriteria.UPDATED_AT:
            return _cmp(a.updated_at, b.updated_at)
        case SortCriteria.TITLE:
            return _cmp(title_key(a.title), title_key(b.title))
    return _cmp(a.updated_at, b.updated_at)


def compare_conversations(a: Conversation, b: Conversation, options: SortOptions | None = None) -> int:
    """Return -1 if 'a' sorts before 'b', 1 if after, 0 if they are equivalent."""
    options = options or SortOptions()
    criteria = options.criteria

    if options.favorite_first:
        if a.is_favorite != b.is_favorite:
            return -1 if a.is_favorite else 1
        if a.is_favorite:
            by_rank = _compare_ranks(a.favorite_rank, b.favorite_rank)
            if by_rank:
                return by_rank
            # unranked or equally ranked favorites fall back to recency
            if criteria == SortCriteria.ACTIVITY:
                criteria = SortCriteria.UPDATED_AT

    comparison = _compare_by_criteria(a, b, criteria)
    return comparison if options.order == SortOrder.ASC else -comparison


def sort_conversations(conversations: Iterable[Conversation], options: SortOptions | None = None) -> list[Conversation]:
    """Return a new list ordered by 'compare_conversations'."""
    options = options or SortOptions()
    return sorted(conversations, key=cmp_to_key(lambda a, b: compare_conversations(a, b, options)))
