"""
Identity resolution between the remote store and the local cache.

A conversation created offline gets a temporary local id. When the remote store
accepts it, it is re-created there under a new id and the local copy records
that remote id as its back-reference. Comparing ids alone would therefore show
the same conversation twice, once per id; 'same_entity' also follows the
back-reference in both directions.
"""

from collections.abc import Iterable

from conversation_history_toolkit.conversation_database.data_models.conversation import Conversation


def same_entity(a: Conversation, b: Conversation) -> bool:
    """Return True when 'a' and 'b' are two copies of one logical conversation."""
    if a.id == b.id:
        return True
    a_reference = a.back_reference
    b_reference = b.back_reference
    return (a_reference is not None and a_reference == b.id) or (b_reference is not None and b_reference == a.id)


def find_same_entity(conversation: Conversation, candidates: Iterable[Conversation]) -> Conversation | None:
    """Return the first candidate that is the same logical conversation, or None."""
    for candidate in candidates:
        if same_entity(candidate, conversation):
            return candidate
    return None
