"""
Merge of remote and local conversation lists.

The remote store is authoritative for every conversation it knows about; the
local cache only contributes conversations that have not been synchronised yet.
The output holds at most one record per logical conversation (see
'identity.same_entity'), and a local-only conversation is never dropped.

The merge does no I/O and never raises: records without an owner simply do not
match the requested owner and are left out.
"""

from collections.abc import Iterable

from loguru import logger

from conversation_history_toolkit.conversation_database.data_models.conversation import Conversation
from conversation_history_toolkit.conversation_database.identity import find_same_entity


def _owned_by(conversations: Iterable[Conversation], owner_id: str) -> list[Conversation]:
    return [
        conversation
        for conversation in conversations
        if conversation.owner_id is not None and conversation.owner_id == owner_id
    ]


def merge_conversations(
    remote: Iterable[Conversation],
    local: Iterable[Conversation],
    owner_id: str,
) -> list[Conversation]:
    """
    Combine 'remote' and 'local' into one deduplicated list for 'owner_id'.

    Remote records seed the result keyed by id. Each local record is then
    checked against everything already kept: a match means the remote copy (or
    an earlier local copy) already represents it and the local record is
    discarded; no match means it is local-only and is kept under its own id.
    Order is remote records first, in input order, followed by kept local ones.
    """
    remote_owned = _owned_by(remote, owner_id)
    local_owned = _owned_by(local, owner_id)

    merged: dict[str, Conversation] = {}
    for conversation in remote_owned:
        merged[conversation.id] = conversation

    discarded = 0
    for conversation in local_owned:
        match = find_same_entity(conversation, merged.values())
        if match is not None:
            discarded += 1
            logger.debug(f"Local conversation {conversation.id!r} already present as {match.id!r}, keeping that copy")
            continue
        merged[conversation.id] = conversation

    logger.debug(
        f"Merged {len(remote_owned)} remote and {len(local_owned)} local conversations for owner {owner_id!r}: "
        f"{len(merged)} kept, {discarded} duplicates dropped"
    )
    return list(merged.values())
