"""
Conversation history controller (Facade).

'ConversationHistoryController' is the single entry point a hosting application
needs. It owns no data: it reads the remote store and the local cache on every
call, so a delete or a favorite change is visible on the next read without any
cache to invalidate.

    'list_conversations'   - merge both stores, filter, then sort favorites-first.
    'set_favorite', 'reorder_favorite', 'normalize_favorites'
                           - compute rank changes on the merged list and write
                             them to every store that holds the conversation.
    'preview_delete', 'delete_conversation'
                           - cascade delete, in the remote store first and then
                             in the local cache copy.

A conversation may exist in both stores under different ids (the local copy
back-references the remote one). Writes and deletes reach both copies.
"""

import asyncio
from collections import Counter

from loguru import logger

from conversation_history_toolkit.cascade.engine import (
    CascadeDeleteEngine,
    DeleteCascadeResult,
    DeleteErrorCode,
    DeletionSet,
    DeletionState,
    RelatedContent,
)
from conversation_history_toolkit.config import Language, ToolkitSettings, load_settings
from conversation_history_toolkit.conversation_database.data_models.conversation import (
    Conversation,
    ConversationStorage,
)
from conversation_history_toolkit.conversation_database.data_models.poll import PollDatabase
from conversation_history_toolkit.conversation_database.identity import find_same_entity, same_entity
from conversation_history_toolkit.conversation_database.merge import merge_conversations
from conversation_history_toolkit.errors import ConversationNotFoundError, RollbackError, StorageFailureError
from conversation_history_toolkit.filters import ConversationFilters, filter_conversations
from conversation_history_toolkit.sorting.comparator import SortOptions, sort_conversations
from conversation_history_toolkit.sorting.favorites import (
    RankValidationReport,
    normalize,
    reorder,
    set_favorite,
    validate,
)


class ConversationHistoryController:
    def __init__(
        self,
        remote: ConversationStorage,
        local: ConversationStorage,
        polls: PollDatabase,
        settings: ToolkitSettings | None = None,
    ):
        self.remote = remote
        self.local = local
        self.polls = polls
        self.settings = settings or load_settings()
        self.remote_engine = CascadeDeleteEngine(remote, polls, self.settings.language)
        self.local_engine = CascadeDeleteEngine(local, polls, self.settings.language)
        self._delete_locks: dict[str, asyncio.Lock] = {}
        self._delete_callers: Counter[str] = Counter()

    async def get_merged_conversations(self, owner_id: str) -> list[Conversation]:
        """Merged, unsorted list. An unreachable remote store degrades to the local cache alone."""
        try:
            remote = await self.remote.list_conversations(owner_id)
        except Exception as exc:
            logger.warning(f"Remote store unavailable for owner {owner_id!r}, using local cache only: {exc!r}")
            remote = []
        try:
            local = await self.local.list_conversations(owner_id)
        except Exception as exc:
            raise StorageFailureError(f"Could not read local conversations of owner {owner_id}: {exc}") from exc
        return merge_conversations(remote, local, owner_id)

    async def list_conversations(
        self,
        owner_id: str,
        filters: ConversationFilters | None = None,
        sort_options: SortOptions | None = None,
    ) -> list[Conversation]:
        merged = await self.get_merged_conversations(owner_id)
        return sort_conversations(filter_conversations(merged, filters), sort_options)

    async def _resolve(self, owner_id: str, conversation_id: str) -> tuple[list[Conversation], Conversation]:
        merged = await self.get_merged_conversations(owner_id)
        for conversation in merged:
            if conversation.id == conversation_id or conversation.back_reference == conversation_id:
                return merged, conversation
        # a local id whose record was dropped in favour of its remote copy
        local = await self.local.get_conversation(conversation_id)
        if local is not None:
            match = find_same_entity(local, merged)
            if match is not None:
                return merged, match
        raise ConversationNotFoundError(conversation_id)

    async def _local_copy(self, conversation: Conversation) -> Conversation | None:
        if conversation.owner_id is None:
            return await self.local.get_conversation(conversation.id)
        return find_same_entity(conversation, await self.local.list_conversations(conversation.owner_id))

    async def _write_fields(self, conversation: Conversation, fields: dict) -> None:
        """
        Apply 'fields' to every stored copy of 'conversation'.

        The remote copy is written first. When the local copy then cannot be
        written, the remote copy is put back as it was before
        'StorageFailureError' is raised, so both copies keep agreeing.
        """
        try:
            remote = await self.remote.get_conversation(conversation.id)
            if remote is not None:
                await self.remote.update_conversation(remote.model_copy(update=fields, deep=True))
        except Exception as exc:
            logger.error(f"Could not update conversation {conversation.id!r}: {exc!r}")
            raise StorageFailureError(f"Could not update conversation {conversation.id}: {exc}") from exc

        try:
            local = await self._local_copy(conversation)
            if local is not None:
                await self.local.update_conversation(local.model_copy(update=fields, deep=True))
        except Exception as exc:
            logger.error(f"Could not update local copy of conversation {conversation.id!r}: {exc!r}")
            if remote is not None:
                try:
                    await self.remote.update_conversation(remote)
                except Exception as restore_exc:
                    logger.error(f"Could not restore remote conversation {conversation.id!r}: {restore_exc!r}")
            raise StorageFailureError(f"Could not update conversation {conversation.id}: {exc}") from exc

    async def set_favorite(self, owner_id: str, conversation_id: str, favorite: bool) -> Conversation:
        merged, conversation = await self._resolve(owner_id, conversation_id)
        patch = set_favorite(conversation, favorite, merged)
        await self._write_fields(conversation, patch.model_dump())
        logger.info(f"Conversation {conversation.id!r} favorite={patch.is_favorite} rank={patch.favorite_rank}")
        return patch.apply(conversation)

    async def reorder_favorite(self, owner_id: str, conversation_id: str, new_rank: int) -> list[Conversation]:
        merged, conversation = await self._resolve(owner_id, conversation_id)
        reordered = reorder(merged, conversation.id, new_rank)
        await self._write_fields(conversation, {"is_favorite": True, "favorite_rank": new_rank})
        logger.info(f"Conversation {conversation.id!r} moved to favorite rank {new_rank}")
        return sort_conversations(reordered)

    async def normalize_favorites(self, owner_id: str) -> list[Conversation]:
        merged = await self.get_merged_conversations(owner_id)
        before = {conversation.id: conversation.favorite_rank for conversation in merged}
        normalized = normalize(merged)
        changed = [conversation for conversation in normalized if before[conversation.id] != conversation.favorite_rank]
        for conversation in changed:
            await self._write_fields(conversation, {"favorite_rank": conversation.favorite_rank})
        logger.info(f"Normalized favorite ranks for owner {owner_id!r}: {len(changed)} conversation(s) updated")
        return sort_conversations(normalized)

    async def validate_favorites(self, owner_id: str) -> RankValidationReport:
        return validate(await self.get_merged_conversations(owner_id))

    async def has_related_content(self, conversation_id: str) -> RelatedContent:
        remote, local = await asyncio.gather(
            self.remote_engine.has_related_content(conversation_id),
            self.local_engine.has_related_content(conversation_id),
        )
        return RelatedContent(
            has_messages=remote.has_messages or local.has_messages,
            has_poll=remote.has_poll or local.has_poll,
            message_count=max(remote.message_count, local.message_count),
        )

    async def preview_delete(self, conversation_id: str, language: Language | None = None) -> DeleteCascadeResult:
        result = await self.remote_engine.prepare(conversation_id, language)
        if result.error == DeleteErrorCode.NOT_FOUND:
            result = await self.local_engine.prepare(conversation_id, language)
        return result

    async def _delete_targets(self, owner_id: str, conversation_id: str) -> list[tuple[CascadeDeleteEngine, str]]:
        """Every stored copy of the conversation: the remote one first, then its local twin."""
        remote = await self.remote.get_conversation(conversation_id)
        local_records = await self.local.list_conversations(owner_id)
        if remote is None:
            # a local id whose record back-references its remote copy
            for local in local_records:
                if local.id == conversation_id and local.back_reference:
                    remote = await self.remote.get_conversation(local.back_reference)
                    break

        targets: list[tuple[CascadeDeleteEngine, str]] = []
        if remote is not None:
            targets.append((self.remote_engine, remote.id))
        for local in local_records:
            if local.id == conversation_id or local.back_reference == conversation_id:
                targets.append((self.local_engine, local.id))
                break
            if remote is not None and same_entity(remote, local):
                targets.append((self.local_engine, local.id))
                break
        return targets

    async def delete_conversation(
        self,
        owner_id: str,
        conversation_id: str,
        language: Language | None = None,
    ) -> DeleteCascadeResult:
        """
        Cascade delete every stored copy of a conversation.

        'conversation_id' may be the remote id or the id of the local copy. The
        remote copy goes first, then the local one. When a later copy fails,
        earlier copies are restored too: immediately when 'auto_rollback' is
        enabled, otherwise through the returned result's 'rollback'. A restore
        that fails raises 'RollbackError'. Concurrent deletes of the same id
        wait for each other; the second one then reports 'NotFound'.
        """
        lock = self._delete_locks.setdefault(conversation_id, asyncio.Lock())
        self._delete_callers[conversation_id] += 1
        try:
            async with lock:
                return await self._delete_all_copies(owner_id, conversation_id, language)
        finally:
            self._delete_callers[conversation_id] -= 1
            if not self._delete_callers[conversation_id]:
                del self._delete_callers[conversation_id]
                del self._delete_locks[conversation_id]

    async def _delete_all_copies(
        self,
        owner_id: str,
        conversation_id: str,
        language: Language | None,
    ) -> DeleteCascadeResult:
        targets = await self._delete_targets(owner_id, conversation_id)
        if not targets:
            return await self.remote_engine.execute(conversation_id, language=language)

        committed: list[DeleteCascadeResult] = []
        for engine, target_id in targets:
            result = await engine.execute(target_id, language=language, keep_rollback=True)
            if not result.success:
                return await self._fail(conversation_id, result, committed)
            committed.append(result)

        combined = DeletionSet()
        for result in committed:
            combined.conversations += result.deleted.conversations
            combined.messages += result.deleted.messages
            combined.polls += result.deleted.polls
        return DeleteCascadeResult(
            success=True,
            state=DeletionState.COMMITTED,
            deleted=combined,
            confirmation_messages=committed[0].confirmation_messages,
        )

    async def _fail(
        self,
        conversation_id: str,
        failed: DeleteCascadeResult,
        committed: list[DeleteCascadeResult],
    ) -> DeleteCascadeResult:
        undo = [result.rollback for result in [failed, *reversed(committed)] if result.rollback is not None]

        async def rollback() -> None:
            failures: list[str] = []
            # every copy gets its restore attempt even when an earlier one fails
            for step in undo:
                try:
                    await step()
                except RollbackError as exc:
                    failures.extend(exc.failures)
            if failures:
                raise RollbackError(f"Rollback of conversation {conversation_id} incomplete", failures=failures)
            failed.state = DeletionState.ROLLED_BACK
            failed.deleted = DeletionSet()

        if not undo:
            return failed
        failed.rollback = rollback
        if self.settings.auto_rollback:
            await rollback()
            logger.warning(f"Delete failed and was rolled back: {failed.detail}")
        return failed
