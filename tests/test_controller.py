import asyncio

import pytest

from conversation_history_toolkit.cascade.engine import DeleteErrorCode, DeletionState, DeletionStep
from conversation_history_toolkit.config import ToolkitSettings
from conversation_history_toolkit.controller import ConversationHistoryController
from conversation_history_toolkit.conversation_database.data_models.poll import Poll
from conversation_history_toolkit.errors import ConversationNotFoundError, RollbackError, StorageFailureError
from conversation_history_toolkit.filters import ConversationFilters
from conversation_history_toolkit.sorting.comparator import SortCriteria, SortOptions, SortOrder
from helpers import OWNER, FlakyConversationStorage, FlakyPollDatabase


@pytest.fixture
def build(make_conversation, make_messages):
    """
    Remote store with 'uuid-456' (3 messages, poll 'poll-1') and 'r-2'.
    Local cache with 'local-123' (copy of 'uuid-456', 2 messages) and 'offline-1'.
    """

    def _build(remote_fail_on=None, local_fail_on=None, auto_rollback=True, remote=None, local=None):
        remote_conversations = remote or [
            make_conversation("uuid-456", title="Poll Conversation", minutes=20, message_count=3),
            make_conversation("r-2", minutes=10),
        ]
        local_conversations = local or [
            make_conversation("local-123", title="Poll Conversation", back_reference_id="uuid-456", minutes=20),
            make_conversation("offline-1", minutes=50),
        ]
        remote_store = FlakyConversationStorage(
            remote_conversations, make_messages("uuid-456", 3), fail_on=remote_fail_on
        )
        local_store = FlakyConversationStorage(
            local_conversations, make_messages("local-123", 2), fail_on=local_fail_on
        )
        polls = FlakyPollDatabase([Poll(id="poll-1", title="Lunch", conversation_id="uuid-456")])
        controller = ConversationHistoryController(
            remote_store,
            local_store,
            polls,
            settings=ToolkitSettings(language="en", auto_rollback=auto_rollback),
        )
        return controller, remote_store, local_store, polls

    return _build


@pytest.mark.asyncio
class TestListConversations:
    async def test_merges_and_sorts_by_activity(self, build):
        controller, *_ = build()

        conversations = await controller.list_conversations(OWNER)

        assert [c.id for c in conversations] == ["offline-1", "uuid-456", "r-2"]

    async def test_favorites_come_first(self, build, make_conversation):
        controller, *_ = build(
            remote=[
                make_conversation("fav", is_favorite=True, favorite_rank=1),
                make_conversation("recent", minutes=90),
            ]
        )

        conversations = await controller.list_conversations(OWNER)

        assert [c.id for c in conversations][:2] == ["fav", "recent"]

    async def test_filters_and_sort_options(self, build):
        controller, *_ = build()

        conversations = await controller.list_conversations(
            OWNER,
            filters=ConversationFilters(is_favorite=False),
            sort_options=SortOptions(criteria=SortCriteria.TITLE, order=SortOrder.ASC),
        )

        assert [c.title for c in conversations] == ["Conversation offline-1", "Conversation r-2", "Poll Conversation"]

    async def test_remote_outage_falls_back_to_local(self, build):
        controller, *_ = build(remote_fail_on={"list_conversations"})

        conversations = await controller.list_conversations(OWNER)

        assert sorted(c.id for c in conversations) == ["local-123", "offline-1"]

    async def test_local_failure_is_raised(self, build):
        controller, *_ = build(local_fail_on={"list_conversations"})

        with pytest.raises(StorageFailureError):
            await controller.list_conversations(OWNER)


@pytest.mark.asyncio
class TestFavorites:
    async def test_set_favorite_through_local_id_writes_both_copies(self, build):
        controller, remote, local, _ = build()

        updated = await controller.set_favorite(OWNER, "local-123", True)

        assert updated.id == "uuid-456"
        assert (updated.is_favorite, updated.favorite_rank) == (True, 1)
        assert (await remote.get_conversation("uuid-456")).favorite_rank == 1
        assert (await local.get_conversation("local-123")).favorite_rank == 1

    async def test_second_favorite_gets_next_rank_and_unfavorite_clears(self, build):
        controller, remote, _, _ = build()

        await controller.set_favorite(OWNER, "uuid-456", True)
        second = await controller.set_favorite(OWNER, "offline-1", True)
        assert second.favorite_rank == 2

        await controller.set_favorite(OWNER, "uuid-456", False)
        stored = await remote.get_conversation("uuid-456")
        assert (stored.is_favorite, stored.favorite_rank) == (False, None)

    async def test_unknown_conversation(self, build):
        controller, *_ = build()

        with pytest.raises(ConversationNotFoundError) as excinfo:
            await controller.set_favorite(OWNER, "missing", True)

        assert excinfo.value.error_code == "not_found"

    async def test_failed_write_raises_storage_failure(self, build):
        controller, *_ = build(remote_fail_on={"update_conversation"})

        with pytest.raises(StorageFailureError):
            await controller.set_favorite(OWNER, "uuid-456", True)

    async def test_failed_local_write_restores_remote_copy(self, build):
        controller, remote, local, _ = build(local_fail_on={"update_conversation"})

        with pytest.raises(StorageFailureError):
            await controller.set_favorite(OWNER, "uuid-456", True)

        stored = await remote.get_conversation("uuid-456")
        assert (stored.is_favorite, stored.favorite_rank) == (False, None)
        assert (await local.get_conversation("local-123")).is_favorite is False

    async def test_reorder_persists_the_new_rank(self, build, make_conversation):
        controller, remote, _, _ = build(
            remote=[
                make_conversation("a", is_favorite=True, favorite_rank=1),
                make_conversation("b", is_favorite=True, favorite_rank=2),
                make_conversation("c"),
            ]
        )

        conversations = await controller.reorder_favorite(OWNER, "c", 3)

        stored = await remote.get_conversation("c")
        assert (stored.is_favorite, stored.favorite_rank) == (True, 3)
        assert [c.id for c in conversations][:3] == ["a", "b", "c"]

    async def test_normalize_and_validate(self, build, make_conversation):
        controller, remote, _, _ = build(
            remote=[
                make_conversation("a", is_favorite=True, favorite_rank=3),
                make_conversation("b", is_favorite=True, favorite_rank=7),
                make_conversation("c", favorite_rank=4),
            ]
        )
        assert (await controller.validate_favorites(OWNER)).is_valid is False

        await controller.normalize_favorites(OWNER)

        assert [(await remote.get_conversation(i)).favorite_rank for i in ("a", "b", "c")] == [1, 2, None]
        assert (await controller.validate_favorites(OWNER)).is_valid is True


@pytest.mark.asyncio
class TestDelete:
    async def test_preview_describes_without_deleting(self, build):
        controller, remote, _, _ = build()

        preview = await controller.preview_delete("uuid-456")

        assert preview.state == DeletionState.PLANNED
        assert preview.deleted.polls == ["poll-1"]
        assert preview.confirmation_messages.confirm_button_text == "Delete Permanently"
        assert remote.mutations == []

    async def test_preview_of_local_only_conversation(self, build):
        controller, *_ = build()

        preview = await controller.preview_delete("offline-1", language="fr")

        assert preview.success is True
        assert preview.confirmation_messages.cancel_button_text == "Annuler"

    async def test_delete_reaches_both_copies(self, build):
        controller, remote, local, polls = build()

        result = await controller.delete_conversation(OWNER, "uuid-456")

        assert result.success is True
        assert result.state == DeletionState.COMMITTED
        assert result.deleted.conversations == ["uuid-456", "local-123"]
        assert len(result.deleted.messages) == 5
        assert result.rollback is None
        assert await remote.get_conversation("uuid-456") is None
        assert await local.get_conversation("local-123") is None
        assert await polls.get_poll("poll-1") is None
        assert [c.id for c in await controller.list_conversations(OWNER)] == ["offline-1", "r-2"]

    async def test_delete_by_local_id_reaches_both_copies(self, build):
        controller, remote, local, polls = build()

        result = await controller.delete_conversation(OWNER, "local-123")

        assert result.success is True
        assert result.deleted.conversations == ["uuid-456", "local-123"]
        assert await local.get_conversation("local-123") is None
        assert await remote.get_conversation("uuid-456") is None
        assert await polls.get_poll("poll-1") is None
        assert [c.id for c in await controller.list_conversations(OWNER)] == ["offline-1", "r-2"]

    async def test_failed_local_restore_still_restores_remote_copy(self, build):
        controller, remote, local, polls = build(
            local_fail_on={"delete_conversation", "create_messages"}, auto_rollback=False
        )
        result = await controller.delete_conversation(OWNER, "uuid-456")

        with pytest.raises(RollbackError) as excinfo:
            await result.rollback()

        assert excinfo.value.failures[0].startswith("messages")
        assert result.state == DeletionState.FAILED
        assert await remote.get_conversation("uuid-456") is not None
        assert len(await remote.get_messages("uuid-456")) == 3
        assert await polls.get_poll("poll-1") is not None
        assert await local.get_messages("local-123") == []

    async def test_auto_rollback_reports_incomplete_restore(self, build):
        controller, remote, _, _ = build(local_fail_on={"delete_conversation", "create_messages"})

        with pytest.raises(RollbackError):
            await controller.delete_conversation(OWNER, "uuid-456")

        assert await remote.get_conversation("uuid-456") is not None
        assert controller._delete_locks == {}

    async def test_local_failure_rolls_back_remote_copy(self, build):
        controller, remote, local, polls = build(local_fail_on={"delete_conversation"})

        result = await controller.delete_conversation(OWNER, "uuid-456")

        assert result.success is False
        assert result.error == DeleteErrorCode.STORAGE_FAILURE
        assert result.failed_step == DeletionStep.CONVERSATION
        assert result.state == DeletionState.ROLLED_BACK
        assert await remote.get_conversation("uuid-456") is not None
        assert len(await remote.get_messages("uuid-456")) == 3
        assert await polls.get_poll("poll-1") is not None
        assert len(await local.get_messages("local-123")) == 2

    async def test_without_auto_rollback_the_caller_decides(self, build):
        controller, remote, _, _ = build(local_fail_on={"delete_messages"}, auto_rollback=False)

        result = await controller.delete_conversation(OWNER, "uuid-456")

        assert result.state == DeletionState.FAILED
        assert await remote.get_conversation("uuid-456") is None

        await result.rollback()

        assert result.state == DeletionState.ROLLED_BACK
        assert await remote.get_conversation("uuid-456") is not None

    async def test_unknown_id_is_not_found(self, build):
        controller, remote, local, _ = build()

        result = await controller.delete_conversation(OWNER, "missing")

        assert result.error == DeleteErrorCode.NOT_FOUND
        assert remote.mutations == local.mutations == []

    async def test_concurrent_deletes_of_same_id(self, build):
        controller, remote, _, _ = build()

        first, second = await asyncio.gather(
            controller.delete_conversation(OWNER, "r-2"),
            controller.delete_conversation(OWNER, "r-2"),
        )

        assert sorted([first.success, second.success]) == [False, True]
        assert DeleteErrorCode.NOT_FOUND in (first.error, second.error)
        assert remote.mutations.count("delete_conversation") == 1
        assert controller._delete_locks == {}

    async def test_related_content_combines_stores(self, build):
        controller, *_ = build()

        related = await controller.has_related_content("uuid-456")

        assert related.has_poll is True
        assert related.message_count == 3
