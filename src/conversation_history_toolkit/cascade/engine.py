"""
Cascade delete of a conversation together with its messages and linked poll.

The deletion unit is {conversation, its messages, its poll}. The stores offer
no transaction spanning those entities, so the engine runs a manual
compensating transaction:

    'prepare'  - load the conversation, its messages and its poll and describe
                 what would be removed. Nothing is mutated (dry run).
    'execute'  - load the same data again, keep it in memory as a backup, then
                 delete messages, conversation and poll strictly in that order.

A failure at any step stops the sequence. The result then carries a 'rollback'
coroutine function that re-inserts every backed-up entity missing from its
store, including whatever the failing step managed to remove before it broke.

Store errors never propagate out of 'prepare', 'execute' or
'has_related_content': they are logged and reported on the result. Two
'execute' calls for the same conversation id must be serialised by the caller;
calls for different ids are independent.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum

from loguru import logger
from pydantic import BaseModel, Field

from conversation_history_toolkit.cascade.confirmation import (
    ConfirmationMessages,
    build_confirmation_messages,
    build_error_messages,
)
from conversation_history_toolkit.config import DEFAULT_LANGUAGE, Language
from conversation_history_toolkit.conversation_database.data_models.conversation import (
    Conversation,
    ConversationStorage,
)
from conversation_history_toolkit.conversation_database.data_models.message import Message
from conversation_history_toolkit.conversation_database.data_models.poll import Poll, PollDatabase
from conversation_history_toolkit.errors import RollbackError


class DeletionState(StrEnum):
    PLANNED = "planned"
    EXECUTING = "executing"
    COMMITTED = "committed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class DeleteErrorCode(StrEnum):
    NOT_FOUND = "NotFound"
    STORAGE_FAILURE = "StorageFailure"


class DeletionStep(StrEnum):
    MESSAGES = "messages"
    CONVERSATION = "conversation"
    POLL = "poll"


class DeletionSet(BaseModel):
    """Ids of the entities in a deletion unit."""

    conversations: list[str] = Field(default_factory=list)
    messages: list[str] = Field(default_factory=list)
    polls: list[str] = Field(default_factory=list)


class RelatedContent(BaseModel):
    has_messages: bool
    has_poll: bool
    message_count: int


class DeleteCascadeResult(BaseModel):
    """
    Outcome of 'prepare' or 'execute'.

    'deleted' is the planned unit for a successful 'prepare', the removed unit
    for a committed 'execute', and what was removed before the failure for a
    failed one. 'rollback' is set when a failure happened after mutations
    started, and on a committed result requested with 'keep_rollback'.
    """

    success: bool
    state: DeletionState
    deleted: DeletionSet = Field(default_factory=DeletionSet)
    confirmation_messages: ConfirmationMessages
    error: DeleteErrorCode | None = None
    detail: str | None = None
    failed_step: DeletionStep | None = None
    rollback: Callable[[], Awaitable[None]] | None = Field(default=None, exclude=True, repr=False)


class _DeletionPlan(BaseModel):
    conversation: Conversation
    messages: list[Message]
    poll: Poll | None = None

    def deletion_set(self) -> DeletionSet:
        return DeletionSet(
            conversations=[self.conversation.id],
            messages=[message.id for message in self.messages],
            polls=[self.poll.id] if self.poll else [],
        )


class CascadeDeleteEngine:
    """
    Deletes one conversation unit from one store plus the poll store.

    Attributes:
        storage: The store holding the conversation and its messages.
        polls: The poll store.
        language: Default language for confirmation texts.
    """

    def __init__(self, storage: ConversationStorage, polls: PollDatabase, language: Language = DEFAULT_LANGUAGE):
        self.storage = storage
        self.polls = polls
        self.language = language

    async def _find_poll(self, conversation: Conversation) -> Poll | None:
        poll = await self.polls.find_poll_by_conversation_id(conversation.id)
        if poll is None and conversation.poll_reference:
            poll = await self.polls.get_poll(conversation.poll_reference)
        return poll

    async def _load_plan(self, conversation_id: str) -> _DeletionPlan | None:
        conversation = await self.storage.get_conversation(conversation_id)
        if conversation is None:
            return None
        messages = await self.storage.get_messages(conversation_id)
        poll = await self._find_poll(conversation)
        return _DeletionPlan(conversation=conversation, messages=messages, poll=poll)

    def _not_found(self, conversation_id: str, language: Language) -> DeleteCascadeResult:
        logger.warning(f"Cascade delete: conversation {conversation_id!r} not found")
        return DeleteCascadeResult(
            success=False,
            state=DeletionState.FAILED,
            confirmation_messages=build_error_messages(language),
            error=DeleteErrorCode.NOT_FOUND,
            detail=f"Conversation with id {conversation_id} not found",
        )

    def _storage_failure(self, conversation_id: str, language: Language, exc: Exception) -> DeleteCascadeResult:
        logger.error(f"Cascade delete: could not load conversation {conversation_id!r}: {exc!r}")
        return DeleteCascadeResult(
            success=False,
            state=DeletionState.FAILED,
            confirmation_messages=build_error_messages(language),
            error=DeleteErrorCode.STORAGE_FAILURE,
            detail=str(exc),
        )

    async def prepare(self, conversation_id: str, language: Language | None = None) -> DeleteCascadeResult:
        """Describe the deletion unit of 'conversation_id' without mutating anything."""
        language = language or self.language
        try:
            plan = await self._load_plan(conversation_id)
        except Exception as exc:
            return self._storage_failure(conversation_id, language, exc)
        if plan is None:
            return self._not_found(conversation_id, language)

        return DeleteCascadeResult(
            success=True,
            state=DeletionState.PLANNED,
            deleted=plan.deletion_set(),
            confirmation_messages=build_confirmation_messages(
                plan.conversation.title, plan.poll is not None, len(plan.messages), language
            ),
        )

    async def execute(
        self,
        conversation_id: str,
        dry_run: bool = False,
        language: Language | None = None,
        keep_rollback: bool = False,
    ) -> DeleteCascadeResult:
        """
        Delete the conversation unit, or only plan it when 'dry_run' is set.

        Steps run one after the other so a failure at step k means steps before
        k completed and steps after k never ran. 'keep_rollback' also attaches
        the rollback to a committed result, for callers that delete the same
        conversation from several stores and must undo earlier stores when a
        later one fails.
        """
        if dry_run:
            return await self.prepare(conversation_id, language)

        language = language or self.language
        try:
            plan = await self._load_plan(conversation_id)
        except Exception as exc:
            return self._storage_failure(conversation_id, language, exc)
        if plan is None:
            return self._not_found(conversation_id, language)

        backup = plan.model_copy(deep=True)
        confirmation = build_confirmation_messages(
            backup.conversation.title, backup.poll is not None, len(backup.messages), language
        )
        planned = backup.deletion_set()

        steps: list[tuple[DeletionStep, Callable[[], Awaitable[None]]]] = []
        if backup.messages:
            steps.append((DeletionStep.MESSAGES, lambda: self.storage.delete_messages(conversation_id)))
        steps.append((DeletionStep.CONVERSATION, lambda: self.storage.delete_conversation(conversation_id)))
        if backup.poll is not None:
            poll_id = backup.poll.id
            steps.append((DeletionStep.POLL, lambda: self.polls.delete_poll(poll_id)))

        result = DeleteCascadeResult(
            success=False,
            state=DeletionState.EXECUTING,
            confirmation_messages=confirmation,
        )
        logger.debug(
            f"Cascade delete of {conversation_id!r}: {len(planned.messages)} messages, {len(planned.polls)} poll(s)"
        )

        for position, (step, run) in enumerate(steps):
            try:
                await run()
            except Exception as exc:
                logger.error(f"Cascade delete of {conversation_id!r} failed while deleting {step}: {exc!r}")
                result.state = DeletionState.FAILED
                result.error = DeleteErrorCode.STORAGE_FAILURE
                result.detail = str(exc)
                result.failed_step = step
                attempted = [done for done, _ in steps[: position + 1]]
                result.rollback = self._build_rollback(backup, attempted, result)
                return result

            if step == DeletionStep.MESSAGES:
                result.deleted.messages = list(planned.messages)
            elif step == DeletionStep.CONVERSATION:
                result.deleted.conversations = list(planned.conversations)
            else:
                result.deleted.polls = list(planned.polls)

        result.success = True
        result.state = DeletionState.COMMITTED
        if keep_rollback:
            result.rollback = self._build_rollback(backup, [step for step, _ in steps], result)
        logger.info(
            f"Deleted conversation {conversation_id!r} with {len(result.deleted.messages)} messages"
            + (f" and poll {result.deleted.polls[0]!r}" if result.deleted.polls else "")
        )
        return result

    def _build_rollback(
        self,
        backup: _DeletionPlan,
        attempted: list[DeletionStep],
        result: DeleteCascadeResult,
    ) -> Callable[[], Awaitable[None]]:
        storage = self.storage
        polls = self.polls
        conversation_id = backup.conversation.id

        async def restore_poll() -> None:
            if backup.poll is not None and await polls.get_poll(backup.poll.id) is None:
                await polls.create_poll(backup.poll)

        async def restore_conversation() -> None:
            if await storage.get_conversation(conversation_id) is None:
                await storage.create_conversation(backup.conversation)

        async def restore_messages() -> None:
            present = {message.id for message in await storage.get_messages(conversation_id)}
            missing = [message for message in backup.messages if message.id not in present]
            if missing:
                await storage.create_messages(missing)

        restorers = {
            DeletionStep.POLL: restore_poll,
            DeletionStep.CONVERSATION: restore_conversation,
            DeletionStep.MESSAGES: restore_messages,
        }

        async def rollback() -> None:
            if result.state == DeletionState.ROLLED_BACK:
                return
            failures: list[str] = []
            # reverse deletion order: the conversation is back before its messages
            for step in reversed(attempted):
                try:
                    await restorers[step]()
                except Exception as exc:
                    logger.error(f"Rollback of {step} for conversation {conversation_id!r} failed: {exc!r}")
                    failures.append(f"{step}: {exc}")
            if failures:
                raise RollbackError(
                    f"Rollback of conversation {conversation_id} incomplete",
                    failures=failures,
                )
            result.state = DeletionState.ROLLED_BACK
            result.deleted = DeletionSet()
            logger.info(f"Rolled back cascade delete of conversation {conversation_id!r}")

        return rollback

    async def has_related_content(self, conversation_id: str) -> RelatedContent:
        """
        Whether the conversation has messages and/or a poll. Store errors read as "nothing".

        The poll is looked up the same way 'execute' finds it, so a poll linked
        only from the conversation record is reported too.
        """
        try:
            conversation, messages = await asyncio.gather(
                self.storage.get_conversation(conversation_id),
                self.storage.get_messages(conversation_id),
            )
            if conversation is not None:
                poll = await self._find_poll(conversation)
            else:
                poll = await self.polls.find_poll_by_conversation_id(conversation_id)
        except Exception as exc:
            logger.warning(f"Could not check related content of conversation {conversation_id!r}: {exc!r}")
            return RelatedContent(has_messages=False, has_poll=False, message_count=0)

        return RelatedContent(has_messages=bool(messages), has_poll=poll is not None, message_count=len(messages))
