"""
Favorite rank management.

Favorites carry a 'favorite_rank' (1 = top). The rank sequence should be dense
and start at 1, but single-item operations are allowed to break that
temporarily: 'reorder' only touches the moved conversation so drag-and-drop
stays cheap, and 'normalize' is the explicit bulk repair. 'validate' reports
problems without changing anything.

All functions are pure: they return patches or new lists and never mutate the
conversations they are given. Persisting the result is the caller's job.
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from enum import StrEnum

from loguru import logger
from pydantic import BaseModel, Field

from conversation_history_toolkit.conversation_database.data_models.conversation import Conversation


class FavoritePatch(BaseModel):
    """The fields to write back when a conversation is (un)favorited."""

    is_favorite: bool
    favorite_rank: int | None = None

    def apply(self, conversation: Conversation) -> Conversation:
        return conversation.model_copy(
            update={"is_favorite": self.is_favorite, "favorite_rank": self.favorite_rank}, deep=True
        )


class ValidationWarningKind(StrEnum):
    DUPLICATE_RANK = "duplicate_rank"
    RANK_GAP = "rank_gap"
    MISSING_RANK = "missing_rank"
    RANK_ON_NON_FAVORITE = "rank_on_non_favorite"


class ValidationWarning(BaseModel):
    """One inconsistency in the favorite rank sequence. Reported, never raised."""

    kind: ValidationWarningKind
    message: str
    ranks: list[int] = Field(default_factory=list)
    conversation_ids: list[str] = Field(default_factory=list)


class RankValidationReport(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    warnings: list[ValidationWarning] = Field(default_factory=list)


NORMALIZE_SUGGESTION = "Run normalize() to rebuild a dense 1..N rank sequence"


def next_rank(conversations: Iterable[Conversation]) -> int:
    """Rank for a newly favorited conversation: the end of the current favorites list."""
    return sum(1 for conversation in conversations if conversation.is_favorite) + 1


def set_favorite(conversation: Conversation, favorite: bool, conversations: Iterable[Conversation]) -> FavoritePatch:
    """
    Patch that marks 'conversation' as favorite (appended last) or clears it.

    'conversations' is the list the rank is computed against. A conversation
    that is already a ranked favorite keeps its rank.
    """
    if not favorite:
        return FavoritePatch(is_favorite=False, favorite_rank=None)
    if conversation.is_favorite and conversation.favorite_rank is not None:
        return FavoritePatch(is_favorite=True, favorite_rank=conversation.favorite_rank)
    others = [candidate for candidate in conversations if candidate.id != conversation.id]
    return FavoritePatch(is_favorite=True, favorite_rank=next_rank(others))


def reorder(conversations: Sequence[Conversation], conversation_id: str, new_rank: int) -> list[Conversation]:
    """
    Give 'conversation_id' the rank 'new_rank', leaving every other rank as is.

    The target is marked as favorite, since only favorites carry a rank. Siblings
    are not renumbered; call 'normalize' afterwards for a clean sequence.
    """
    if new_rank < 1:
        raise ValueError(f"Favorite rank must be a positive integer, got {new_rank}")

    found = False
    reordered: list[Conversation] = []
    for conversation in conversations:
        if conversation.id == conversation_id:
            found = True
            conversation = conversation.model_copy(update={"favorite_rank": new_rank, "is_favorite": True}, deep=True)
        reordered.append(conversation)

    if not found:
        logger.warning(f"Cannot reorder unknown conversation {conversation_id!r}")
    return reordered


def normalize(conversations: Iterable[Conversation]) -> list[Conversation]:
    """
    Reassign favorites the ranks 1..N, keeping their current relative order.

    Favorites are ordered by current rank, unranked ones last; ties are broken by
    most recent 'updated_at'. Returns favorites first, then non-favorites (with
    any stray rank cleared) in their input order.
    """
    favorites: list[Conversation] = []
    others: list[Conversation] = []
    for conversation in conversations:
        (favorites if conversation.is_favorite else others).append(conversation)

    favorites.sort(
        key=lambda c: (
            c.favorite_rank is None,
            c.favorite_rank or 0,
            -c.updated_at.timestamp(),
        )
    )
    renumbered = [
        conversation.model_copy(update={"favorite_rank": rank}, deep=True)
        for rank, conversation in enumerate(favorites, start=1)
    ]
    cleared = [
        conversation if conversation.favorite_rank is None else conversation.model_copy(update={"favorite_rank": None})
        for conversation in others
    ]
    return renumbered + cleared


def validate(conversations: Iterable[Conversation]) -> RankValidationReport:
    """Report duplicate ranks, gaps, favorites without a rank and ranked non-favorites."""
    conversations = list(conversations)
    favorites = [conversation for conversation in conversations if conversation.is_favorite]
    warnings: list[ValidationWarning] = []

    rank_counts = Counter(c.favorite_rank for c in favorites if c.favorite_rank is not None)
    for rank, count in sorted(rank_counts.items()):
        if count > 1:
            warnings.append(
                ValidationWarning(
                    kind=ValidationWarningKind.DUPLICATE_RANK,
                    message=f"Duplicate favorite rank {rank} shared by {count} conversations",
                    ranks=[rank],
                    conversation_ids=[c.id for c in favorites if c.favorite_rank == rank],
                )
            )

    distinct_ranks = sorted(rank_counts)
    if distinct_ranks and distinct_ranks[0] > 1:
        warnings.append(
            ValidationWarning(
                kind=ValidationWarningKind.RANK_GAP,
                message=f"Favorite ranks start at {distinct_ranks[0]} instead of 1",
                ranks=[distinct_ranks[0]],
            )
        )
    for lower, upper in zip(distinct_ranks, distinct_ranks[1:]):
        if upper - lower > 1:
            warnings.append(
                ValidationWarning(
                    kind=ValidationWarningKind.RANK_GAP,
                    message=f"Gap between favorite ranks {lower} and {upper}",
                    ranks=[lower, upper],
                )
            )

    unranked = [c.id for c in favorites if c.favorite_rank is None]
    if unranked:
        warnings.append(
            ValidationWarning(
                kind=ValidationWarningKind.MISSING_RANK,
                message=f"{len(unranked)} favorite(s) without a rank",
                conversation_ids=unranked,
            )
        )

    stray = [c.id for c in conversations if not c.is_favorite and c.favorite_rank is not None]
    if stray:
        warnings.append(
            ValidationWarning(
                kind=ValidationWarningKind.RANK_ON_NON_FAVORITE,
                message=f"{len(stray)} non-favorite conversation(s) still carry a rank",
                conversation_ids=stray,
            )
        )

    suggestions: list[str] = []
    for warning in warnings:
        suggestion = (
            "Assign a rank with next_rank() or run normalize()"
            if warning.kind == ValidationWarningKind.MISSING_RANK
            else NORMALIZE_SUGGESTION
        )
        if suggestion not in suggestions:
            suggestions.append(suggestion)

    return RankValidationReport(
        is_valid=not warnings,
        errors=[warning.message for warning in warnings],
        suggestions=suggestions,
        warnings=warnings,
    )
