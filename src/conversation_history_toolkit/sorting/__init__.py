from conversation_history_toolkit.sorting.comparator import (
    SortCriteria,
    SortOptions,
    SortOrder,
    compare_conversations,
    sort_conversations,
)
from conversation_history_toolkit.sorting.favorites import (
    FavoritePatch,
    RankValidationReport,
    ValidationWarning,
    ValidationWarningKind,
    next_rank,
    normalize,
    reorder,
    set_favorite,
    validate,
)

__all__ = [
    "FavoritePatch",
    "RankValidationReport",
    "SortCriteria",
    "SortOptions",
    "SortOrder",
    "ValidationWarning",
    "ValidationWarningKind",
    "compare_conversations",
    "next_rank",
    "normalize",
    "reorder",
    "set_favorite",
    "sort_conversations",
    "validate",
]
