from conversation_history_toolkit.cascade.confirmation import ConfirmationMessages
from conversation_history_toolkit.cascade.engine import (
    CascadeDeleteEngine,
    DeleteCascadeResult,
    DeleteErrorCode,
    DeletionSet,
    DeletionState,
    DeletionStep,
    RelatedContent,
)

__all__ = [
    "CascadeDeleteEngine",
    "ConfirmationMessages",
    "DeleteCascadeResult",
    "DeleteErrorCode",
    "DeletionSet",
    "DeletionState",
    "DeletionStep",
    "RelatedContent",
]
