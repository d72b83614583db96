"""
Exceptions raised by the conversation history toolkit.

Store failures inside a cascade delete are reported as data on the result
('DeleteCascadeResult.error'), not raised. The exceptions below are what the
controller raises to its callers and what a rollback raises when it could not
put everything back.
"""

from collections.abc import Iterable


class ConversationToolkitError(Exception):
    """
    Base exception for toolkit errors.

    'error_code' is a short canonical code ('not_found', 'storage_failure',
    'rollback_failed') that callers can switch on without parsing messages.
    """

    def __init__(self, message: str, *, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self) -> str:
        if self.error_code:
            return f"{self.message} (code: {self.error_code})"
        return self.message


class ConversationNotFoundError(ConversationToolkitError):
    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation with id {conversation_id} not found", error_code="not_found")
        self.conversation_id = conversation_id


class StorageFailureError(ConversationToolkitError):
    """A store call made by the controller failed."""

    def __init__(self, message: str):
        super().__init__(message, error_code="storage_failure")


class RollbackError(ConversationToolkitError):
    """Some backed-up entities could not be restored; 'failures' names each one."""

    def __init__(self, message: str, *, failures: Iterable[str] | None = None):
        super().__init__(message, error_code="rollback_failed")
        self.failures = list(failures) if failures else []


__all__ = [
    "ConversationNotFoundError",
    "ConversationToolkitError",
    "RollbackError",
    "StorageFailureError",
]
