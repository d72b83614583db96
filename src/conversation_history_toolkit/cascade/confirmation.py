"""
Confirmation texts shown before a cascade delete.

The wording depends on whether the conversation produced a poll, since deleting
it removes the poll too. French is the product's primary language; English is
available for every text.
"""

from pydantic import BaseModel

from conversation_history_toolkit.config import Language


class ConfirmationMessages(BaseModel):
    title: str
    description: str
    warning_text: str
    confirm_button_text: str
    cancel_button_text: str


def build_confirmation_messages(
    conversation_title: str,
    has_poll: bool,
    message_count: int,
    language: Language = "fr",
) -> ConfirmationMessages:
    if language == "fr":
        return ConfirmationMessages(
            title="Confirmer la suppression",
            description=(
                f'Supprimer la conversation "{conversation_title}" et le sondage associé ?'
                if has_poll
                else f'Supprimer la conversation "{conversation_title}" ?'
            ),
            warning_text=(
                f"Cette action supprimera définitivement la conversation ({message_count} messages) "
                "et le sondage associé. Cette action est irréversible."
                if has_poll
                else f"Cette action supprimera définitivement la conversation et ses {message_count} messages. "
                "Cette action est irréversible."
            ),
            confirm_button_text="Supprimer définitivement",
            cancel_button_text="Annuler",
        )
    return ConfirmationMessages(
        title="Confirm Deletion",
        description=(
            f'Delete conversation "{conversation_title}" and associated poll?'
            if has_poll
            else f'Delete conversation "{conversation_title}"?'
        ),
        warning_text=(
            f"This will permanently delete the conversation ({message_count} messages) and the associated poll. "
            "This action cannot be undone."
            if has_poll
            else f"This will permanently delete the conversation and its {message_count} messages. "
            "This action cannot be undone."
        ),
        confirm_button_text="Delete Permanently",
        cancel_button_text="Cancel",
    )


def build_error_messages(language: Language = "fr") -> ConfirmationMessages:
    if language == "fr":
        return ConfirmationMessages(
            title="Erreur",
            description="Impossible de préparer la suppression",
            warning_text="Une erreur est survenue",
            confirm_button_text="OK",
            cancel_button_text="Annuler",
        )
    return ConfirmationMessages(
        title="Error",
        description="Unable to prepare deletion",
        warning_text="An error occurred",
        confirm_button_text="OK",
        cancel_button_text="Cancel",
    )
