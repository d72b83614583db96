"""
Runtime settings for the toolkit.

Every setting has a module-level default that can be overridden through an
environment variable:

    CONVERSATION_HISTORY_LANGUAGE       'fr' (default) or 'en', language of the
                                        deletion confirmation texts.
    CONVERSATION_HISTORY_LOG_LEVEL      loguru level used by 'configure_logging'.
    CONVERSATION_HISTORY_AUTO_ROLLBACK  '1' (default) / '0', whether the
                                        controller rolls back a failed delete
                                        on its own.
"""

import os
from typing import Literal

from pydantic import BaseModel

Language = Literal["fr", "en"]

DEFAULT_LANGUAGE: Language = "fr"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_AUTO_ROLLBACK = True

_TRUTHY = {"1", "true", "yes", "on"}


class ToolkitSettings(BaseModel):
    language: Language = DEFAULT_LANGUAGE
    log_level: str = DEFAULT_LOG_LEVEL
    auto_rollback: bool = DEFAULT_AUTO_ROLLBACK


def load_settings() -> ToolkitSettings:
    """Build 'ToolkitSettings' from the environment, falling back to the module defaults."""
    language = os.environ.get("CONVERSATION_HISTORY_LANGUAGE", DEFAULT_LANGUAGE).lower().strip()
    if language not in ("fr", "en"):
        raise ValueError(f"Unsupported language {language!r}. Choose 'fr' or 'en'.")
    auto_rollback = os.environ.get("CONVERSATION_HISTORY_AUTO_ROLLBACK")
    return ToolkitSettings(
        language=language,  # type: ignore[arg-type]
        log_level=os.environ.get("CONVERSATION_HISTORY_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        auto_rollback=DEFAULT_AUTO_ROLLBACK if auto_rollback is None else auto_rollback.lower() in _TRUTHY,
    )
