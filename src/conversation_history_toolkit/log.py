"""
loguru setup.

The package disables its own loguru records on import so that embedding it in
an application stays silent by default. 'configure_logging' turns them back on
and installs a sink at the configured level.
"""

import sys
from typing import Any, TextIO

from loguru import logger

from conversation_history_toolkit.config import load_settings

PACKAGE_NAME = "conversation_history_toolkit"


def configure_logging(level: str | None = None, sink: TextIO | Any = sys.stderr) -> int:
    """Enable toolkit logging and route it to 'sink'. Returns the loguru handler id."""
    level = level or load_settings().log_level
    logger.enable(PACKAGE_NAME)
    return logger.add(
        sink,
        level=level,
        filter=PACKAGE_NAME,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function} - {message}",
    )
