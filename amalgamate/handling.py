"""Error handling policies and small logging helpers."""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import PurePath

logger = logging.getLogger(__name__)

_NO_FILE_NAME = "<no file name?>"


class AmalgamateError(Exception):
    """Raised when amalgamation cannot continue."""


class ErrorHandling(Enum):
    """How a recoverable problem is dealt with."""

    ERROR = "error"
    WARN = "warn"
    IGNORE = "ignore"

    @classmethod
    def names(cls) -> list[str]:
        return [member.value for member in cls]


def parse_error_handling(text: str) -> ErrorHandling:
    """Parse one of ``error``, ``warn`` or ``ignore``."""
    try:
        return ErrorHandling(text)
    except ValueError:
        raise AmalgamateError(f'Invalid error level: "{text}"') from None


def debug_file_name(path: str | os.PathLike[str]) -> str:
    """Return the final component of ``path`` for log messages."""
    name = PurePath(path).name
    return name if name else _NO_FILE_NAME


def handle(handling: ErrorHandling, message: str) -> None:
    """Raise, warn about or quietly note ``message`` according to ``handling``."""
    if handling is ErrorHandling.ERROR:
        raise AmalgamateError(message)
    if handling is ErrorHandling.WARN:
        logger.warning("%s", message)
    else:
        logger.debug("Ignoring: %s", message)