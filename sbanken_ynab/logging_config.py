"""
Logging configuration for the sbanken_ynab package.

The entry point calls ``configure_logging()`` once at startup. Library modules
only use ``logging.getLogger(__name__)`` and never attach handlers of their own.
"""

import logging
import sys
from typing import IO, Optional, Union

_PKG_LOGGER_NAME = "sbanken_ynab"
_CONFIGURED = False


def _parse_level(level: Union[int, str]) -> Optional[int]:
    """Numeric level for an int, a digit string or a level name; None if unknown."""
    if isinstance(level, int):
        return level
    level = level.strip().upper()
    if level.isdigit():
        return int(level)
    numeric = getattr(logging, level, None)
    if isinstance(numeric, int):
        return numeric
    return None


def configure_logging(level: Union[int, str] = logging.INFO, stream: IO[str] = sys.stdout) -> None:
    """
    Attach a single stdout handler to the package logger.

    Safe to call more than once; only the first call has an effect.
    An unknown level name falls back to INFO with a warning.

    Args:
        level: Level as int or name ("INFO", "DEBUG", ...)
        stream: Output stream, standard output by default
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))

    numeric_level = _parse_level(level)
    logger.setLevel(numeric_level if numeric_level is not None else logging.INFO)
    logger.addHandler(handler)
    # Avoid double emission via the root logger
    logger.propagate = False

    _CONFIGURED = True

    if numeric_level is None:
        logger.warning(f"Unknown log level {level!r}, using INFO")
