"""Process-wide logging setup for the API server and the CLI."""

import logging
import sys
from typing import Optional, TextIO

from .errors import ConfigurationError
from .settings import Settings

HANDLER_NAME = "cicadacove"

# Request-level chatter from the HTTP stack and the payment SDK
QUIET_LOGGERS = ("httpcore", "httpx", "stripe", "uvicorn.access")


def resolve_level(name: str) -> int:
    """
    Map a level name such as ``"debug"`` to its numeric value.

    Raises:
        ConfigurationError: If the name isn't a standard logging level.
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ConfigurationError("LOG_LEVEL", name, "DEBUG, INFO, WARNING, ERROR or CRITICAL")
    return level


def setup_logging(
    settings: Optional[Settings] = None,
    level: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """
    Install the cicadacove handler on the root logger.

    Calling again replaces the handler installed by an earlier call; handlers
    added by anything else (uvicorn, test runners) are left in place.

    Args:
        settings: Supplies the default level and the format.
        level: Overrides ``settings.log_level`` (the CLI's ``--log-level``).
        stream: Where records go; stdout by default. The CLI passes stderr
            so ``--json`` output stays parseable.
    """
    settings = settings or Settings()
    numeric_level = resolve_level(level or settings.log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        if handler.get_name() == HANDLER_NAME:
            root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(logging.Formatter(settings.log_format))
    root_logger.addHandler(handler)

    # Never louder than WARNING, even when the app runs at DEBUG
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    logging.getLogger(__name__).debug(
        "Logging configured at %s", logging.getLevelName(numeric_level)
    )
    return handler
