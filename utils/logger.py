import logging
import os
import sys
from typing import Optional, Union

LOGGER_NAME = "spotify_cli"
LOG_LEVEL_ENV = "SPOTIFY_CLI_LOG_LEVEL"
LOG_FORMAT = "%(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_logger = logging.getLogger(LOGGER_NAME)


def _resolve_level(level: Optional[Union[int, str]]) -> int:
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: Optional[Union[int, str]] = None) -> logging.Logger:
    """Configure console logging for the CLI.

    Output goes to stderr so command results printed on stdout stay clean.
    The level comes from ``level``, then SPOTIFY_CLI_LOG_LEVEL, then INFO.
    Calling this more than once replaces the previous handler.
    """
    resolved = _resolve_level(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(DEBUG_LOG_FORMAT if resolved <= logging.DEBUG else LOG_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_spotify_cli_handler", False):
            root.removeHandler(existing)
    handler._spotify_cli_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(resolved)

    # httpx logs every request at INFO; only surface it when debugging.
    logging.getLogger("httpx").setLevel(logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING)
    return _logger


def log_info(message: str) -> None:
    _logger.info(message)


def log_success(message: str) -> None:
    _logger.info(f"✅ {message}")


def log_warning(message: str) -> None:
    _logger.warning(f"⚠️ {message}")


def log_error(message: str) -> None:
    _logger.error(f"❌ {message}")


def log_debug(message: str) -> None:
    _logger.debug(message)
