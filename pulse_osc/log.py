"""Logging setup for the console driver."""

import logging
import sys

APP_LOGGER = "pulse_osc"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _resolve_level(level: str) -> int | None:
    """Map a level name to its numeric value, or None if unknown."""
    name = level.upper()
    if name not in VALID_LEVELS:
        return None
    return getattr(logging, name)


def setup_logging(level: str = "INFO") -> None:
    """Send logs to stderr, keeping stdout for the device list and prompts.

    Third-party loggers (bleak, platform backends) stay at WARNING; the
    pulse_osc logger uses the requested level.
    """
    numeric_level = _resolve_level(level)

    logging.basicConfig(
        level=logging.WARNING,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stderr,
        force=True,
    )

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.setLevel(numeric_level if numeric_level is not None else logging.INFO)
    if numeric_level is None:
        app_logger.warning("Unknown log level '%s', defaulting to INFO", level)
