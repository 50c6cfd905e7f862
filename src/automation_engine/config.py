"""Runtime settings read from the environment.

Environment variables:
    AUTOMATION_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default INFO)
    AUTOMATION_DEBOUNCE_MS: Quiet period for debounced triggers (default 300, 0-10000)
    AUTOMATION_HTTP_TIMEOUT_MS: Default remote HTTP timeout (default 5000, 100-600000)
    AUTOMATION_SQL_DATABASE: sqlite database read by the ``sql`` remote type
    AUTOMATION_CONFIG: Automation configuration file
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_debounce_ms() -> int:
    """Get debounce quiet period from environment.

    Reads AUTOMATION_DEBOUNCE_MS environment variable.
    Default: 300, Valid range: 0-10000 (clamped automatically)

    Returns:
        Quiet period in milliseconds
    """
    try:
        value = int(os.getenv("AUTOMATION_DEBOUNCE_MS", "300"))
        return max(0, min(10000, value))
    except ValueError:
        return 300


def get_http_timeout_ms() -> int:
    """Get default remote HTTP timeout from environment.

    Reads AUTOMATION_HTTP_TIMEOUT_MS environment variable.
    Default: 5000, Valid range: 100-600000 (clamped automatically)

    Returns:
        Timeout in milliseconds
    """
    try:
        value = int(os.getenv("AUTOMATION_HTTP_TIMEOUT_MS", "5000"))
        return max(100, min(600000, value))
    except ValueError:
        return 5000


def get_sql_database() -> Path | None:
    """Path of the sqlite database for ``sql`` requests (None if unset)."""
    value = os.getenv("AUTOMATION_SQL_DATABASE", "").strip()
    return Path(value).expanduser() if value else None


def get_log_level() -> int:
    """Validated log level from AUTOMATION_LOG_LEVEL (invalid values warn and use INFO)."""
    level_name = os.getenv("AUTOMATION_LOG_LEVEL", "INFO").upper()
    if level_name not in VALID_LOG_LEVELS:
        print(
            f"Warning: Invalid AUTOMATION_LOG_LEVEL '{level_name}'. "
            f"Valid levels: {', '.join(sorted(VALID_LOG_LEVELS))}. "
            "Using INFO.",
            file=sys.stderr,
        )
        level_name = "INFO"
    return getattr(logging, level_name)


def configure_logging(level: int | None = None) -> None:
    """Configure root logging to stderr.

    Args:
        level: Explicit level (defaults to AUTOMATION_LOG_LEVEL)
    """
    logging.basicConfig(
        level=get_log_level() if level is None else level,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
