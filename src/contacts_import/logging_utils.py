from __future__ import annotations

import logging
import os
from typing import Optional

from .config_loader import ImportConfig

LOG_LEVEL_ENV_VAR = "CONTACTS_IMPORT_LOG_LEVEL"

# vobject warns on every recoverable vCard quirk; those records show only at DEBUG.
LIBRARY_LOGGERS = ("vobject",)


def _resolve_level(level_name: str) -> int:
    normalized = (level_name or "INFO").upper()
    if normalized.isdigit():
        return int(normalized)
    level = getattr(logging, normalized, logging.INFO)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(config: ImportConfig, level_override: Optional[str] = None) -> None:
    """
    Set the root level from ``CONTACTS_IMPORT_LOG_LEVEL``, then ``level_override``,
    then ``config.logging.level``, defaulting to ``WARNING``.
    """
    env_level = os.getenv(LOG_LEVEL_ENV_VAR)
    effective_level_name = env_level or level_override or config.logging.level or "WARNING"
    level_value = _resolve_level(effective_level_name)

    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level_value)
    else:
        logging.basicConfig(level=level_value)

    library_level = level_value if level_value <= logging.DEBUG else logging.ERROR
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
