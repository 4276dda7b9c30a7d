"""Loguru sink setup for processes that use the db_core helpers."""

from __future__ import annotations

import os
import sys
from typing import Optional

from loguru import logger


def configure_logging(level: Optional[str] = None) -> str:
    """Replace loguru's default sink with a stderr sink at ``level``."""

    level = (level or os.getenv("LOG_LEVEL") or os.getenv("LOGURU_LEVEL") or "INFO").upper()
    logger.remove()
    logger.add(sys.stderr, level=level)
    logger.info("Logger configured at {level} level", level=level)
    return level
