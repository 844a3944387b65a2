# src/area_client/log.py

import sys
from typing import Optional

from loguru import logger

from .config import settings

_handler_id: Optional[int] = None


def configure_logging(level: Optional[str] = None, sink=sys.stderr) -> int:
    """
    Route area-client logging to a single sink.

    Removes loguru's default handler (or the one added by a previous call)
    and adds ``sink`` at ``level``, defaulting to AREA_LOG_LEVEL.
    Returns the new handler id.
    """
    global _handler_id
    if _handler_id is None:
        logger.remove()
    else:
        try:
            logger.remove(_handler_id)
        except ValueError:
            # already removed by someone else
            pass
    _handler_id = logger.add(sink, level=level or settings.AREA_LOG_LEVEL, colorize=False)
    logger.debug("area-client: logging configured at {}", level or settings.AREA_LOG_LEVEL)
    return _handler_id
