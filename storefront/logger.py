# storefront/logger.py
"""Central loguru setup; import ``logger`` from here."""
import os
import sys

from loguru import logger

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"

log_format = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        "<c>{name}:{function}:{line}</>",
        "{message}",
    )
)

logger.remove()
logger.add(sys.stdout, format=log_format, level=LOG_LEVEL)

__all__ = ["logger"]
