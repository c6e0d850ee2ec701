import logging
import os
from typing import Optional

from .config import LOG_LEVEL_VAR


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger
    level_name = (level or os.getenv(LOG_LEVEL_VAR, "INFO")).upper()
    resolved = getattr(logging, level_name, logging.INFO)
    logger.setLevel(resolved)
    handler = logging.StreamHandler()
    handler.setLevel(resolved)
    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def set_level(level: str) -> None:
    """Apply `level` to every logger already created by get_logger in this package."""
    resolved = getattr(logging, level.upper(), logging.INFO)
    for name, logger in logging.Logger.manager.loggerDict.items():
        if not name.startswith("d2p_pak") or not isinstance(logger, logging.Logger):
            continue
        logger.setLevel(resolved)
        for handler in logger.handlers:
            handler.setLevel(resolved)
