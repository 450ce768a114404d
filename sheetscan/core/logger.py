"""
Logging utilities for the sheet normalizer.

Module loggers are named after their module ("sheetscan.normalizer.markers",
...) and propagate to the "sheetscan" logger configured here. Job-level
records from the hosting service go to a separate "service" log.
"""
import logging
import sys
from datetime import datetime
from typing import Union

from ..config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def resolve_level(level: Union[int, str, None]) -> int:
    """Map a level name (or None for settings.LOG_LEVEL) to a logging constant"""
    if level is None:
        level = settings.LOG_LEVEL
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        return resolved
    return level


def setup_logger(name: str, log_file: str = None, level: Union[int, str] = None) -> logging.Logger:
    """
    Setup logger with file and console handlers

    Args:
        name: Logger name
        log_file: Optional log file name, created under settings.LOGS_DIR
        level: Logging level or level name (defaults to settings.LOG_LEVEL)

    Returns:
        Configured logger
    """
    level = resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Already configured: only the level may change
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.LOGS_DIR / log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Records are written here; do not repeat them through the root logger
    logger.propagate = False
    return logger


def dated_log_name(prefix: str) -> str:
    """e.g. 'service_20260101.log'"""
    return f'{prefix}_{datetime.now().strftime("%Y%m%d")}.log'


# Job-level log for the hosting service
service_logger = setup_logger('service', dated_log_name('service'))

# Module loggers ("sheetscan.*") propagate here
logger = setup_logger('sheetscan', dated_log_name('app'))
