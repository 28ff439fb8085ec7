"""Logging configuration"""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(level: str = "INFO", log_dir: Union[str, Path, None] = None,
                  file_logging: bool = True, rotation: str = "1 day",
                  retention: str = "7 days") -> Optional[Path]:
    """
    Configure loguru sinks for the application

    Args:
        level: Console log level
        log_dir: Directory for log files (defaults to <data dir>/logs)
        file_logging: Also write a rotating debug log file
        rotation: loguru rotation policy for the file sink
        retention: loguru retention policy for the file sink

    Returns:
        The log directory when file logging is enabled
    """
    logger.remove()  # Remove default handler

    logger.add(sys.stderr, level=level.upper(), format=CONSOLE_FORMAT)

    if not file_logging:
        return None

    if log_dir is None:
        from .config_manager import get_data_dir
        log_dir = get_data_dir() / 'logs'

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.add(
        log_dir / "clipstash_{time:YYYY-MM-DD}.log",
        rotation=rotation,
        retention=retention,
        level="DEBUG",
        format=FILE_FORMAT,
        enqueue=True
    )
    return log_dir
