"""
Logging setup for the site crawler.
"""

import logging
import logging.handlers
import json
import os
import platform
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone

import psutil

from .config import LoggingConfig


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        if hasattr(record, 'url'):
            log_entry['url'] = record.url

        return json.dumps(log_entry, ensure_ascii=False)


class NoiseFilter(logging.Filter):
    """Drops records from chatty third-party loggers."""

    def __init__(self, suppress_modules: Optional[list] = None):
        super().__init__()
        self.suppress_modules = suppress_modules or [
            'aiohttp.access',
            'asyncio',
            'playwright',
        ]

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.WARNING:
            return True
        return not any(record.name.startswith(module) for module in self.suppress_modules)


def setup_logging(config: LoggingConfig, level: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger with a console handler and a rotating file handler.

    Args:
        config: Logging section of the crawler configuration
        level: Optional level name overriding config.level

    Returns:
        Configured root logger
    """
    log_level = getattr(logging, (level or config.level).upper(), logging.INFO)

    log_file = Path(config.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if config.json:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(config.format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(NoiseFilter())
    root_logger.addHandler(console_handler)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=20 * 1024 * 1024,  # 20MB
        backupCount=3,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    file_handler.addFilter(NoiseFilter())
    root_logger.addHandler(file_handler)

    for logger_name in ('aiohttp', 'asyncio', 'playwright'):
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(f"Logging initialized (level={logging.getLevelName(log_level)}, file={log_file})")
    return root_logger


def log_system_info():
    """Log system and environment information."""
    logger = logging.getLogger(__name__)

    logger.info("=== SYSTEM INFORMATION ===")
    logger.info(f"Platform: {platform.platform()}")
    logger.info(f"Python version: {sys.version.split()[0]}")
    logger.info(f"CPU cores: {psutil.cpu_count()}")
    logger.info(f"Memory: {psutil.virtual_memory().total / 1024**3:.1f} GB")
    logger.debug(f"PID: {os.getpid()}")
