# watchservice/utils/logger.py

"""
Logging configuration for watchservice
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Dict
from datetime import datetime, timezone
import json


# Custom formatter for JSON logs
class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'thread': record.threadName,
        }

        # Add exception info if present
        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class ColorFormatter(logging.Formatter):
    """Color formatter for console output"""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[41m',   # Red background
        'RESET': '\033[0m',       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers see the plain record
        record = logging.makeLogRecord(record.__dict__)

        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"

        if record.levelno >= logging.ERROR:
            record.msg = f"{self.COLORS['ERROR']}{record.msg}{self.COLORS['RESET']}"

        return super().format(record)


TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: str = "text",  # text, json, or color
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Setup logging configuration

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (if None, only console logging)
        log_format: Format of logs (text, json, or color)
        max_file_size: Maximum size of log file before rotation
        backup_count: Number of backup files to keep
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)

    if log_format.lower() == "json":
        console_formatter = JsonFormatter()
    elif log_format.lower() == "color":
        console_formatter = ColorFormatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)
    else:  # text
        console_formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)

    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        from logging.handlers import RotatingFileHandler
        file_handler = RotatingFileHandler(
            filename=log_path,
            maxBytes=max_file_size,
            backupCount=backup_count,
            encoding='utf-8'
        )

        if log_format.lower() == "json":
            file_formatter = JsonFormatter()
        else:
            file_formatter = logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)

        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(level)
        root_logger.addHandler(file_handler)

        root_logger.info(f"Logging to file: {log_path}")

    # watchdog logs every inotify detail at DEBUG
    logging.getLogger('watchdog').setLevel(logging.WARNING)

    root_logger.debug(f"Logging configured. Level: {log_level}, Format: {log_format}")

    return root_logger


def get_logger(name: str = None) -> logging.Logger:
    """
    Get logger by name

    Args:
        name: Logger name (usually __name__)
    """
    return logging.getLogger(name)


def log_exception(logger: logging.Logger, exception: Exception,
                  message: str = "Exception occurred", extra: Optional[Dict] = None):
    """
    Log exception with traceback and optional extra context

    Args:
        logger: Logger instance
        exception: Exception to log
        message: Custom message
        extra: Extra context information
    """
    exc_info = (type(exception), exception, exception.__traceback__)

    if extra:
        logger.error(message, exc_info=exc_info, extra=extra)
    else:
        logger.error(message, exc_info=exc_info)
