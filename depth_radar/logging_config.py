"""
Logging configuration for Depth Radar.

Console output goes to stderr so detection lines (and --json output) on stdout
stay machine-readable. Supports:
- Colored console levels
- Optional rotating log file
- JSON lines for log shippers
- Environment-based configuration (LOG_LEVEL, LOG_FILE, LOG_JSON, LOG_CONSOLE)
"""

import json
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "depth_radar"
DEFAULT_LOG_FILE = "logs/depth_radar.log"

HUMAN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "%(module)s:%(funcName)s:%(lineno)d - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for terminals."""

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"

        result = super().format(record)

        # Other handlers share the record
        record.levelname = levelname
        return result


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() in ("1", "true", "yes")


def setup_logging(
    name: Optional[str] = PACKAGE_LOGGER,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    console: bool = True,
    json_format: bool = False,
    rotation: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure a logger (the package logger by default).

    Args:
        name: Logger name (None = root logger)
        level: Log level name; falls back to $LOG_LEVEL, then INFO
        log_file: Path to log file; falls back to $LOG_FILE, None = no file
        console: Enable stderr logging
        json_format: Emit JSON lines instead of human-readable text
        rotation: Rotate the log file at max_bytes
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if log_file is None:
        log_file = os.getenv("LOG_FILE")

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        if json_format:
            console_handler.setFormatter(JsonFormatter())
        else:
            console_handler.setFormatter(ColoredFormatter(HUMAN_FORMAT, DATE_FORMAT))
        logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        if rotation:
            file_handler: logging.Handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        else:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")

        file_handler.setLevel(numeric_level)
        if json_format:
            file_handler.setFormatter(JsonFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def log_exception(
    logger: logging.Logger,
    exc: Exception,
    message: str = "An exception occurred",
    level: int = logging.ERROR,
) -> None:
    """Log an exception with full traceback."""
    logger.log(level, f"{message}: {exc}", exc_info=True)


def configure_default_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the package logger from the environment.

    - LOG_LEVEL: Logging level (default: INFO, or the level argument)
    - LOG_FILE: Log file path (default: no file; set to "default" for logs/depth_radar.log)
    - LOG_JSON: Use JSON format (default: false)
    - LOG_CONSOLE: Enable console output (default: true)
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    log_file = os.getenv("LOG_FILE") or None
    if log_file == "default":
        log_file = DEFAULT_LOG_FILE

    logger = setup_logging(
        level=level,
        log_file=log_file,
        console=_env_flag("LOG_CONSOLE", True),
        json_format=_env_flag("LOG_JSON", False),
    )
    logger.debug(f"Logging initialized (level={level}, file={log_file})")
    return logger
