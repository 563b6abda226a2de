"""
Logging setup for the OCR analyzer.

The live display owns stdout, so log records go to stderr and/or a
rotating file. Every option can also come from the environment:

    LOG_LEVEL    DEBUG | INFO | WARNING | ERROR | CRITICAL
    LOG_FILE     path of a rotating log file (unset = no file)
    LOG_CONSOLE  "true" / "false"
    LOG_JSON     "true" for one JSON object per line
"""

import json
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import IO, Optional

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """Colors the level name; the record itself is left untouched."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno)
        if color is None:
            return super().format(record)

        plain = record.levelname
        record.levelname = f"{color}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    return default if value is None else value.strip().lower() in ("1", "true", "yes")


def setup_logging(
    name: Optional[str] = None,
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    console: Optional[bool] = None,
    json_format: Optional[bool] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    stream: Optional[IO[str]] = None,
) -> logging.Logger:
    """
    (Re)configure logger `name`, replacing any handlers it already has.

    Arguments left as None are read from the environment (see module
    docstring). A named logger stops propagating so records are not
    printed twice by the root logger.
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_file = os.getenv("LOG_FILE") if log_file is None else log_file
    console = _env_flag("LOG_CONSOLE", True) if console is None else console
    json_format = _env_flag("LOG_JSON", False) if json_format is None else json_format

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level, logging.INFO))
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    plain = JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT, DATE_FORMAT)

    if console:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(plain if json_format else ColoredFormatter(TEXT_FORMAT, DATE_FORMAT))
        logger.addHandler(handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        handler.setFormatter(plain)
        logger.addHandler(handler)

    if name is not None:
        logger.propagate = False
    return logger


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    message: str = "An exception occurred",
    level: int = logging.ERROR,
) -> None:
    """Log `message: exc` with the exception's traceback attached."""
    logger.log(level, f"{message}: {exc}", exc_info=exc)


def configure_default_logging(level: Optional[str] = None) -> logging.Logger:
    """CLI logging: the `ocr_analyzer` tree at WARNING unless overridden."""
    level = level or os.getenv("LOG_LEVEL", "WARNING")
    logger = setup_logging(name="ocr_analyzer", level=level)
    logger.debug(f"Logging initialized at {level.upper()}")
    return logger
