"""
Logging Configuration
loguru sinks for console and file, with stdlib logging routed through them
"""

import logging
import sys
from typing import Any, Dict

from loguru import logger as loguru_logger

from sharegate.core.config import settings

# Bound fields that must never reach a sink in clear text
REDACTED_FIELDS = frozenset({"password", "token", "secret", "password_hash", "token_hash"})
REDACTED = "***"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

# Libraries whose own loggers are too chatty below WARNING
QUIET_LOGGERS = ("sqlalchemy", "aiosqlite", "multipart", "python_multipart")


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk back past the logging module to the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.opt(depth=depth, exception=record.exc_info).bind(name=record.name).log(
            level, record.getMessage()
        )


def redact(record: Dict[str, Any]) -> None:
    """loguru patcher masking sensitive bound fields"""
    extra = record["extra"]
    extra.setdefault("name", record["name"])
    for field in REDACTED_FIELDS.intersection(extra):
        extra[field] = REDACTED


def setup_logging() -> None:
    """Configure loguru sinks from settings; safe to call more than once"""
    loguru_logger.remove()
    loguru_logger.configure(patcher=redact)

    if settings.DEBUG:
        loguru_logger.add(sys.stdout, format=CONSOLE_FORMAT, level="DEBUG", colorize=True)
    else:
        # One JSON object per line
        loguru_logger.add(sys.stdout, level=settings.LOG_LEVEL, serialize=True)

    if settings.LOG_FILE:
        loguru_logger.add(
            settings.LOG_FILE,
            rotation="100 MB",
            retention="7 days",
            compression="zip",
            level=settings.LOG_LEVEL,
            serialize=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi"):
        logging.getLogger(name).handlers = [InterceptHandler()]
        logging.getLogger(name).propagate = False
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """Logger bound to a module name"""
    return loguru_logger.bind(name=name)
