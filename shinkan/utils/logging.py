"""
Logging setup for the shinkan logger tree.

Every module logs through logging.getLogger(__name__), so all records end
up under the "shinkan" logger configured here: a RichHandler for the
console and, when enabled, a JSONL (or plain text) file. Structured fields
passed to log_event() become top-level keys of each JSONL line.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rich.logging import RichHandler

from ..config import LoggingConfig
from ..errors import ConfigurationError

ROOT_LOGGER = "shinkan"


def setup_logging(cfg: LoggingConfig, log_dir: Path | None = None) -> logging.Logger:
    """Configure the package logger from cfg.

    Args:
        cfg: Logging section of the app config
        log_dir: Directory of the log file, defaults to cfg.directory

    Returns:
        The configured "shinkan" logger
    """
    level = _level_from_string(cfg.level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False

    if cfg.console:
        console_handler = RichHandler(rich_tracebacks=True, show_time=True, show_path=False)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(console_handler)

    if cfg.file:
        directory = log_dir if log_dir is not None else Path(cfg.directory)
        directory.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(directory / cfg.filename, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(_build_file_formatter(cfg.format))
        logger.addHandler(file_handler)

    return logger


def log_event(logger: logging.Logger | None, message: str, level: int = logging.INFO, **fields: Any) -> None:
    """Log message with fields attached as record attributes.

    Field names must not collide with LogRecord attributes ("name",
    "message", ...); use feed= or feed_id= for feed identity.
    """
    if logger is None:
        return
    logger.log(level, message, extra=fields)


class JsonlFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extract_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


# Standard LogRecord attributes; anything else came in through extra=
_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


def _extract_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _RESERVED}


def _build_file_formatter(fmt: str) -> logging.Formatter:
    if fmt == "jsonl":
        return JsonlFormatter()
    if fmt == "plain":
        return logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    raise ConfigurationError(f"unknown log format: {fmt}")


def _level_from_string(level: str) -> int:
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ConfigurationError(f"unknown log level: {level}")
    return value
