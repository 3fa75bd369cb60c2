"""Structured logging configuration for the archive service."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger


def _serialize(record: dict[str, Any]) -> str:
    log_data = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["module"],
        "function": record["function"],
        "line": record["line"],
    }
    exception = record["exception"]
    if exception is not None:
        log_data["exception"] = {
            "type": exception.type.__name__ if exception.type else None,
            "value": str(exception.value) if exception.value else None,
        }
    log_data.update({k: v for k, v in record["extra"].items() if k != "_json"})
    return json.dumps(log_data, ensure_ascii=False, default=str)


def _json_sink_format(record: dict[str, Any]) -> str:
    # loguru treats the returned string as a template, so stash the payload in extra.
    record["extra"]["_json"] = _serialize(record)
    return "{extra[_json]}\n"


def setup_logging(
    *,
    level: str = "INFO",
    json_format: bool = False,
    log_file: Path | None = None,
) -> None:
    """Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Whether to emit one JSON object per line (useful for production).
        log_file: Optional path to log file. If None, logs only to stderr.
    """
    logger.remove()

    formatter: Any
    if json_format:
        formatter = _json_sink_format
    else:
        formatter = (
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=formatter,
        level=level,
        colorize=not json_format,
    )

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=formatter,
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        )


__all__ = ["setup_logging"]
