#!/usr/bin/env python3
"""
Logger Factory - Structured JSONL Health Logging with Rotation

Provides the HEALTH_LOG used for memory heartbeats and probe diagnostics.

Features:
- Session correlation ID injection from a ContextVar
- JSONL output with mandatory fields
- Daily rotation with gzip compression

Usage:
    from core.logger_factory import HEALTH_LOG, log_event

    log_event(
        HEALTH_LOG(),
        "memory_snapshot",
        max_memory_bytes=4294967296,
        committed_memory_bytes=73400320,
    )
"""

import json
import logging
import gzip
import os
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Dict, Optional, Tuple

import config

session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


class JsonlFormatter(logging.Formatter):
    """
    JSON Lines formatter with mandatory correlation fields.

    Each log line is a complete JSON object with:
    - ts_ns: Nanosecond timestamp
    - level: Log level (INFO, ERROR, etc.)
    - event: Event type (memory_snapshot, etc.)
    - component: Logger name
    - session_id: Correlation ID
    - message: Human-readable message
    - Additional event-specific fields from extra_fields
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSONL."""
        ts_ns = int(datetime.now(tz=timezone.utc).timestamp() * 1_000_000_000)

        payload = {
            "ts_ns": ts_ns,
            "level": record.levelname,
            "component": record.name,
            "event": getattr(record, "event", None),
            "message": record.getMessage(),
            "session_id": session_id_var.get(),
        }

        extra_fields = getattr(record, "extra_fields", {})
        payload.update(extra_fields)

        # Filter out None values for cleaner output
        payload_clean = {k: v for k, v in payload.items() if v is not None}

        return json.dumps(payload_clean, ensure_ascii=False, default=str)


class GzTimedHandler(TimedRotatingFileHandler):
    """
    Timed rotating handler with automatic gzip compression.

    Rotates daily at midnight UTC and compresses old files.
    """

    def rotation_filename(self, default_name: str) -> str:
        """Add .gz extension to rotated files."""
        return default_name + ".gz"

    def rotate(self, source: str, dest: str) -> None:
        """Rotate and compress the log file."""
        if os.path.exists(source):
            with open(source, 'rb') as f_in:
                with gzip.open(dest, 'wb') as f_out:
                    f_out.writelines(f_in)
            os.remove(source)


# Global logger cache: name -> (file_path, logger)
_logger_cache: Dict[str, Tuple[str, logging.Logger]] = {}


def _make_handler(file_path: str, backup_count: int = 14) -> logging.Handler:
    """
    Create rotating file handler with JSONL formatter.

    Args:
        file_path: Path to log file
        backup_count: Number of daily backups to keep

    Returns:
        Configured handler
    """
    os.makedirs(os.path.dirname(file_path), exist_ok=True)

    handler = GzTimedHandler(
        filename=file_path,
        when='midnight',
        interval=1,
        backupCount=backup_count,
        utc=True,
        encoding='utf-8'
    )
    handler.setFormatter(JsonlFormatter())
    handler.setLevel(logging.DEBUG)

    return handler


def get_logger(name: str, file_path: str, backup_count: int = 14) -> logging.Logger:
    """
    Get or create a logger with JSONL output.

    A logger writes to one file: asking for a known name with a new path
    replaces its handler.

    Args:
        name: Logger name (e.g., "health")
        file_path: Path to log file
        backup_count: Number of daily backups to keep

    Returns:
        Configured logger
    """
    cached = _logger_cache.get(name)
    if cached is not None:
        cached_path, logger = cached
        if cached_path == file_path:
            return logger
        _remove_jsonl_handlers(logger)

    logger = logging.getLogger(name)
    logger.setLevel(config.get_config("LOG_LEVEL", "INFO"))
    logger.propagate = False  # Don't propagate to root logger

    logger.addHandler(_make_handler(file_path, backup_count))

    _logger_cache[name] = (file_path, logger)
    return logger


def _remove_jsonl_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if isinstance(handler, GzTimedHandler):
            logger.removeHandler(handler)
            handler.close()


def close_loggers() -> None:
    """Close and detach every cached JSONL handler (shutdown and tests)."""
    for _path, logger in _logger_cache.values():
        _remove_jsonl_handlers(logger)
    _logger_cache.clear()


def HEALTH_LOG() -> logging.Logger:
    """Get health logger (heartbeats, memory snapshots, probe diagnostics)."""
    return get_logger(
        "health",
        config.get_config("HEALTH_LOG_FILE"),
        config.get_config("HEALTH_LOG_BACKUP_DAYS", 14),
    )


def log_event(
    logger: logging.Logger,
    event: str,
    message: str = "",
    level: int = logging.INFO,
    **fields: Any
) -> None:
    """
    Log a structured event with type-safe fields.

    Args:
        logger: Logger instance (from HEALTH_LOG())
        event: Event type (e.g., "memory_snapshot")
        message: Human-readable message (optional)
        level: Log level (default: INFO)
        **fields: Event-specific fields
    """
    logger.log(
        level,
        message or event,
        extra={
            "event": event,
            "extra_fields": fields
        }
    )
