"""Centralized logging utilities for rowaccess.

This module provides:
- Logging configuration from RowAccessConfig
- Safe preview utility for long value lists
- Structured (JSON) or plain text formatting
- Automatic role propagation for role-scoped log records
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from .config import LogLevel, RowAccessConfig


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a length-bounded, single-line preview of a value for logging.

    Policy items may list hundreds of permitted values; log records carry
    a preview instead of the full list.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list, tuple)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    # Normalize whitespace (replace newlines, tabs, multiple spaces with single space)
    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "message", "pathname", "process", "processName", "relativeCreated",
        "thread", "threadName", "exc_info", "exc_text", "stack_info",
        "taskName", "role",
    }
)


class RowAccessFormatter(logging.Formatter):
    """Formatter that includes the role and optional structured JSON output.

    This formatter:
    - Extracts role from log records (if available)
    - Formats logs as JSON for structured logging
    - Includes safe previews of extra fields
    """

    def __init__(self, json_format: bool = True, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        role = getattr(record, "role", None)

        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if role:
            log_data["role"] = role

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = safe_preview(value)

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        if role:
            parts.append(f"role={role}")
        parts.append(f": {log_data['message']}")
        line = " ".join(parts)
        if "exception" in log_data:
            line = f"{line}\n{log_data['exception']}"
        return line


class RoleLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds the role being processed to log records.

    Usage:
        logger = get_role_logger(__name__, role="north_mgr")
        logger.info("Replacing policy rows")
    """

    def __init__(self, logger: logging.Logger, role: Optional[str] = None):
        super().__init__(logger, {})
        self.role = role

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        role = kwargs.pop("role", self.role)
        extra = kwargs.get("extra", {})
        if role:
            extra["role"] = role
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    config: Optional[RowAccessConfig] = None,
    json_format: Optional[bool] = None,
) -> None:
    """Configure logging for the policy store.

    This function:
    - Sets up logging level from RowAccessConfig
    - Attaches a single stderr handler to the root logger
    - Routes SQL echo through the sqlalchemy.engine logger when enabled

    Args:
        config: RowAccessConfig instance (if None, loads from environment)
        json_format: Override config.log_json
    """
    if config is None:
        from .config import load_config_from_env
        config = load_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)
    if json_format is None:
        json_format = config.log_json

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(RowAccessFormatter(json_format=json_format))
    root_logger.addHandler(console_handler)

    if config.echo_sql:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)


def get_role_logger(name: str, role: Optional[str] = None) -> RoleLoggerAdapter:
    """Get a logger adapter that tags every record with ``role``.

    Args:
        name: Logger name (typically __name__)
        role: Role the records refer to

    Returns:
        RoleLoggerAdapter instance
    """
    return RoleLoggerAdapter(logging.getLogger(name), role=role)


__all__ = [
    "safe_preview",
    "RowAccessFormatter",
    "RoleLoggerAdapter",
    "setup_logging",
    "get_role_logger",
]
