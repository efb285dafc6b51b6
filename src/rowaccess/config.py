"""Configuration contract for the rowaccess policy store.

This module provides the Pydantic-validated configuration model shared by
the command line and any embedding application (LOG_LEVEL, database URL, etc.).

Direct os.environ/os.getenv usage is limited to load_config_from_env();
everything else receives a RowAccessConfig instance.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

DEFAULT_DATABASE_URL = "sqlite:///rowaccess.db"


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RowAccessConfig(BaseModel):
    """Configuration for a policy store session.

    The store is backed by SQLite: resolution relies on insertion order
    (``rowid``), so other engines are rejected at validation time.
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Storage
    database_url: str = Field(
        default=DEFAULT_DATABASE_URL,
        description="SQLAlchemy URL of the policy store (e.g., sqlite:///policies.db)",
    )
    echo_sql: bool = Field(
        default=False,
        description="Echo every SQL statement through the sqlalchemy.engine logger",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith("sqlite"):
            raise ValueError("Database URL must start with sqlite:// (e.g., sqlite:///policies.db)")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",  # Prevent accidental extra fields
    }


def _env_flag(value: str) -> bool:
    return value.lower() in ("true", "1", "yes", "on")


def load_config_from_env() -> RowAccessConfig:
    """Load configuration from environment variables.

    This is the ONLY place where os.getenv is allowed for these settings.

    Environment variables:
    - LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - LOG_JSON: Use JSON log format (true/false, default: false)
    - ROWACCESS_DATABASE_URL: SQLite URL of the policy store
    - ROWACCESS_ECHO_SQL: Echo SQL statements (true/false, default: false)

    Returns:
        RowAccessConfig instance with values from environment or defaults.
    """
    import os

    return RowAccessConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=_env_flag(os.getenv("LOG_JSON", "false")),
        database_url=os.getenv("ROWACCESS_DATABASE_URL", DEFAULT_DATABASE_URL),
        echo_sql=_env_flag(os.getenv("ROWACCESS_ECHO_SQL", "false")),
    )


__all__ = [
    "DEFAULT_DATABASE_URL",
    "LogLevel",
    "RowAccessConfig",
    "load_config_from_env",
]
