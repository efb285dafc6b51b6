"""Unified exception hierarchy for rowaccess.

All errors raised by the policy store inherit from RowAccessError. This module provides:
- Base exception hierarchy with stable error codes
- Exit-code mapping for the command line
- CLI error handler decorator

Usage:
    from rowaccess.exceptions import (
        RowAccessError,
        RoleNotFound,
        StorageError,
        cli_error_handler,
    )
"""

from __future__ import annotations

import functools
import logging
import sys
from typing import Any, Callable, TypeVar, cast

__all__ = [
    # Base hierarchy
    "RowAccessError",
    "ConfigurationError",
    "StoreNotInitialized",
    "PolicyDocumentError",
    "DocumentReadError",
    "ParseError",
    "SchemaError",
    "InvalidRoleName",
    "RoleNotFound",
    "StorageError",
    "DatabaseConnectionError",
    # CLI helpers
    "get_exit_code",
    "cli_error_handler",
]

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class RowAccessError(Exception):
    """Base exception for the policy store.

    Attributes:
        code: Stable error code string (e.g. "ROLE_NOT_FOUND").
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(RowAccessError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class StoreNotInitialized(ConfigurationError):
    """The roles/policies relations do not exist yet."""

    code: str = "STORE_NOT_INITIALIZED"
    message: str = "Policy store is not initialized (run `rowaccess init` first)"


class PolicyDocumentError(RowAccessError):
    """A policy document could not be turned into a PolicySet."""

    code: str = "POLICY_DOCUMENT_ERROR"


class DocumentReadError(PolicyDocumentError):
    """The policy document could not be read from disk."""

    code: str = "DOCUMENT_READ_ERROR"


class ParseError(PolicyDocumentError):
    """Input is not well-formed JSON."""

    code: str = "PARSE_ERROR"


class SchemaError(PolicyDocumentError):
    """Well-formed document that does not conform to the policy set schema."""

    code: str = "SCHEMA_ERROR"


class InvalidRoleName(RowAccessError):
    """Role name does not match the role-name grammar."""

    code: str = "INVALID_ROLE_NAME"


class RoleNotFound(RowAccessError):
    """Resolution requested for a role that was never registered."""

    code: str = "ROLE_NOT_FOUND"


class StorageError(RowAccessError):
    """Database open, exec or query failure."""

    code: str = "STORAGE_ERROR"


class DatabaseConnectionError(StorageError):
    """Failed to connect to the database."""

    code: str = "DB_CONNECTION_ERROR"


# ---- CLI Error Handling Utilities -------------------------------------------

_EXIT_CODES = {
    "CONFIGURATION_ERROR": 3,
    "STORE_NOT_INITIALIZED": 3,
    "POLICY_DOCUMENT_ERROR": 4,
    "DOCUMENT_READ_ERROR": 4,
    "PARSE_ERROR": 4,
    "SCHEMA_ERROR": 4,
    "INVALID_ROLE_NAME": 5,
    "ROLE_NOT_FOUND": 6,
    "STORAGE_ERROR": 7,
    "DB_CONNECTION_ERROR": 7,
}

_F = TypeVar("_F", bound=Callable[..., int])


def get_exit_code(error: RowAccessError) -> int:
    """Map RowAccessError to a process exit status.

    Unknown codes map to 1. Status 2 is left to argparse usage errors.
    """
    return _EXIT_CODES.get(error.code, 1)


def cli_error_handler(handler: _F) -> _F:
    """Decorator for CLI command handlers with proper error handling.

    Catches RowAccessError, logs it, prints a one-line message to stderr
    and returns the mapped exit status instead of raising.

    Usage:
        @cli_error_handler
        def _handle_show(args: argparse.Namespace) -> int:
            ...
    """

    @functools.wraps(handler)
    def wrapper(*args: Any, **kwargs: Any) -> int:
        try:
            return handler(*args, **kwargs)
        except RowAccessError as e:
            error_message = f"[{e.code}] {e.message}"

            logger.error(
                "%s failed: %s",
                handler.__name__,
                error_message,
                extra={
                    "error_code": e.code,
                    "error_details": e.details,
                },
            )

            print(f"error: {error_message}", file=sys.stderr)
            for detail in e.details.get("errors", ()):
                print(f"  - {detail}", file=sys.stderr)
            return get_exit_code(e)

    return cast(_F, wrapper)
