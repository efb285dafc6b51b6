"""JSON Schema validation of policy documents.

Documents are parsed as generic JSON first, so malformed syntax
(``ParseError``) is reported separately from well-formed documents that do
not describe a policy set (``SchemaError``). Nothing here touches the store.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError as InvalidSchema
from jsonschema.protocols import Validator

from ..exceptions import ConfigurationError, DocumentReadError, ParseError, SchemaError
from .models import PolicySet

POLICY_SET_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "PolicySet",
    "type": "object",
    "required": ["policies"],
    "additionalProperties": False,
    "properties": {
        "policies": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["role", "policy"],
                "additionalProperties": False,
                "properties": {
                    "role": {"type": "string"},
                    "policy": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["column", "values"],
                            "additionalProperties": False,
                            "properties": {
                                "column": {"type": "string"},
                                "values": {
                                    "type": "array",
                                    "items": {"type": "string"},
                                },
                            },
                        },
                    },
                },
            },
        },
    },
}

_validator: Optional[Validator] = None


def compile_schema(schema: dict[str, Any] = POLICY_SET_SCHEMA) -> Validator:
    """Check ``schema`` against its metaschema and return a reusable validator."""
    try:
        Draft202012Validator.check_schema(schema)
    except InvalidSchema as exc:
        raise ConfigurationError(f"Invalid policy set schema: {exc.message}") from exc
    return Draft202012Validator(schema)


def _default_validator() -> Validator:
    global _validator
    if _validator is None:
        _validator = compile_schema()
    return _validator


def _error_path(error: Any) -> str:
    return "$" + "".join(f"[{p}]" if isinstance(p, int) else f".{p}" for p in error.absolute_path)


def validate_document(data: Union[bytes, str], validator: Optional[Validator] = None) -> Any:
    """Parse and schema-check a policy document.

    Returns:
        The parsed JSON instance.

    Raises:
        ParseError: ``data`` is not valid UTF-8 JSON.
        SchemaError: ``data`` does not describe a policy set; ``details["errors"]``
            lists every violation as ``"<path>: <message>"``.
    """
    try:
        instance = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseError(f"Policy document is not valid JSON: {exc}") from exc

    validator = validator or _default_validator()
    errors = sorted(validator.iter_errors(instance), key=_error_path)
    if errors:
        messages = [f"{_error_path(e)}: {e.message}" for e in errors]
        raise SchemaError(
            f"Policy document does not match the policy set schema ({len(errors)} error(s))",
            errors=messages,
        )
    return instance


def parse_policy_set(data: Union[bytes, str]) -> PolicySet:
    """Validate ``data`` and build a PolicySet from it."""
    return PolicySet.model_validate(validate_document(data))


def load_policy_set(path: Union[str, Path]) -> PolicySet:
    """Read, validate and parse a policy document file."""
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise DocumentReadError(f"Could not read policy document {path}: {exc}", path=str(path)) from exc
    return parse_policy_set(data)


__all__ = [
    "POLICY_SET_SCHEMA",
    "compile_schema",
    "load_policy_set",
    "parse_policy_set",
    "validate_document",
]
