"""Command line interface for the rowaccess policy store."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from pydantic import ValidationError

from .config import LogLevel, RowAccessConfig, load_config_from_env
from .exceptions import ConfigurationError, StoreNotInitialized, cli_error_handler
from .logging import setup_logging
from .policy import PolicyItem, PolicyStore, Restricted, RoleRegistry, load_policy_set
from .storage import Database


def _resolve_config(args: argparse.Namespace) -> RowAccessConfig:
    """Environment configuration with command line overrides applied."""
    overrides = {}
    if args.database:
        overrides["database_url"] = args.database
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.log_json:
        overrides["log_json"] = True
    try:
        config = load_config_from_env()
        if not overrides:
            return config
        return RowAccessConfig(**{**config.model_dump(), **overrides})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc.errors()[0]['msg']}") from exc


def _open_store(config: RowAccessConfig, require_initialized: bool = True) -> Database:
    db = Database.open(config.database_url)
    if require_initialized and not db.is_initialized():
        db.close()
        raise StoreNotInitialized(url=config.database_url)
    return db


@cli_error_handler
def _handle_init(args: argparse.Namespace) -> int:
    with _open_store(args.config, require_initialized=False) as db:
        db.setup(reset=True)
    print(f"Initialized policy store at {args.config.database_url}")
    return 0


@cli_error_handler
def _handle_validate(args: argparse.Namespace) -> int:
    for path in args.files:
        policy_set = load_policy_set(path)
        print(f"{path}: ok ({len(policy_set.policies)} role policy(ies))")
    return 0


@cli_error_handler
def _handle_load(args: argparse.Namespace) -> int:
    with _open_store(args.config) as db:
        store = PolicyStore(db)
        for path in args.files:
            for result in store.load_file(path):
                action = "created" if result.created else "replaced"
                print(f"{result.role}: {action}, {result.rows_written} value(s)")
    return 0


@cli_error_handler
def _handle_show(args: argparse.Namespace) -> int:
    with _open_store(args.config) as db:
        store = PolicyStore(db)
        if args.column:
            access = store.column_access(args.role, args.column)
            if isinstance(access, Restricted):
                item = PolicyItem(column=access.column, values=list(access.values))
            else:
                item = PolicyItem()
            print(item.to_json())
        else:
            print(store.get_policy(args.role).to_json())
    return 0


@cli_error_handler
def _handle_roles(args: argparse.Namespace) -> int:
    with _open_store(args.config) as db:
        for role in RoleRegistry(db).list_roles():
            print(role)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rowaccess",
        description="Manage row-level access policies: load policy documents and resolve role policies.",
    )
    parser.add_argument(
        "--database",
        help="SQLite URL of the policy store (default: $ROWACCESS_DATABASE_URL or sqlite:///rowaccess.db)",
    )
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit JSON log records")

    subparsers = parser.add_subparsers(dest="command")

    init_parser = subparsers.add_parser("init", help="Create the policy tables, deleting existing rows")
    init_parser.set_defaults(func=_handle_init)

    validate_parser = subparsers.add_parser("validate", help="Check policy documents against the schema")
    validate_parser.add_argument("files", nargs="+", help="Policy document(s) to validate")
    validate_parser.set_defaults(func=_handle_validate)

    load_parser = subparsers.add_parser("load", help="Load policy documents, replacing policies of listed roles")
    load_parser.add_argument("files", nargs="+", help="Policy document(s) to load, in order")
    load_parser.set_defaults(func=_handle_load)

    show_parser = subparsers.add_parser("show", help="Print the effective policy of a role as JSON")
    show_parser.add_argument("role", help="Role name")
    show_parser.add_argument("--column", help="Only print the permitted values of this column")
    show_parser.set_defaults(func=_handle_show)

    roles_parser = subparsers.add_parser("roles", help="List known roles")
    roles_parser.set_defaults(func=_handle_roles)

    return parser


@cli_error_handler
def _configure(args: argparse.Namespace) -> int:
    args.config = _resolve_config(args)
    setup_logging(args.config)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, "func", None)
    if handler is None:
        parser.print_help()
        return 1
    status = _configure(args)
    if status:
        return status
    return int(handler(args) or 0)


if __name__ == "__main__":  # pragma: no cover - invoked manually
    sys.exit(main())
