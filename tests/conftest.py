"""Shared fixtures: an in-memory policy store per test."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from rowaccess import Database, PolicyStore, RoleRegistry

TESTDATA = Path(__file__).parent / "testdata"


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """setup_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def testdata() -> Path:
    return TESTDATA


@pytest.fixture
def db() -> Iterator[Database]:
    database = Database.open("sqlite:///:memory:")
    database.setup()
    yield database
    database.close()


@pytest.fixture
def registry(db: Database) -> RoleRegistry:
    return RoleRegistry(db)


@pytest.fixture
def store(db: Database) -> PolicyStore:
    return PolicyStore(db)
