"""Role registry: which role names the store knows about.

A role must be registered before any policy row may reference it, and
only well-formed names are ever registered.
"""

from __future__ import annotations

import logging
import re

from ..exceptions import InvalidRoleName
from ..storage import Database

logger = logging.getLogger(__name__)

MAX_ROLE_NAME_LENGTH = 255

# First character a letter, last a letter or digit, so at least two characters.
ROLE_NAME_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_-]*[A-Za-z0-9]")


def is_valid_role_name(role: str) -> bool:
    """Return True if ``role`` may be registered.

    A valid role name:
    - starts with a letter and ends with a letter or digit
    - contains only letters, digits, hyphens and underscores
    - is between 2 and 255 characters long
    """
    return (
        isinstance(role, str)
        and 0 < len(role) <= MAX_ROLE_NAME_LENGTH
        and ROLE_NAME_PATTERN.fullmatch(role) is not None
    )


class RoleRegistry:
    """Tracks role names in the ``roles`` relation."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def exists(self, role: str) -> bool:
        rows = self._db.query("select 1 from roles where role = :role", {"role": role})
        return bool(rows)

    def try_register(self, role: str) -> bool:
        """Register ``role`` unless it is already known.

        Returns:
            True if the role was inserted, False if it already existed.

        Raises:
            InvalidRoleName: the role is new and its name is malformed.
        """
        with self._db.transaction():
            if self.exists(role):
                return False
            if not is_valid_role_name(role):
                raise InvalidRoleName(f"Invalid role name: {role!r}", role=role)
            self._db.execute("insert into roles (role) values (:role)", {"role": role})
        logger.debug("Registered role %s", role)
        return True

    def list_roles(self) -> list[str]:
        return [role for (role,) in self._db.query("select role from roles order by role")]


__all__ = [
    "MAX_ROLE_NAME_LENGTH",
    "ROLE_NAME_PATTERN",
    "RoleRegistry",
    "is_valid_role_name",
]
