"""Policy store: ingestion of policy sets and resolution of role policies.

Storage convention:
- one ``policies`` row per permitted value per column per role
- a column with no rows for a role is unrestricted for that role, whether it
  was never declared or was declared as ``["__all__"]`` (or ``[]``)
- reloading a role replaces all of its rows, it never merges
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from ..exceptions import RoleNotFound
from ..logging import get_role_logger, safe_preview
from ..storage import Database
from .models import (
    ColumnAccess,
    Policy,
    PolicyItem,
    PolicySet,
    Restricted,
    RoleIngestResult,
    Unrestricted,
)
from .roles import RoleRegistry
from .schema import load_policy_set, parse_policy_set

logger = logging.getLogger(__name__)


class PolicyStore:
    """Ingests policy sets into, and resolves role policies from, a Database.

    Usage::

        with Database.open("sqlite:///policies.db") as db:
            store = PolicyStore(db)
            store.load_file("policies.json")
            print(store.get_policy("north_mgr").to_json())
    """

    def __init__(self, db: Database, registry: RoleRegistry | None = None) -> None:
        self._db = db
        self.registry = registry or RoleRegistry(db)

    # ---- Ingestion ----------------------------------------------------------

    def ingest(self, policy_set: PolicySet) -> list[RoleIngestResult]:
        """Apply every policy in document order.

        Each role is applied in its own transaction. If a role fails, that
        role is rolled back, roles before it stay committed, roles after it
        are not processed, and the error propagates.
        """
        results = [self.ingest_role(policy) for policy in policy_set.policies]
        logger.info(
            "Ingested %d role(s), %d policy row(s)",
            len(results),
            sum(r.rows_written for r in results),
        )
        return results

    def ingest_role(self, policy: Policy) -> RoleIngestResult:
        """Replace ``policy.role``'s stored rows with ``policy``'s items."""
        role = policy.role
        role_logger = get_role_logger(__name__, role=role)
        result = RoleIngestResult(role=role, created=False)

        with self._db.transaction():
            result.created = self.registry.try_register(role)
            if not result.created:
                removed = self._db.execute("delete from policies where role = :role", {"role": role})
                role_logger.debug("Replacing %d existing policy row(s)", removed)

            for item in policy.items:
                if item.grants_all_values:
                    result.unrestricted_columns.append(item.column)
                    continue
                for value in item.values:
                    self._db.execute(
                        "insert into policies (role, control_column, value) values (:role, :column, :value)",
                        {"role": role, "column": item.column, "value": value},
                    )
                result.rows_written += len(item.values)
                role_logger.debug("Restricted %s to %s", item.column, safe_preview(item.values))

        role_logger.info(
            "%s role with %d policy row(s)",
            "Created" if result.created else "Reloaded",
            result.rows_written,
        )
        return result

    def ingest_document(self, data: Union[bytes, str]) -> list[RoleIngestResult]:
        """Validate a raw policy document and ingest it."""
        return self.ingest(parse_policy_set(data))

    def load_file(self, path: Union[str, Path]) -> list[RoleIngestResult]:
        """Read, validate and ingest a policy document file."""
        policy_set = load_policy_set(path)
        logger.info("Loading %d role policy(ies) from %s", len(policy_set.policies), path)
        return self.ingest(policy_set)

    # ---- Resolution ---------------------------------------------------------

    def _require_role(self, role: str) -> None:
        if not self.registry.exists(role):
            raise RoleNotFound(f"Role `{role}` does not exist", role=role)

    def control_columns(self, role: str) -> list[str]:
        """Columns with at least one stored value for ``role``, first-stored first."""
        rows = self._db.query(
            "select control_column from policies where role = :role "
            "group by control_column order by min(rowid)",
            {"role": role},
        )
        return [column for (column,) in rows]

    def get_policy(self, role: str) -> Policy:
        """Return the effective policy of ``role``.

        Unrestricted columns are omitted; a role without any restricted
        column yields a Policy with no items.

        Raises:
            RoleNotFound: ``role`` was never registered.
        """
        self._require_role(role)
        items = [self.get_policy_item(role, column) for column in self.control_columns(role)]
        return Policy(role=role, items=items)

    def get_policy_item(self, role: str, column: str) -> PolicyItem:
        """Return the stored values of ``column`` for ``role``.

        An empty PolicyItem (no column, no values) means "no restriction".
        """
        rows = self._db.query(
            "select value from policies where role = :role and control_column = :column order by rowid",
            {"role": role, "column": column},
        )
        if not rows:
            return PolicyItem()
        return PolicyItem(column=column, values=[value for (value,) in rows])

    def column_access(self, role: str, column: str) -> ColumnAccess:
        """Typed answer to "may ``role`` see every value of ``column``?".

        Raises:
            RoleNotFound: ``role`` was never registered.
        """
        self._require_role(role)
        item = self.get_policy_item(role, column)
        if not item.values:
            return Unrestricted(column=column)
        return Restricted(column=column, values=tuple(item.values))


__all__ = ["PolicyStore"]
