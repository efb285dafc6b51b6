"""Tests for PolicyStore ingestion and resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from rowaccess import (
    Database,
    InvalidRoleName,
    Policy,
    PolicyItem,
    PolicySet,
    PolicyStore,
    Restricted,
    RoleNotFound,
    SchemaError,
    StorageError,
    Unrestricted,
)


def _policy(role: str, **columns: list[str]) -> Policy:
    return Policy(role=role, items=[PolicyItem(column=c, values=v) for c, v in columns.items()])


def _rows(db: Database, role: str) -> list[tuple]:
    return db.query(
        "select control_column, value from policies where role = :role order by rowid",
        {"role": role},
    )


class TestIngestAndResolve:
    """Round trips through ingest() and get_policy()."""

    @pytest.mark.parametrize(
        ("policy", "expected"),
        [
            (
                _policy("admin", Region=["one", "two", "three"]),
                '{"role":"admin","policy":[{"column":"Region","values":["one","two","three"]}]}',
            ),
            (
                _policy("east_mgr", State=["__all__"]),
                "null",
            ),
            (
                _policy(
                    "north_mgr",
                    Region=["Northern", "Eastern"],
                    State=["WA", "OR", "CA", "ID", "NV"],
                ),
                '{"role":"north_mgr","policy":[{"column":"Region","values":["Northern","Eastern"]},'
                '{"column":"State","values":["WA","OR","CA","ID","NV"]}]}',
            ),
            (
                _policy("north_mgr", Region=["Northern", "Eastern"], State=["__all__"]),
                '{"role":"north_mgr","policy":[{"column":"Region","values":["Northern","Eastern"]}]}',
            ),
        ],
    )
    def test_round_trip(self, store: PolicyStore, policy: Policy, expected: str) -> None:
        """Rendered resolution reproduces the restricted columns in order."""
        store.ingest(PolicySet(policies=[policy]))
        assert store.get_policy(policy.role).to_json() == expected

    def test_column_order_is_first_ingested(self, store: PolicyStore) -> None:
        """Control columns come back in the order they were stored, not sorted."""
        store.ingest(PolicySet(policies=[_policy("north_mgr", State=["WA"], Region=["Northern"])]))
        assert [i.column for i in store.get_policy("north_mgr").items] == ["State", "Region"]

    def test_roles_are_isolated(self, store: PolicyStore) -> None:
        """One role's rows never leak into another role's policy."""
        store.ingest(
            PolicySet(
                policies=[
                    _policy("north_mgr", Region=["Northern"]),
                    _policy("south_mgr", Region=["Southern"]),
                ]
            )
        )
        assert store.get_policy("north_mgr").items == [PolicyItem(column="Region", values=["Northern"])]
        assert store.get_policy("south_mgr").items == [PolicyItem(column="Region", values=["Southern"])]

    def test_ingest_results(self, store: PolicyStore) -> None:
        """ingest() reports per-role outcomes in document order."""
        results = store.ingest(
            PolicySet(policies=[_policy("north_mgr", Region=["Northern", "Eastern"], State=["__all__"])])
        )
        assert len(results) == 1
        assert results[0].role == "north_mgr"
        assert results[0].created is True
        assert results[0].rows_written == 2
        assert results[0].unrestricted_columns == ["State"]

    def test_role_with_empty_policy_is_registered(self, store: PolicyStore) -> None:
        """A role declared with no items exists and is unrestricted."""
        store.ingest(PolicySet(policies=[Policy(role="sales_manager")]))
        policy = store.get_policy("sales_manager")
        assert policy.role == "sales_manager"
        assert policy.items == []
        assert policy.to_json() == "null"


class TestSentinel:
    """The ``__all__`` sentinel is stored as absence of rows."""

    def test_sentinel_and_empty_values_are_identical(self, db: Database, store: PolicyStore) -> None:
        """["__all__"] and [] leave the same stored state and resolved output."""
        store.ingest(
            PolicySet(
                policies=[
                    _policy("sentinel_role", Region=["__all__"]),
                    _policy("empty_role", Region=[]),
                ]
            )
        )
        assert _rows(db, "sentinel_role") == _rows(db, "empty_role") == []
        assert store.get_policy("sentinel_role").items == store.get_policy("empty_role").items == []

    def test_sentinel_never_stored(self, db: Database, store: PolicyStore) -> None:
        """The sentinel literal is not persisted when it stands alone."""
        store.ingest(PolicySet(policies=[_policy("admin", Region=["__all__"], State=["__all__"])]))
        assert db.query("select count(*) from policies where value = '__all__'") == [(0,)]

    def test_sentinel_among_other_values_is_literal(self, db: Database, store: PolicyStore) -> None:
        """Mixed with other values, ``__all__`` is an ordinary value."""
        store.ingest(PolicySet(policies=[_policy("odd_role", Region=["__all__", "Northern"])]))
        assert _rows(db, "odd_role") == [("Region", "__all__"), ("Region", "Northern")]


class TestReplaceOnReload:
    """Reloading a role replaces its rows."""

    def test_reload_replaces_not_merges(self, store: PolicyStore) -> None:
        """Only the second load's values remain."""
        store.ingest(PolicySet(policies=[_policy("north_mgr", Region=["one", "two"])]))
        results = store.ingest(PolicySet(policies=[_policy("north_mgr", Region=["three", "four"])]))
        assert results[0].created is False
        assert store.get_policy("north_mgr").items == [PolicyItem(column="Region", values=["three", "four"])]

    def test_reload_with_sentinel_clears_column(self, db: Database, store: PolicyStore) -> None:
        """Reloading a restricted column as ``__all__`` makes it unrestricted."""
        store.ingest(PolicySet(policies=[_policy("north_mgr", Region=["Northern"], State=["WA"])]))
        store.ingest(PolicySet(policies=[_policy("north_mgr", Region=["Northern"], State=["__all__"])]))
        assert _rows(db, "north_mgr") == [("Region", "Northern")]

    def test_reload_leaves_other_roles(self, store: PolicyStore) -> None:
        """Replacing one role does not touch other roles."""
        store.ingest(
            PolicySet(
                policies=[
                    _policy("north_mgr", Region=["Northern"]),
                    _policy("south_mgr", Region=["Southern"]),
                ]
            )
        )
        store.ingest(PolicySet(policies=[_policy("north_mgr", Region=["Western"])]))
        assert store.get_policy("south_mgr").items == [PolicyItem(column="Region", values=["Southern"])]

    def test_reload_from_file(self, store: PolicyStore, testdata: Path) -> None:
        """A later document replaces roles loaded from an earlier one."""
        store.load_file(testdata / "valid_policy_set.json")
        store.load_file(testdata / "reload_policy_set.json")
        assert store.get_policy("northwestern_sales_manager").to_json() == (
            '{"role":"northwestern_sales_manager","policy":[{"column":"Region","values":["Western"]}]}'
        )
        assert store.get_policy("north_eastern_sales_manager").to_json() == (
            '{"role":"north_eastern_sales_manager","policy":[{"column":"Region","values":["Northern","Eastern"]}]}'
        )


class TestIngestFailures:
    """Failures stop ingestion at the failing role."""

    def test_invalid_role_rolls_back_that_role_only(self, store: PolicyStore) -> None:
        """Earlier roles stay committed; the failing and later roles are absent."""
        policy_set = PolicySet(
            policies=[
                _policy("north_mgr", Region=["Northern"]),
                _policy("1bad", Region=["Southern"]),
                _policy("south_mgr", Region=["Southern"]),
            ]
        )
        with pytest.raises(InvalidRoleName):
            store.ingest(policy_set)
        assert store.registry.list_roles() == ["north_mgr"]
        assert store.get_policy("north_mgr").items == [PolicyItem(column="Region", values=["Northern"])]

    def test_failed_reload_keeps_previous_rows(self, db: Database, store: PolicyStore) -> None:
        """A storage failure mid-role restores that role's previous policy."""
        store.ingest(PolicySet(policies=[_policy("north_mgr", Region=["Northern"])]))
        db.execute(
            "create trigger reject_bad before insert on policies when new.value = 'bad' "
            "begin select raise(abort, 'bad value'); end"
        )
        with pytest.raises(StorageError):
            store.ingest(PolicySet(policies=[_policy("north_mgr", Region=["Western", "bad"])]))
        assert _rows(db, "north_mgr") == [("Region", "Northern")]

    def test_invalid_document_never_touches_store(self, store: PolicyStore) -> None:
        """Schema errors are raised before any role is registered."""
        with pytest.raises(SchemaError):
            store.ingest_document('{"policies":[{"role":"admin"}]}')
        assert store.registry.list_roles() == []


class TestResolution:
    """Tests for get_policy, get_policy_item and column_access."""

    def test_unregistered_role(self, store: PolicyStore) -> None:
        """Resolution of an unknown role fails with RoleNotFound."""
        store.ingest(PolicySet(policies=[_policy("admin", Region=["__all__"])]))
        with pytest.raises(RoleNotFound) as exc_info:
            store.get_policy("unregistered_role")
        assert exc_info.value.code == "ROLE_NOT_FOUND"

    def test_policy_item_without_rows(self, store: PolicyStore) -> None:
        """No stored values yields the empty item, which renders null."""
        store.ingest(PolicySet(policies=[_policy("north_mgr", Region=["Northern"])]))
        item = store.get_policy_item("north_mgr", "State")
        assert item == PolicyItem()
        assert item.to_json() == "null"

    def test_policy_item_values_in_stored_order(self, store: PolicyStore) -> None:
        """Values come back in insertion order."""
        store.ingest(PolicySet(policies=[_policy("west_mgr", State=["WA", "OR", "CA"])]))
        assert store.get_policy_item("west_mgr", "State").values == ["WA", "OR", "CA"]

    def test_column_access(self, store: PolicyStore) -> None:
        """column_access distinguishes unrestricted from restricted columns."""
        store.ingest(PolicySet(policies=[_policy("north_mgr", Region=["Northern", "Eastern"], State=["__all__"])]))
        assert store.column_access("north_mgr", "Region") == Restricted(column="Region", values=("Northern", "Eastern"))
        assert store.column_access("north_mgr", "State") == Unrestricted(column="State")
        assert store.column_access("north_mgr", "Country") == Unrestricted(column="Country")

    def test_column_access_unknown_role(self, store: PolicyStore) -> None:
        """column_access gates on role existence like get_policy."""
        with pytest.raises(RoleNotFound):
            store.column_access("unregistered_role", "Region")


class TestEndToEnd:
    """Document bytes in, rendered JSON out."""

    def test_admin_and_manager(self, store: PolicyStore) -> None:
        """An all-sentinel role renders null; sentinel columns are omitted."""
        store.ingest_document(
            '{"policies":[{"role":"admin","policy":[{"column":"Region","values":["__all__"]},'
            '{"column":"State","values":["__all__"]}]}]}'
        )
        assert store.get_policy("admin").to_json() == "null"

        store.ingest_document(
            '{"policies":[{"role":"north_mgr","policy":[{"column":"Region","values":["Northern","Eastern"]},'
            '{"column":"State","values":["__all__"]}]}]}'
        )
        assert store.get_policy("north_mgr").to_json() == (
            '{"role":"north_mgr","policy":[{"column":"Region","values":["Northern","Eastern"]}]}'
        )

    def test_sample_document(self, store: PolicyStore, testdata: Path) -> None:
        """The sample document resolves as authored."""
        results = store.load_file(testdata / "valid_policy_set.json")
        assert [r.role for r in results] == [
            "admin",
            "north_eastern_sales_manager",
            "northwestern_sales_manager",
            "sales_manager",
        ]
        assert store.get_policy("admin").to_json() == "null"
        assert store.get_policy("sales_manager").to_json() == "null"
        assert store.get_policy_item("northwestern_sales_manager", "State").to_json() == (
            '{"column":"State","values":["WA","OR","ID"]}'
        )
