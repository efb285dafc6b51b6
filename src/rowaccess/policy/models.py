"""Policy document models and their canonical JSON rendering.

These are Pydantic models mirroring the authored document::

    {"policies": [{"role": "north_mgr",
                   "policy": [{"column": "Region", "values": ["Northern"]}]}]}

Rendering follows one convention throughout: a column with no permitted-value
list, and a role with no restricted columns, both render as ``null``
("no restriction"), never as an empty list ("no access").
"""

from __future__ import annotations

import json
from typing import Any, Literal, Union

from pydantic import BaseModel, Field

ALL_VALUES = "__all__"


def _compact_json(data: Any) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


class PolicyItem(BaseModel):
    """Permitted values of one column for one role."""

    column: str = ""
    values: list[str] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @property
    def grants_all_values(self) -> bool:
        """True for ``[]`` and for the lone ``"__all__"`` sentinel."""
        return not self.values or self.values == [ALL_VALUES]

    def to_json(self) -> str:
        if not self.values:
            return "null"
        return _compact_json(self.model_dump())


class Policy(BaseModel):
    """One role's column restrictions (document key ``policy``)."""

    role: str = ""
    items: list[PolicyItem] = Field(default_factory=list, alias="policy")

    model_config = {"extra": "forbid", "populate_by_name": True}

    def to_json(self) -> str:
        if not self.items:
            return "null"
        return _compact_json(self.model_dump(by_alias=True))


class PolicySet(BaseModel):
    """Ordered policies as authored in one document."""

    policies: list[Policy] = Field(default_factory=list)

    model_config = {"extra": "forbid"}


# ---- Column access ------------------------------------------------------------
# Enforcement layers must not treat "no stored values" as "no access": the
# store never persists an allow-all row, so absence is the unrestricted case.


class Unrestricted(BaseModel):
    """The role may see every value of ``column``."""

    kind: Literal["unrestricted"] = "unrestricted"
    column: str

    model_config = {"frozen": True}


class Restricted(BaseModel):
    """The role may only see ``values`` of ``column``."""

    kind: Literal["restricted"] = "restricted"
    column: str
    values: tuple[str, ...]

    model_config = {"frozen": True}


ColumnAccess = Union[Unrestricted, Restricted]


class RoleIngestResult(BaseModel):
    """Outcome of ingesting one role's policy."""

    role: str
    created: bool
    rows_written: int = 0
    unrestricted_columns: list[str] = Field(default_factory=list)


__all__ = [
    "ALL_VALUES",
    "ColumnAccess",
    "Policy",
    "PolicyItem",
    "PolicySet",
    "Restricted",
    "RoleIngestResult",
    "Unrestricted",
]
