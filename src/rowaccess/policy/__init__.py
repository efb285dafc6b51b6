"""Row-level access policies: document model, validation, roles and store.

Defines:
- PolicySet / Policy / PolicyItem: authored document model and rendering
- ColumnAccess: typed Unrestricted / Restricted answer for one column
- validate_document(): JSON Schema check of raw documents
- RoleRegistry: role-name gate of the store
- PolicyStore: ingestion (replace on reload) and resolution
"""

from .models import (
    ALL_VALUES,
    ColumnAccess,
    Policy,
    PolicyItem,
    PolicySet,
    Restricted,
    RoleIngestResult,
    Unrestricted,
)
from .roles import MAX_ROLE_NAME_LENGTH, RoleRegistry, is_valid_role_name
from .schema import (
    POLICY_SET_SCHEMA,
    compile_schema,
    load_policy_set,
    parse_policy_set,
    validate_document,
)
from .store import PolicyStore

__all__ = [
    "ALL_VALUES",
    "MAX_ROLE_NAME_LENGTH",
    "POLICY_SET_SCHEMA",
    "ColumnAccess",
    "Policy",
    "PolicyItem",
    "PolicySet",
    "PolicyStore",
    "Restricted",
    "RoleIngestResult",
    "RoleRegistry",
    "Unrestricted",
    "compile_schema",
    "is_valid_role_name",
    "load_policy_set",
    "parse_policy_set",
    "validate_document",
]
