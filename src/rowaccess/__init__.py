from .config import LogLevel, RowAccessConfig, load_config_from_env
from .exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    DocumentReadError,
    InvalidRoleName,
    ParseError,
    PolicyDocumentError,
    RoleNotFound,
    RowAccessError,
    SchemaError,
    StorageError,
    StoreNotInitialized,
)
from .logging import (
    RoleLoggerAdapter,
    RowAccessFormatter,
    get_role_logger,
    safe_preview,
    setup_logging,
)
from .policy import (
    ALL_VALUES,
    ColumnAccess,
    Policy,
    PolicyItem,
    PolicySet,
    PolicyStore,
    Restricted,
    RoleIngestResult,
    RoleRegistry,
    Unrestricted,
    is_valid_role_name,
    load_policy_set,
    parse_policy_set,
    validate_document,
)
from .storage import Database

__version__ = "0.1.0"

__all__ = [
    'ALL_VALUES',
    'ColumnAccess',
    'ConfigurationError',
    'Database',
    'DatabaseConnectionError',
    'DocumentReadError',
    'InvalidRoleName',
    'LogLevel',
    'ParseError',
    'Policy',
    'PolicyDocumentError',
    'PolicyItem',
    'PolicySet',
    'PolicyStore',
    'Restricted',
    'RoleIngestResult',
    'RoleLoggerAdapter',
    'RoleNotFound',
    'RoleRegistry',
    'RowAccessConfig',
    'RowAccessError',
    'RowAccessFormatter',
    'SchemaError',
    'StorageError',
    'StoreNotInitialized',
    'Unrestricted',
    'get_role_logger',
    'is_valid_role_name',
    'load_config_from_env',
    'load_policy_set',
    'parse_policy_set',
    'safe_preview',
    'setup_logging',
    'validate_document',
]
