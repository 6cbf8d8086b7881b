"""JanusLens configuration.

This module provides the public API for JanusLens configuration management,
including loading, validation, and typed access to configuration values.

Example:
    >>> from januslens.config import Config
    >>> config = Config.load()
    >>> config.merge.conflict_style
    <ConflictStyle.MERGE: 'merge'>
"""

from januslens.exceptions import (
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
)

from ._defaults import DEFAULT_CONFIG
from ._discovery import (
    discover_sources,
    get_repository_config_path,
    get_user_config_path,
)
from ._load import safe_load_config
from ._loader import (
    deep_merge,
    parse_env_vars,
    parse_string_value,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    CheckoutConfig,
    Config,
    ConfigSource,
    ConfigSourceName,
    ConflictStyle,
    DiffConfig,
    HistoryConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MergeConfig,
    RecentConfig,
    RepositoryConfig,
)
from ._validation import (
    ValidationIssue,
    raise_if_validation_errors,
    validate_config,
    validate_source,
)

__all__ = [
    "DEFAULT_CONFIG",
    "CheckoutConfig",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigSource",
    "ConfigSourceName",
    "ConfigValidationError",
    "ConflictStyle",
    "DiffConfig",
    "HistoryConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "MergeConfig",
    "RecentConfig",
    "RepositoryConfig",
    "ValidationIssue",
    "deep_merge",
    "discover_sources",
    "get_repository_config_path",
    "get_user_config_path",
    "parse_env_vars",
    "parse_string_value",
    "raise_if_validation_errors",
    "read_toml_file",
    "safe_load_config",
    "set_nested_key",
    "validate_config",
    "validate_source",
]
