"""Configuration models.

This module provides Pydantic models for JanusLens configuration sections
and the main Config container class.
"""

from januslens.config._models._common import (
    ConfigSource,
    ConfigSourceName,
    ConflictStyle,
    LogFormat,
    LogLevel,
)
from januslens.config._models._config import Config
from januslens.config._models._engine import (
    CheckoutConfig,
    DiffConfig,
    HistoryConfig,
    MergeConfig,
    RecentConfig,
    RepositoryConfig,
)
from januslens.config._models._logging import LoggingConfig

__all__ = [
    "CheckoutConfig",
    "Config",
    "ConfigSource",
    "ConfigSourceName",
    "ConflictStyle",
    "DiffConfig",
    "HistoryConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "MergeConfig",
    "RecentConfig",
    "RepositoryConfig",
]
