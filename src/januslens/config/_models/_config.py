# pyright: reportExplicitAny=false, reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Configuration container with typed access.

This module provides the main Config class that serves as the primary
interface for accessing JanusLens configuration values.
"""

from typing import TYPE_CHECKING, Any, ClassVar, TypeVar, overload

import tomli_w
from pydantic import BaseModel, ConfigDict, PrivateAttr

from januslens.config._defaults import DEFAULT_CONFIG
from januslens.config._loader import (
    copy_value,
    deep_merge,
    parse_env_vars,
    read_toml_file,
)
from januslens.config._models._common import ConfigSource, ConfigSourceName
from januslens.config._models._engine import (
    CheckoutConfig,
    DiffConfig,
    HistoryConfig,
    MergeConfig,
    RecentConfig,
    RepositoryConfig,
)
from januslens.config._models._logging import LoggingConfig

if TYPE_CHECKING:
    from pathlib import Path
    from typing import Self

T = TypeVar("T")


class Config(BaseModel):
    """Configuration container with typed access.

    This class provides immutable, type-safe access to JanusLens
    configuration. Use factory methods to create instances rather than the
    constructor.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    _data: dict[str, Any] = PrivateAttr(default_factory=dict)
    _sources: tuple[ConfigSource, ...] = PrivateAttr(default=())
    _logging: LoggingConfig = PrivateAttr(default_factory=LoggingConfig)
    _repository: RepositoryConfig = PrivateAttr(default_factory=RepositoryConfig)
    _checkout: CheckoutConfig = PrivateAttr(default_factory=CheckoutConfig)
    _merge: MergeConfig = PrivateAttr(default_factory=MergeConfig)
    _diff: DiffConfig = PrivateAttr(default_factory=DiffConfig)
    _history: HistoryConfig = PrivateAttr(default_factory=HistoryConfig)
    _recent: RecentConfig = PrivateAttr(default_factory=RecentConfig)

    def __init__(
        self,
        *,
        _data: dict[str, Any] | None = None,
        _sources: tuple[ConfigSource, ...] = (),
    ) -> None:
        """Initialize configuration container.

        This constructor is intended for internal use. Use factory methods
        like from_dict(), from_file(), or load() to create Config instances.

        Args:
            _data: The complete merged and validated configuration dictionary.
            _sources: Sources that contributed to this configuration.
        """
        super().__init__()
        data = _data if _data is not None else copy_value(DEFAULT_CONFIG)
        self._data = data
        self._sources = _sources
        self._logging = LoggingConfig.model_validate(data.get("logging", {}))
        self._repository = RepositoryConfig.model_validate(data.get("repository", {}))
        self._checkout = CheckoutConfig.model_validate(data.get("checkout", {}))
        self._merge = MergeConfig.model_validate(data.get("merge", {}))
        self._diff = DiffConfig.model_validate(data.get("diff", {}))
        self._history = HistoryConfig.model_validate(data.get("history", {}))
        self._recent = RecentConfig.model_validate(data.get("recent", {}))

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        validate: bool = True,
    ) -> Self:
        """Create configuration from a dictionary.

        Args:
            data: Dictionary of configuration values.
            validate: Whether to validate the configuration.

        Returns:
            Configuration object from the dictionary.

        Raises:
            ConfigValidationError: If validation fails (when validate=True).
        """
        # Deferred import to avoid circular dependency
        from januslens.config._validation import (  # noqa: PLC0415
            raise_if_validation_errors,
            validate_config,
        )

        merged = deep_merge(DEFAULT_CONFIG, data)

        if validate:
            raise_if_validation_errors(validate_config(merged))

        return cls(_data=merged)

    @classmethod
    def from_file(
        cls,
        path: Path,
        *,
        validate: bool = True,
    ) -> Self:
        """Load configuration from a specific file.

        Args:
            path: Path to the TOML config file.
            validate: Whether to validate the loaded config.

        Returns:
            Configuration object from the specified file only.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If validation fails.
        """
        from januslens.config._validation import (  # noqa: PLC0415
            raise_if_validation_errors,
            validate_config,
        )

        data = read_toml_file(path)
        source = ConfigSource(
            name=ConfigSourceName.REPOSITORY,
            path=path,
            exists=True,
            values=data,
        )

        merged = deep_merge(DEFAULT_CONFIG, data)

        if validate:
            raise_if_validation_errors(validate_config(merged), source=str(path))

        return cls(_data=merged, _sources=(source,))

    @classmethod
    def load(
        cls,
        *,
        repo_root: Path | None = None,
        include_env: bool = True,
        overrides: dict[str, Any] | None = None,
    ) -> Self:
        """Load merged configuration from all sources.

        Discovers all configuration sources and merges them in precedence order
        (defaults -> user -> repository -> env -> overrides).

        Args:
            repo_root: Repository root whose ``.git/januslens.toml`` applies.
            include_env: Include environment variables as a source.
            overrides: Explicit overrides, highest precedence.

        Returns:
            Merged configuration object.

        Raises:
            ConfigLoadError: If config files cannot be loaded.
            ConfigValidationError: If merged config fails validation.
        """
        from januslens.config._discovery import discover_sources  # noqa: PLC0415
        from januslens.config._validation import (  # noqa: PLC0415
            raise_if_validation_errors,
            validate_config,
        )

        sources = discover_sources(
            repo_root,
            include_env=include_env,
            overrides=overrides,
        )

        # Sources are discovered highest-to-lowest, so reverse for merging
        merged: dict[str, Any] = {}
        loaded_sources: list[ConfigSource] = []

        for source in reversed(sources):
            values: dict[str, Any] = {}

            if source.name in {ConfigSourceName.DEFAULT, ConfigSourceName.OVERRIDE}:
                values = source.values
            elif source.name == ConfigSourceName.ENV:
                values = parse_env_vars()
            elif source.path and source.exists:
                values = read_toml_file(source.path)

            loaded_sources.append(
                ConfigSource(
                    name=source.name,
                    path=source.path,
                    exists=source.exists,
                    values=values,
                )
            )

            if values:
                merged = deep_merge(merged, values)

        raise_if_validation_errors(validate_config(merged))

        return cls(_data=merged, _sources=tuple(reversed(loaded_sources)))

    @property
    def sources(self) -> list[ConfigSource]:
        """Return the sources that contributed to this configuration.

        Returns:
            List of ConfigSource objects in precedence order.
        """
        return list(self._sources)

    @property
    def logging(self) -> LoggingConfig:
        """Return the logging configuration section."""
        return self._logging

    @property
    def repository(self) -> RepositoryConfig:
        """Return the repository configuration section."""
        return self._repository

    @property
    def checkout(self) -> CheckoutConfig:
        """Return the checkout configuration section."""
        return self._checkout

    @property
    def merge(self) -> MergeConfig:
        """Return the merge configuration section."""
        return self._merge

    @property
    def diff(self) -> DiffConfig:
        """Return the diff configuration section."""
        return self._diff

    @property
    def history(self) -> HistoryConfig:
        """Return the history configuration section."""
        return self._history

    @property
    def recent(self) -> RecentConfig:
        """Return the recent repositories configuration section."""
        return self._recent

    @overload
    def get(self, key: str) -> Any: ...

    @overload
    def get(self, key: str, default: T) -> T: ...

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key.

        Args:
            key: Dot-notation key (e.g., "merge.conflict_style").
            default: Default value if key not found.

        Returns:
            The configuration value, or default if not found.

        Examples:
            >>> config.get("diff.context_lines")
            3
            >>> config.get("nonexistent", "fallback")
            'fallback'
        """
        current: Any = self._data

        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]

        return current

    def to_dict(self, *, include_defaults: bool = True) -> dict[str, Any]:
        """Convert configuration to a dictionary.

        Args:
            include_defaults: Whether to include default values. If False,
                only values that differ from defaults are included.

        Returns:
            Dictionary representation of the configuration.
        """
        if include_defaults:
            return copy_value(self._data)
        return _diff_from_defaults(self._data, DEFAULT_CONFIG)

    def to_toml(self, *, include_defaults: bool = False) -> str:
        """Convert configuration to a TOML string.

        Args:
            include_defaults: Whether to include default values. If False,
                only values that differ from defaults are included.

        Returns:
            TOML string representation of the configuration.
        """
        return tomli_w.dumps(self.to_dict(include_defaults=include_defaults))


def _diff_from_defaults(
    data: dict[str, Any],
    defaults: dict[str, Any],
) -> dict[str, Any]:
    """Extract values that differ from defaults.

    Args:
        data: Current configuration data.
        defaults: Default configuration values.

    Returns:
        Dictionary containing only non-default values.
    """
    result: dict[str, Any] = {}

    for key, value in data.items():
        if key not in defaults:
            result[key] = copy_value(value)
        elif isinstance(value, dict) and isinstance(defaults[key], dict):
            nested_diff = _diff_from_defaults(value, defaults[key])
            if nested_diff:
                result[key] = nested_diff
        elif value != defaults[key]:
            result[key] = copy_value(value)

    return result
