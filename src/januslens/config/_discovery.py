"""Configuration source discovery.

Sources are layered from the built-in defaults up to explicit overrides:
defaults, the per-user file, the repository file inside ``.git``,
environment variables, then overrides passed by the caller.
"""

from pathlib import Path
from typing import Any

from januslens.utils._paths import get_user_config_file

from ._defaults import DEFAULT_CONFIG
from ._models._common import ConfigSource, ConfigSourceName

REPOSITORY_CONFIG_NAME = "januslens.toml"


def get_user_config_path() -> Path:
    r"""Get platform-specific user config file path.

    - Linux: ``~/.config/januslens/config.toml``
    - macOS: ``~/Library/Application Support/januslens/config.toml``
    - Windows: ``%APPDATA%\januslens\config.toml``

    The path is returned regardless of whether the file exists.

    Returns:
        Path to the user config file for the current platform.
    """
    return get_user_config_file()


def get_repository_config_path(repo_root: Path) -> Path:
    """Get the repository-local config file path (``.git/januslens.toml``)."""
    return repo_root / ".git" / REPOSITORY_CONFIG_NAME


def _file_exists(path: Path) -> bool:
    """Check if a file exists, handling permission errors gracefully.

    Args:
        path: Path to check.

    Returns:
        True if the file exists and is accessible, False otherwise.
    """
    try:
        return path.is_file()
    except OSError:
        return False


def discover_sources(
    repo_root: Path | None = None,
    *,
    include_env: bool = True,
    overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
) -> list[ConfigSource]:
    """Discover all configuration sources.

    Args:
        repo_root: Repository root whose ``.git/januslens.toml`` is consulted.
        include_env: Include environment variables as a source.
        overrides: Explicit overrides, highest precedence.

    Returns:
        List of ConfigSource objects in precedence order (highest first).
        File sources that don't exist are still included with exists=False.
    """
    sources: list[ConfigSource] = []

    if overrides is not None:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.OVERRIDE,
                path=None,
                exists=bool(overrides),
                values=overrides,
            )
        )

    if include_env:
        sources.append(
            ConfigSource(
                name=ConfigSourceName.ENV,
                path=None,
                exists=True,  # Actual values parsed during loading phase
                values={},
            )
        )

    if repo_root is not None:
        repo_path = get_repository_config_path(repo_root)
        sources.append(
            ConfigSource(
                name=ConfigSourceName.REPOSITORY,
                path=repo_path,
                exists=_file_exists(repo_path),
                values={},
            )
        )

    user_path = get_user_config_path()
    sources.append(
        ConfigSource(
            name=ConfigSourceName.USER,
            path=user_path,
            exists=_file_exists(user_path),
            values={},
        )
    )

    sources.append(
        ConfigSource(
            name=ConfigSourceName.DEFAULT,
            path=None,
            exists=True,
            values=DEFAULT_CONFIG,
        )
    )

    return sources
