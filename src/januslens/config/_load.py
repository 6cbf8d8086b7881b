import os
from typing import TYPE_CHECKING

from januslens.exceptions import ConfigError

from ._models import Config

if TYPE_CHECKING:
    from pathlib import Path


def safe_load_config(
    *,
    repo_root: Path | None = None,
    overrides: dict[str, object] | None = None,
) -> tuple[Config, str | None]:
    """Load configuration with error handling.

    Behavior on failure depends on the JANUSLENS_STRICT_CONFIG environment
    variable:
    - If unset or "0": return the default config and the error message
    - If "1": re-raise the error

    Args:
        repo_root: Repository root whose ``.git/januslens.toml`` applies.
        overrides: Explicit overrides passed to Config.load().

    Returns:
        Tuple of (Config, error_message). On success, error_message is None.

    Raises:
        ConfigError: In strict mode, when loading fails.
        OSError: In strict mode, when a config file cannot be read.
    """
    strict_mode = os.environ.get("JANUSLENS_STRICT_CONFIG", "0") == "1"

    try:
        config = Config.load(repo_root=repo_root, overrides=overrides)
    except (ConfigError, OSError) as e:
        if strict_mode:
            raise
        return Config.from_dict({}, validate=False), f"Failed to load config: {e}"
    else:
        return config, None
