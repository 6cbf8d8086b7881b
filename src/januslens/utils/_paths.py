"""Per-user locations for JanusLens state."""

from pathlib import Path
from typing import Final

import platformdirs

APP_NAME: Final = "januslens"


def get_user_config_dir() -> Path:
    """Get the per-user configuration directory."""
    return platformdirs.user_config_path(APP_NAME)


def get_user_config_file() -> Path:
    """Get the path to the user configuration file."""
    return get_user_config_dir() / "config.toml"


def get_recent_repositories_file() -> Path:
    """Get the path to the recent repositories document."""
    return get_user_config_dir() / "recent_repositories.json"


def get_log_dir() -> Path:
    """Get the default directory for daily log files."""
    return platformdirs.user_data_path(APP_NAME) / "logs"


def get_export_dir() -> Path:
    """Get the directory log exports are written to."""
    return platformdirs.user_documents_path() / "JanusLens"
