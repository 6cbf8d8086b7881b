"""Default configuration values.

This module defines the built-in default configuration values that are used
when no other configuration sources provide values.

Note: DEFAULT_CONFIG is a plain dict for type compatibility with functions
like deep_merge. The merge functions create copies, so the original is never
mutated.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "logging": {
        "level": "info",
        "format": "json",
        "directory": "",
        "buffer_size": 1000,
    },
    "repository": {
        "lock_timeout": 5.0,
    },
    "checkout": {
        "guard_dirty": False,
    },
    "merge": {
        "line_level": True,
        "conflict_style": "merge",
    },
    "diff": {
        "context_lines": 3,
    },
    "history": {
        "default_limit": 100,
    },
    "recent": {
        "max_entries": 20,
    },
}
