"""JanusLens command surface.

Request/response commands consumed by the desktop shell. Each command is a
plain function; invoke() runs one by name and returns a tagged
CommandResult that serializes to JSON.

Example:
    >>> from januslens.commands import invoke
    >>> result = invoke("get_status", repo_path="/work/project")
    >>> result.to_json()
    b'{"ok":true,"data":{"staged":[],"unstaged":[],...},"error":null}'
"""

from januslens.commands._commands import (
    COMMANDS,
    abort_merge,
    checkout_branch,
    create_branch,
    create_commit,
    delete_branch,
    export_logs,
    get_branches,
    get_commits,
    get_diff,
    get_recent_logs,
    get_status,
    is_repository,
    list_files,
    list_repositories,
    merge_branch,
    open_repository,
    stage_file,
    unstage_file,
)
from januslens.commands._context import CommandContext
from januslens.commands._invoke import invoke
from januslens.commands._result import CommandError, CommandResult, to_plain

__all__ = [
    "COMMANDS",
    "CommandContext",
    "CommandError",
    "CommandResult",
    "abort_merge",
    "checkout_branch",
    "create_branch",
    "create_commit",
    "delete_branch",
    "export_logs",
    "get_branches",
    "get_commits",
    "get_diff",
    "get_recent_logs",
    "get_status",
    "invoke",
    "is_repository",
    "list_files",
    "list_repositories",
    "merge_branch",
    "open_repository",
    "stage_file",
    "to_plain",
    "unstage_file",
]
