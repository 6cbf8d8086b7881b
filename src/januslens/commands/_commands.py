# pyright: reportUnusedCallResult=false
"""Command functions.

Each command takes plain arguments, opens the repository it targets for the
duration of the call, and returns plain data or raises a JanusError. The
``command`` decorator registers the function for invoke() and logs start,
finish and failure with ``component`` and ``repo_path`` bound.
"""

import contextvars
import functools
import inspect
import time
from annotationlib import Format
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

from januslens.commands._context import CommandContext
from januslens.exceptions import JanusError
from januslens.repository import Repository
from januslens.utils._logging import export_logs as write_log_export

if TYPE_CHECKING:
    from collections.abc import Callable

    from structlog.typing import FilteringBoundLogger

    from januslens.repository import (
        BranchInfo,
        CommitInfo,
        FileEntry,
        MergeResult,
        RepoInfo,
        RepoStatus,
    )
    from januslens.utils._logging import LogEntry

COMMANDS: dict[str, Callable[..., Any]] = {}  # pyright: ignore[reportExplicitAny]

_active_logger: contextvars.ContextVar[FilteringBoundLogger | None] = (
    contextvars.ContextVar("command_logger", default=None)
)


def _logger() -> FilteringBoundLogger:
    logger = _active_logger.get()
    if logger is None:
        return CommandContext.get_current().logger
    return logger


def command[F: Callable[..., Any]](func: F) -> F:  # pyright: ignore[reportExplicitAny]
    """Register a command and wrap it with start/finish/failure logging."""
    name = func.__name__
    signature = inspect.signature(func, annotation_format=Format.FORWARDREF)

    @functools.wraps(func)
    def wrapper(*args: object, **kwargs: object) -> object:
        bound = signature.bind_partial(*args, **kwargs)
        repo_path = bound.arguments.get("repo_path")
        logger = CommandContext.get_current().command_logger(
            name, repo_path=str(repo_path) if repo_path is not None else None
        )
        token = _active_logger.set(logger)
        started = time.perf_counter()
        logger.debug("command_started")
        try:
            result = func(*args, **kwargs)
        except JanusError as e:
            logger.warning(
                "command_failed",
                error_kind=e.kind,
                error=str(e),
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        finally:
            _active_logger.reset(token)
        logger.info(
            "command_finished",
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result

    COMMANDS[name] = wrapper
    return cast("F", wrapper)


def _open(repo_path: Path | str) -> Repository:
    return Repository.open(repo_path, logger=_logger())


# =============================================================================
# Repositories
# =============================================================================


@command
def open_repository(path: Path | str) -> RepoInfo:
    """Open a repository and record it in the recent list."""
    with _open(path) as repo:
        root = repo.root
    return CommandContext.get_current().recent.record(root)


@command
def is_repository(path: Path | str) -> bool:
    """Check whether a path is the root of a non-bare repository."""
    return Repository.is_repository(path)


@command
def list_repositories() -> list[RepoInfo]:
    """List recently opened repositories, most recent first."""
    return CommandContext.get_current().recent.entries()


# =============================================================================
# Branches
# =============================================================================


@command
def get_branches(repo_path: Path | str) -> list[BranchInfo]:
    with _open(repo_path) as repo:
        return repo.list_branches()


@command
def create_branch(
    repo_path: Path | str,
    name: str,
    at_commit: str | None = None,
) -> BranchInfo:
    with _open(repo_path) as repo:
        return repo.create_branch(name, at_commit)


@command
def delete_branch(repo_path: Path | str, name: str) -> None:
    with _open(repo_path) as repo:
        repo.delete_branch(name)


@command
def checkout_branch(repo_path: Path | str, name: str) -> None:
    with _open(repo_path) as repo:
        repo.checkout(name)


# =============================================================================
# History, Status and Diff
# =============================================================================


@command
def get_commits(
    repo_path: Path | str,
    branch: str | None = None,
    limit: int | None = None,
) -> list[CommitInfo]:
    """List commits newest first.

    Args:
        repo_path: Repository root.
        branch: Branch, ref or commit id; HEAD when omitted.
        limit: Maximum number of commits; ``history.default_limit`` when
            omitted.
    """
    with _open(repo_path) as repo:
        effective = limit if limit is not None else repo.config.history.default_limit
        return repo.get_commits(branch, effective)


@command
def get_status(repo_path: Path | str) -> RepoStatus:
    with _open(repo_path) as repo:
        return repo.status()


@command
def get_diff(repo_path: Path | str, path: str, staged: bool = False) -> str:  # noqa: FBT001, FBT002
    with _open(repo_path) as repo:
        return repo.diff(path, staged=staged)


# =============================================================================
# Staging, Commits and Merges
# =============================================================================


@command
def stage_file(repo_path: Path | str, path: str) -> None:
    with _open(repo_path) as repo:
        repo.stage(path)


@command
def unstage_file(repo_path: Path | str, path: str) -> None:
    with _open(repo_path) as repo:
        repo.unstage(path)


@command
def create_commit(repo_path: Path | str, message: str) -> CommitInfo:
    with _open(repo_path) as repo:
        return repo.commit(message)


@command
def merge_branch(repo_path: Path | str, target: str) -> MergeResult:
    with _open(repo_path) as repo:
        return repo.merge(target)


@command
def abort_merge(repo_path: Path | str) -> None:
    with _open(repo_path) as repo:
        repo.abort_merge()


@command
def list_files(repo_path: Path | str, subdirectory: str | None = None) -> list[FileEntry]:
    with _open(repo_path) as repo:
        return repo.list_files(subdirectory)


# =============================================================================
# Logs
# =============================================================================


@command
def get_recent_logs(
    level: str | None = None,
    component: str | None = None,
    context_id: str | None = None,
    limit: int | None = None,
) -> list[LogEntry]:
    """Query the in-memory log buffer, oldest entry first."""
    return CommandContext.get_current().log_buffer.recent(
        level=level, component=component, context_id=context_id, limit=limit
    )


@command
def export_logs(filename: str, entries: list[LogEntry] | None = None) -> str:
    """Export log entries (the whole buffer by default) as a JSON array.

    Returns:
        Path of the written file.
    """
    ctx = CommandContext.get_current()
    selected = entries if entries is not None else ctx.log_buffer.recent()
    return str(write_log_export(filename, selected, export_dir=ctx.export_dir))
