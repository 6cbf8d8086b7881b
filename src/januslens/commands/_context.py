# pyright: reportUnusedCallResult=false
"""Command context for process-wide state.

The CommandContext carries the user-level configuration, the shared log
buffer, the engine logger and the recent-repositories store. It is made
available to every command through a contextvar; when none is set, a
lazily created process default is used so the log buffer survives between
commands.
"""

import contextvars
import threading
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from januslens.config import Config, safe_load_config
from januslens.recent import RecentRepositories
from januslens.utils._logging import LogBuffer, create_engine_logger

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import FilteringBoundLogger

# Thread-safe context variable for CommandContext
_current_context: contextvars.ContextVar[CommandContext | None] = (
    contextvars.ContextVar("command_context", default=None)
)

_default_lock = threading.Lock()
_default_context: CommandContext | None = None


@dataclass(frozen=True, slots=True)
class CommandContext:
    """Shared state for command execution.

    Attributes:
        config: User-level configuration.
        log_buffer: In-memory buffer behind get_recent_logs.
        logger: Engine logger feeding the buffer and the daily log file.
        recent: Recently opened repositories.
        export_dir: Destination of log exports, the documents folder when None.
        config_error: Error message if config loading failed.
    """

    config: Config = field(repr=False)
    log_buffer: LogBuffer = field(repr=False)
    logger: FilteringBoundLogger = field(repr=False)
    recent: RecentRepositories = field(repr=False)
    export_dir: Path | None = None
    config_error: str | None = None

    @classmethod
    def create(
        cls,
        *,
        config: Config | None = None,
        log_dir: Path | None = None,
        recent_file: Path | None = None,
        export_dir: Path | None = None,
    ) -> CommandContext:
        """Build a context from configuration.

        Args:
            config: Configuration to use; loaded from the default sources
                when omitted.
            log_dir: Overrides ``logging.directory``.
            recent_file: Overrides the recent-repositories file.
            export_dir: Overrides the log export directory.

        Returns:
            A new CommandContext.
        """
        config_error: str | None = None
        if config is None:
            config, config_error = safe_load_config()

        logging_config = config.logging
        buffer = LogBuffer(logging_config.buffer_size)
        logger = create_engine_logger(
            level=logging_config.level.value,
            log_format=logging_config.format.value,
            log_dir=log_dir if log_dir is not None else logging_config.directory,
            buffer=buffer,
        )
        if config_error is not None:
            logger.warning("config_load_failed", component="config", error=config_error)

        return cls(
            config=config,
            log_buffer=buffer,
            logger=logger,
            recent=RecentRepositories(recent_file, max_entries=config.recent.max_entries),
            export_dir=export_dir,
            config_error=config_error,
        )

    @classmethod
    def get_current(cls) -> CommandContext:
        """Get the active CommandContext, creating the process default if needed.

        Returns:
            The context set for the current thread or task, or the shared
            process default.
        """
        ctx = _current_context.get()
        if ctx is not None:
            return ctx

        global _default_context  # noqa: PLW0603
        with _default_lock:
            if _default_context is None:
                _default_context = cls.create()
            return _default_context

    @classmethod
    def set_current(cls, ctx: CommandContext) -> contextvars.Token[CommandContext | None]:
        """Set the active CommandContext.

        Args:
            ctx: The CommandContext to activate.

        Returns:
            Token restoring the previous context when passed to reset().
        """
        return _current_context.set(ctx)

    @classmethod
    def reset(cls, token: contextvars.Token[CommandContext | None] | None = None) -> None:
        """Restore the previous context, or clear all contexts.

        Without a token the contextvar and the process default are both
        cleared. This is primarily useful for testing.
        """
        if token is not None:
            _current_context.reset(token)
            return

        global _default_context  # noqa: PLW0603
        _current_context.set(None)
        with _default_lock:
            _default_context = None

    def command_logger(
        self,
        command: str,
        *,
        repo_path: str | None = None,
        context_id: str | None = None,
    ) -> FilteringBoundLogger:
        """Bind a logger for one command invocation.

        Args:
            command: Command name, bound as ``component``.
            repo_path: Repository the command targets, if any.
            context_id: Correlation id; a fresh one when omitted.

        Returns:
            The bound logger.
        """
        bound = self.logger.bind(
            component=command,
            context_id=context_id or uuid.uuid4().hex,
        )
        if repo_path is not None:
            bound = bound.bind(repo_path=repo_path)
        return bound
