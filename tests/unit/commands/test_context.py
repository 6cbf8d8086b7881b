"""Unit tests for the command context."""

from pathlib import Path

from januslens.commands import CommandContext
from januslens.config import LogLevel, get_user_config_path

from tests.conftest import make_config


class TestCreate:
    def test_uses_given_config(self, tmp_path: Path) -> None:
        config = make_config(recent={"max_entries": 3}, logging={"buffer_size": 5})

        ctx = CommandContext.create(
            config=config, log_dir=tmp_path / "logs", recent_file=tmp_path / "recent.json"
        )

        assert ctx.config is config
        assert ctx.config_error is None
        assert ctx.recent.max_entries == 3
        assert ctx.recent.path == tmp_path / "recent.json"
        assert ctx.log_buffer.capacity == 5

    def test_config_error_is_logged(self, tmp_path: Path) -> None:
        user_file = get_user_config_path()
        user_file.parent.mkdir(parents=True, exist_ok=True)
        _ = user_file.write_text("[logging\n")

        ctx = CommandContext.create(log_dir=tmp_path)

        assert ctx.config_error is not None
        assert ctx.config.logging.level is LogLevel.INFO
        (entry,) = ctx.log_buffer.recent(level="warning")
        assert entry.message == "config_load_failed"


class TestCurrentContext:
    def test_default_context_is_shared(self) -> None:
        assert CommandContext.get_current() is CommandContext.get_current()

    def test_set_and_reset_with_token(self, tmp_path: Path) -> None:
        ctx = CommandContext.create(config=make_config(), log_dir=tmp_path)

        token = CommandContext.set_current(ctx)
        assert CommandContext.get_current() is ctx

        CommandContext.reset(token)
        assert CommandContext.get_current() is not ctx


class TestCommandLogger:
    def test_binds_component_and_context_id(self, tmp_path: Path) -> None:
        ctx = CommandContext.create(config=make_config(), log_dir=tmp_path)

        ctx.command_logger("get_status", repo_path="/work/repo", context_id="abc").info(
            "status_read"
        )

        (entry,) = ctx.log_buffer.recent()
        assert entry.component == "get_status"
        assert entry.context_id == "abc"
        assert entry.details == {"repo_path": "/work/repo"}

    def test_generates_fresh_context_ids(self, tmp_path: Path) -> None:
        ctx = CommandContext.create(config=make_config(), log_dir=tmp_path)

        ctx.command_logger("a").info("one")
        ctx.command_logger("a").info("two")

        first, second = ctx.log_buffer.recent()
        assert first.context_id != second.context_id
