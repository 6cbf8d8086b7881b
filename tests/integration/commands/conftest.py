from collections.abc import Iterator
from pathlib import Path

import pytest

from januslens.commands import CommandContext
from tests.conftest import make_config


@pytest.fixture
def command_context(tmp_path: Path) -> Iterator[CommandContext]:
    """A CommandContext writing logs, recents and exports under tmp_path."""
    ctx = CommandContext.create(
        config=make_config(),
        log_dir=tmp_path / "logs",
        recent_file=tmp_path / "recent.json",
        export_dir=tmp_path / "exports",
    )
    token = CommandContext.set_current(ctx)
    yield ctx
    CommandContext.reset(token)
