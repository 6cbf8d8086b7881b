"""Shared test fixtures for JanusLens tests."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

import pytest
from dulwich.repo import Repo

from januslens.commands import CommandContext
from januslens.config import Config
from januslens.repository import CommitInfo, Repository, RepositoryLock

TEST_AUTHOR_NAME = "Test User"
TEST_AUTHOR_EMAIL = "test@example.com"


def init_repo(path: Path, *, branch: str = "main") -> Path:
    """Initialize an empty, non-bare repository with HEAD on ``branch``."""
    path.mkdir(parents=True, exist_ok=True)
    with Repo.init(str(path)) as repo:
        repo.refs.set_symbolic_ref(b"HEAD", f"refs/heads/{branch}".encode())
    return path


@pytest.fixture(autouse=True)
def _isolated_environment(
    tmp_path_factory: pytest.TempPathFactory,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[None]:
    """Keep user config, git config and state out of every test."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(home / ".local" / "share"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("JANUSLENS_AUTHOR_NAME", TEST_AUTHOR_NAME)
    monkeypatch.setenv("JANUSLENS_AUTHOR_EMAIL", TEST_AUTHOR_EMAIL)
    for name in ("JANUSLENS_DEBUG", "JANUSLENS_LOG_LEVEL", "JANUSLENS_STRICT_CONFIG"):
        monkeypatch.delenv(name, raising=False)

    yield

    RepositoryLock._reset_registry()  # pyright: ignore[reportPrivateUsage]
    CommandContext.reset()


@dataclass(slots=True)
class Workspace:
    """A real repository plus helpers to edit its working tree."""

    root: Path
    repo: Repository

    def write(self, path: str, text: str) -> Path:
        target = self.root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        _ = target.write_text(text, encoding="utf-8")
        return target

    def read(self, path: str) -> str:
        return (self.root / path).read_text(encoding="utf-8")

    def exists(self, path: str) -> bool:
        return (self.root / path).exists()

    def delete(self, path: str) -> None:
        (self.root / path).unlink()

    def commit(self, message: str, files: Mapping[str, str | None]) -> CommitInfo:
        """Write (or delete, for None) files, stage them and commit."""
        for path, text in files.items():
            if text is None:
                self.delete(path)
            else:
                _ = self.write(path, text)
            _ = self.repo.stage(path)
        return self.repo.commit(message)


def make_config(**sections: dict[str, object]) -> Config:
    """Build a validated Config from section overrides."""
    return Config.from_dict(dict(sections))


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """An empty repository on branch main."""
    return init_repo(tmp_path / "repo")


@pytest.fixture
def repository(repo_root: Path) -> Iterator[Repository]:
    """A Repository handle on repo_root with default configuration."""
    with Repository.open(repo_root, config=make_config()) as repo:
        yield repo


@pytest.fixture
def workspace(repo_root: Path, repository: Repository) -> Workspace:
    return Workspace(root=repo_root, repo=repository)


@pytest.fixture
def seeded(workspace: Workspace) -> Workspace:
    """Workspace with one commit holding README.md and src/app.py."""
    _ = workspace.commit(
        "Initial commit",
        {"README.md": "# Project\n", "src/app.py": "print('hello')\n"},
    )
    return workspace
