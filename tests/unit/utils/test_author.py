"""Unit tests for author resolution."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from dulwich.repo import Repo

from januslens.utils._author import AuthorInfo, get_author_info


@pytest.fixture
def git_repo(tmp_path: Path) -> Iterator[Repo]:
    with Repo.init(str(tmp_path)) as repo:
        yield repo


class TestGetAuthorInfo:
    def test_environment_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JANUSLENS_AUTHOR_NAME", "Env Name")
        monkeypatch.setenv("JANUSLENS_AUTHOR_EMAIL", "env@example.com")

        assert get_author_info() == AuthorInfo(name="Env Name", email="env@example.com")

    def test_falls_back_to_repository_config(
        self, git_repo: Repo, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("JANUSLENS_AUTHOR_NAME")
        monkeypatch.delenv("JANUSLENS_AUTHOR_EMAIL")
        config = git_repo.get_config()
        config.set((b"user",), b"name", b"Config Name")
        config.set((b"user",), b"email", b"config@example.com")
        config.write_to_path()

        author = get_author_info(git_repo)

        assert author == AuthorInfo(name="Config Name", email="config@example.com")

    def test_defaults_without_any_source(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("JANUSLENS_AUTHOR_NAME")
        monkeypatch.delenv("JANUSLENS_AUTHOR_EMAIL")

        assert get_author_info() == AuthorInfo(name="JanusLens", email="januslens@localhost")

    def test_identity_line(self) -> None:
        author = AuthorInfo(name="A B", email="ab@example.com")

        assert author.to_identity() == b"A B <ab@example.com>"
