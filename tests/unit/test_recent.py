"""Unit tests for the recent repositories list."""

from pathlib import Path
from typing import TYPE_CHECKING

import orjson
import pytest

from januslens.exceptions import SerializationError
from januslens.recent import RecentRepositories
from januslens.repository import RepoInfo

if TYPE_CHECKING:
    from pyfakefs.fake_filesystem import FakeFilesystem

    from tests.unit.conftest import FreezeTimeFunc

RECENT_FILE = Path("/config/januslens/recent_repositories.json")


@pytest.fixture
def recent(fs: FakeFilesystem) -> RecentRepositories:
    for name in ("alpha", "beta", "gamma"):
        fs.create_dir(f"/work/{name}")
    return RecentRepositories(RECENT_FILE, max_entries=2)


class TestRecord:
    def test_missing_file_is_empty(self, recent: RecentRepositories) -> None:
        assert recent.entries() == []

    def test_records_canonical_path_and_name(self, recent: RecentRepositories) -> None:
        info = recent.record("/work/alpha/../alpha", timestamp=100)

        assert info == RepoInfo(path="/work/alpha", name="alpha", last_accessed=100)
        assert recent.entries() == [info]

    def test_most_recent_first_without_duplicates(self, recent: RecentRepositories) -> None:
        _ = recent.record("/work/alpha", timestamp=1)
        _ = recent.record("/work/beta", timestamp=2)
        _ = recent.record("/work/alpha", timestamp=3)

        assert [(e.name, e.last_accessed) for e in recent.entries()] == [
            ("alpha", 3),
            ("beta", 2),
        ]

    def test_caps_the_list(self, recent: RecentRepositories) -> None:
        for i, name in enumerate(("alpha", "beta", "gamma")):
            _ = recent.record(f"/work/{name}", timestamp=i)

        assert [e.name for e in recent.entries()] == ["gamma", "beta"]

    def test_timestamp_defaults_to_now(
        self, recent: RecentRepositories, freeze_time: FreezeTimeFunc
    ) -> None:
        fixed = freeze_time(2026, 5, 1, 12)

        info = recent.record("/work/alpha")

        assert info.last_accessed == fixed.int_timestamp

    def test_document_layout(self, recent: RecentRepositories) -> None:
        _ = recent.record("/work/beta", timestamp=5)

        document = orjson.loads(RECENT_FILE.read_bytes())

        assert document == {
            "repositories": [{"path": "/work/beta", "name": "beta", "last_accessed": 5}]
        }


class TestRemoveAndClear:
    def test_remove_existing(self, recent: RecentRepositories) -> None:
        _ = recent.record("/work/alpha", timestamp=1)

        assert recent.remove("/work/alpha") is True
        assert recent.entries() == []

    def test_remove_unknown(self, recent: RecentRepositories) -> None:
        assert recent.remove("/work/beta") is False

    def test_clear(self, recent: RecentRepositories) -> None:
        _ = recent.record("/work/alpha", timestamp=1)

        recent.clear()

        assert recent.entries() == []
        assert RECENT_FILE.exists()


class TestCorruptFile:
    def test_invalid_json_raises(self, fs: FakeFilesystem, recent: RecentRepositories) -> None:
        fs.create_file(RECENT_FILE, contents="{not json")

        with pytest.raises(SerializationError) as exc_info:
            _ = recent.entries()

        assert exc_info.value.kind == "SerializationFailure"

    def test_wrong_shape_raises(self, fs: FakeFilesystem, recent: RecentRepositories) -> None:
        fs.create_file(RECENT_FILE, contents='{"repositories": [{"path": 1}]}')

        with pytest.raises(SerializationError):
            _ = recent.record("/work/alpha")

    def test_unknown_keys_are_ignored(
        self, fs: FakeFilesystem, recent: RecentRepositories
    ) -> None:
        fs.create_file(
            RECENT_FILE,
            contents='{"version": 2, "repositories": '
            '[{"path": "/work/alpha", "name": "alpha", "last_accessed": 1, "pinned": true}]}',
        )

        assert [e.name for e in recent.entries()] == ["alpha"]
