"""Unit tests for the pure merge planner."""

import pytest

from januslens.repository import (
    ConflictReason,
    FileVersion,
    MergeOptions,
    MergePlan,
    PathResolution,
    ResolutionKind,
    plan_merge,
)
from januslens.repository._status import blob_id
from januslens.repository._worktree import MODE_EXECUTABLE, MODE_FILE, MODE_SYMLINK


class Blobs:
    """In-memory blob store handing out FileVersions."""

    def __init__(self) -> None:
        self.data: dict[bytes, bytes] = {}

    def version(self, content: bytes, mode: int = MODE_FILE) -> FileVersion:
        sha = blob_id(content)
        self.data[sha] = content
        return FileVersion(mode=mode, sha=sha)

    def load(self, sha: bytes) -> bytes:
        return self.data[sha]


@pytest.fixture
def blobs() -> Blobs:
    return Blobs()


def resolution_for(plan: MergePlan, path: str) -> PathResolution:
    return next(r for r in plan.resolutions if r.path == path)


# =============================================================================
# Trivial Resolutions
# =============================================================================


class TestPlanMergeTrivial:
    def test_unchanged_on_our_side_takes_theirs(self, blobs: Blobs) -> None:
        base = {"f.txt": blobs.version(b"one\n")}
        theirs = {"f.txt": blobs.version(b"two\n")}

        plan = plan_merge(base, base, theirs, blobs.load)

        resolution = resolution_for(plan, "f.txt")
        assert resolution.kind is ResolutionKind.TAKE
        assert resolution.version == theirs["f.txt"]

    def test_unchanged_on_their_side_keeps_ours(self, blobs: Blobs) -> None:
        base = {"f.txt": blobs.version(b"one\n")}
        ours = {"f.txt": blobs.version(b"mine\n")}

        plan = plan_merge(base, ours, base, blobs.load)

        assert resolution_for(plan, "f.txt").version == ours["f.txt"]

    def test_deletion_on_their_side_is_taken(self, blobs: Blobs) -> None:
        base = {"f.txt": blobs.version(b"one\n")}

        plan = plan_merge(base, base, {}, blobs.load)

        resolution = resolution_for(plan, "f.txt")
        assert resolution.kind is ResolutionKind.TAKE
        assert resolution.version is None

    def test_identical_change_is_taken_once(self, blobs: Blobs) -> None:
        base = {"f.txt": blobs.version(b"one\n")}
        changed = {"f.txt": blobs.version(b"same\n")}

        plan = plan_merge(base, changed, dict(changed), blobs.load)

        assert resolution_for(plan, "f.txt").version == changed["f.txt"]
        assert not plan.has_conflicts

    def test_addition_on_one_side_is_taken(self, blobs: Blobs) -> None:
        theirs = {"new.txt": blobs.version(b"new\n")}

        plan = plan_merge({}, {}, theirs, blobs.load)

        assert resolution_for(plan, "new.txt").version == theirs["new.txt"]

    def test_resolutions_cover_union_sorted(self, blobs: Blobs) -> None:
        v = blobs.version(b"x\n")

        plan = plan_merge({"b": v}, {"b": v, "c": v}, {"a": v, "b": v}, blobs.load)

        assert [r.path for r in plan.resolutions] == ["a", "b", "c"]


# =============================================================================
# Content Merges
# =============================================================================


class TestPlanMergeContent:
    def test_non_overlapping_text_edits_merge(self, blobs: Blobs) -> None:
        base = {"f.txt": blobs.version(b"1\n2\n3\n4\n5\n")}
        ours = {"f.txt": blobs.version(b"one\n2\n3\n4\n5\n")}
        theirs = {"f.txt": blobs.version(b"1\n2\n3\n4\nfive\n")}

        plan = plan_merge(base, ours, theirs, blobs.load)

        resolution = resolution_for(plan, "f.txt")
        assert resolution.kind is ResolutionKind.MERGED
        assert resolution.content == b"one\n2\n3\n4\nfive\n"
        assert resolution.mode == MODE_FILE

    def test_overlapping_edits_conflict_with_markers(self, blobs: Blobs) -> None:
        base = {"f.txt": blobs.version(b"1\n2\n3\n")}
        ours = {"f.txt": blobs.version(b"1\nours\n3\n")}
        theirs = {"f.txt": blobs.version(b"1\ntheirs\n3\n")}
        options = MergeOptions(theirs_label="feature")

        plan = plan_merge(base, ours, theirs, blobs.load, options)

        resolution = resolution_for(plan, "f.txt")
        assert resolution.kind is ResolutionKind.CONFLICT
        assert resolution.reason is ConflictReason.CONTENT
        assert resolution.content == (
            b"1\n<<<<<<< HEAD\nours\n=======\ntheirs\n>>>>>>> feature\n3\n"
        )
        assert resolution.base == base["f.txt"]
        assert resolution.ours == ours["f.txt"]
        assert resolution.theirs == theirs["f.txt"]
        assert plan.conflicted_paths == ("f.txt",)

    def test_add_add_merges_against_empty_base(self, blobs: Blobs) -> None:
        ours = {"f.txt": blobs.version(b"ours\n")}
        theirs = {"f.txt": blobs.version(b"theirs\n")}

        plan = plan_merge({}, ours, theirs, blobs.load)

        resolution = resolution_for(plan, "f.txt")
        assert resolution.reason is ConflictReason.ADD_ADD
        assert resolution.content == b"<<<<<<< HEAD\nours\n=======\ntheirs\n>>>>>>> theirs\n"

    def test_line_level_disabled_conflicts_whole_file(self, blobs: Blobs) -> None:
        base = {"f.txt": blobs.version(b"1\n2\n3\n4\n5\n")}
        ours = {"f.txt": blobs.version(b"one\n2\n3\n4\n5\n")}
        theirs = {"f.txt": blobs.version(b"1\n2\n3\n4\nfive\n")}

        plan = plan_merge(
            base, ours, theirs, blobs.load, MergeOptions(line_level=False)
        )

        resolution = resolution_for(plan, "f.txt")
        assert resolution.kind is ResolutionKind.CONFLICT
        assert resolution.content is not None
        assert resolution.content.startswith(b"<<<<<<< HEAD\none\n2\n3\n4\n5\n=======\n")

    def test_binary_divergence_conflicts_without_content(self, blobs: Blobs) -> None:
        base = {"img.bin": blobs.version(b"\x00base")}
        ours = {"img.bin": blobs.version(b"\x00ours")}
        theirs = {"img.bin": blobs.version(b"\x00theirs")}

        plan = plan_merge(base, ours, theirs, blobs.load)

        resolution = resolution_for(plan, "img.bin")
        assert resolution.reason is ConflictReason.BINARY
        assert resolution.content is None


# =============================================================================
# Whole-path Conflicts
# =============================================================================


class TestPlanMergeWholePath:
    def test_we_deleted_they_modified(self, blobs: Blobs) -> None:
        base = {"f.txt": blobs.version(b"one\n")}
        theirs = {"f.txt": blobs.version(b"two\n")}

        plan = plan_merge(base, {}, theirs, blobs.load)

        resolution = resolution_for(plan, "f.txt")
        assert resolution.reason is ConflictReason.DELETE_MODIFY
        assert resolution.content == b"two\n"
        assert resolution.ours is None

    def test_they_deleted_we_modified_keeps_disk(self, blobs: Blobs) -> None:
        base = {"f.txt": blobs.version(b"one\n")}
        ours = {"f.txt": blobs.version(b"mine\n")}

        plan = plan_merge(base, ours, {}, blobs.load)

        resolution = resolution_for(plan, "f.txt")
        assert resolution.reason is ConflictReason.DELETE_MODIFY
        assert resolution.content is None
        assert resolution.theirs is None

    def test_file_type_divergence(self, blobs: Blobs) -> None:
        base = {"link": blobs.version(b"target\n")}
        ours = {"link": blobs.version(b"elsewhere", MODE_SYMLINK)}
        theirs = {"link": blobs.version(b"changed\n")}

        plan = plan_merge(base, ours, theirs, blobs.load)

        assert resolution_for(plan, "link").reason is ConflictReason.FILE_TYPE


class TestPlanMergeDirectoryFile:
    def test_our_file_under_their_directory(self, blobs: Blobs) -> None:
        ours = {"d": blobs.version(b"our file\n")}
        theirs = {"d/x.txt": blobs.version(b"their file\n")}

        plan = plan_merge({}, ours, theirs, blobs.load)

        resolution = resolution_for(plan, "d")
        assert resolution.kind is ResolutionKind.CONFLICT
        assert resolution.reason is ConflictReason.DIRECTORY_FILE
        assert resolution.side_path == "d~HEAD"
        assert resolution.content == b"our file\n"
        assert resolution.ours == ours["d"]
        assert resolution.theirs is None
        assert resolution_for(plan, "d/x.txt").version == theirs["d/x.txt"]
        assert plan.conflicted_paths == ("d",)

    def test_their_file_under_our_directory(self, blobs: Blobs) -> None:
        ours = {"lib/a/b.py": blobs.version(b"b\n")}
        theirs = {"lib": blobs.version(b"flat\n")}
        options = MergeOptions(theirs_label="feature/lib")

        plan = plan_merge({}, ours, theirs, blobs.load, options)

        resolution = resolution_for(plan, "lib")
        assert resolution.reason is ConflictReason.DIRECTORY_FILE
        assert resolution.side_path == "lib~feature_lib"
        assert resolution.content == b"flat\n"
        assert resolution.ours is None

    def test_side_path_avoids_existing_paths(self, blobs: Blobs) -> None:
        taken = blobs.version(b"already here\n")
        ours = {"d": blobs.version(b"our file\n"), "d~HEAD": taken}
        theirs = {"d/x.txt": blobs.version(b"x\n"), "d~HEAD": taken}

        plan = plan_merge({}, ours, theirs, blobs.load)

        assert resolution_for(plan, "d").side_path == "d~HEAD_0"

    def test_deleted_file_makes_way_for_directory(self, blobs: Blobs) -> None:
        base = {"d": blobs.version(b"old\n")}
        theirs = {"d/x.txt": blobs.version(b"x\n")}

        plan = plan_merge(base, base, theirs, blobs.load)

        assert not plan.has_conflicts
        assert resolution_for(plan, "d").version is None


# =============================================================================
# Modes
# =============================================================================


class TestPlanMergeModes:
    def test_mode_change_combines_with_content_change(self, blobs: Blobs) -> None:
        base_version = blobs.version(b"#!/bin/sh\n")
        base = {"run.sh": base_version}
        ours = {"run.sh": FileVersion(mode=MODE_EXECUTABLE, sha=base_version.sha)}
        theirs = {"run.sh": blobs.version(b"#!/bin/sh\necho hi\n")}

        plan = plan_merge(base, ours, theirs, blobs.load)

        resolution = resolution_for(plan, "run.sh")
        assert resolution.kind is ResolutionKind.TAKE
        assert resolution.version == FileVersion(
            mode=MODE_EXECUTABLE, sha=theirs["run.sh"].sha
        )

    def test_divergent_modes_conflict(self, blobs: Blobs) -> None:
        content = blobs.version(b"same\n")
        ours = {"f": content}
        theirs = {"f": FileVersion(mode=MODE_EXECUTABLE, sha=content.sha)}

        plan = plan_merge({}, ours, theirs, blobs.load)

        assert resolution_for(plan, "f").reason is ConflictReason.MODE


class TestMergePlanChangesAgainst:
    def test_skips_paths_matching_tree(self, blobs: Blobs) -> None:
        base = {"keep": blobs.version(b"k\n"), "take": blobs.version(b"t\n")}
        theirs = {"keep": base["keep"], "take": blobs.version(b"t2\n")}

        plan = plan_merge(base, base, theirs, blobs.load)

        assert [r.path for r in plan.changes_against(base)] == ["take"]
