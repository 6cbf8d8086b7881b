"""Unit tests for single-path diff rendering."""

from januslens.repository import render_file_diff
from januslens.repository._status import blob_id
from januslens.repository._worktree import MODE_EXECUTABLE, MODE_FILE


def short_id(content: bytes) -> str:
    return blob_id(content).decode()[:7]


class TestRenderFileDiff:
    def test_equal_sides_render_nothing(self) -> None:
        side = (MODE_FILE, b"same\n")

        assert render_file_diff("a.txt", side, side) == ""

    def test_both_absent_render_nothing(self) -> None:
        assert render_file_diff("a.txt", None, None) == ""

    def test_modified_file(self) -> None:
        old = (MODE_FILE, b"one\ntwo\n")
        new = (MODE_FILE, b"one\n2\n")

        diff = render_file_diff("a.txt", old, new)

        lines = diff.splitlines()
        assert lines[0] == "diff --git a/a.txt b/a.txt"
        assert lines[1] == f"index {short_id(old[1])}..{short_id(new[1])} 100644"
        assert "--- a/a.txt" in lines
        assert "+++ b/a.txt" in lines
        assert "-two" in lines
        assert "+2" in lines
        assert " one" in lines

    def test_new_file(self) -> None:
        content = b"hello\n"

        diff = render_file_diff("new.txt", None, (MODE_FILE, content))

        lines = diff.splitlines()
        assert lines[1] == "new file mode 100644"
        assert lines[2] == f"index 0000000..{short_id(content)}"
        assert "--- /dev/null" in lines
        assert "+++ b/new.txt" in lines
        assert "+hello" in lines

    def test_deleted_file(self) -> None:
        diff = render_file_diff("old.txt", (MODE_FILE, b"bye\n"), None)

        lines = diff.splitlines()
        assert lines[1] == "deleted file mode 100644"
        assert "--- a/old.txt" in lines
        assert "+++ /dev/null" in lines
        assert "-bye" in lines

    def test_mode_only_change_has_no_hunks(self) -> None:
        diff = render_file_diff(
            "run.sh", (MODE_FILE, b"x\n"), (MODE_EXECUTABLE, b"x\n")
        )

        assert diff == (
            "diff --git a/run.sh b/run.sh\nold mode 100644\nnew mode 100755\n"
        )

    def test_binary_content_is_summarized(self) -> None:
        diff = render_file_diff(
            "img.bin", (MODE_FILE, b"\x00\x01"), (MODE_FILE, b"\x00\x02")
        )

        assert diff.endswith("Binary files a/img.bin and b/img.bin differ\n")
        assert "@@" not in diff

    def test_context_lines_limit_hunk(self) -> None:
        old = b"".join(f"{i}\n".encode() for i in range(20))
        new = old.replace(b"10\n", b"ten\n")

        diff = render_file_diff("n.txt", (MODE_FILE, old), (MODE_FILE, new), context_lines=1)

        body = [line for line in diff.splitlines() if line.startswith(" ")]
        assert body == [" 9", " 11"]
