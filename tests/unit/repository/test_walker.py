"""Unit tests for commit graph traversal over an in-memory repository."""

from typing import TYPE_CHECKING

import pytest
from dulwich.object_store import MemoryObjectStore
from dulwich.objects import Commit, Tree
from dulwich.repo import MemoryRepo

from januslens.exceptions import ObjectNotFoundError
from januslens.repository import (
    CommitWalker,
    find_merge_base,
    find_merge_bases,
    is_ancestor,
)

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


class Graph:
    """Builds commits with explicit parents and timestamps."""

    def __init__(self) -> None:
        self.repo: MemoryRepo = MemoryRepo()
        self.store = self.repo.object_store
        self.tree: Tree = Tree()
        self.store.add_object(self.tree)
        self.ids: dict[str, bytes] = {}

    def commit(self, name: str, *parents: str, time: int) -> bytes:
        commit = Commit()
        commit.tree = self.tree.id
        commit.parents = [self.ids[p] for p in parents]
        commit.author = commit.committer = b"Test User <test@example.com>"
        commit.author_time = commit.commit_time = time
        commit.author_timezone = commit.commit_timezone = 0
        commit.message = name.encode() + b"\n"
        self.store.add_object(commit)
        self.ids[name] = commit.id
        return commit.id

    def names(self, commits: list[Commit]) -> list[str]:
        by_id = {v: k for k, v in self.ids.items()}
        return [by_id[c.id] for c in commits]


@pytest.fixture
def graph() -> Graph:
    return Graph()


@pytest.fixture
def diamond(graph: Graph) -> Graph:
    """root -> (left, right) -> merge."""
    _ = graph.commit("root", time=100)
    _ = graph.commit("left", "root", time=200)
    _ = graph.commit("right", "root", time=300)
    _ = graph.commit("merge", "left", "right", time=400)
    return graph


class TestCommitWalker:
    def test_linear_history_newest_first(self, graph: Graph) -> None:
        _ = graph.commit("a", time=1)
        _ = graph.commit("b", "a", time=2)
        head = graph.commit("c", "b", time=3)

        walked = list(CommitWalker(graph.repo, head))

        assert graph.names(walked) == ["c", "b", "a"]

    def test_children_before_parents_in_merges(self, diamond: Graph) -> None:
        walked = diamond.names(list(CommitWalker(diamond.repo, diamond.ids["merge"])))

        assert walked == ["merge", "right", "left", "root"]

    def test_parent_waits_for_all_children(self, graph: Graph) -> None:
        # root has a later timestamp than one of its children
        _ = graph.commit("root", time=500)
        _ = graph.commit("side", "root", time=100)
        _ = graph.commit("main", "root", time=600)
        head = graph.commit("merge", "main", "side", time=700)

        walked = graph.names(list(CommitWalker(graph.repo, head)))

        assert walked.index("side") < walked.index("root")
        assert walked[-1] == "root"

    def test_limit(self, diamond: Graph) -> None:
        walker = CommitWalker(diamond.repo, diamond.ids["merge"], limit=2)

        assert diamond.names(list(walker)) == ["merge", "right"]

    def test_limit_reads_only_the_newest_commits(
        self, graph: Graph, mocker: MockerFixture
    ) -> None:
        head = graph.commit("c0", time=0)
        for i in range(1, 60):
            head = graph.commit(f"c{i}", f"c{i - 1}", time=i)
        lookups = mocker.spy(MemoryObjectStore, "__getitem__")

        walked = graph.names(list(CommitWalker(graph.repo, head, limit=1)))

        assert walked == ["c59"]
        assert lookups.call_count < 15

    def test_zero_limit_yields_nothing(self, diamond: Graph) -> None:
        assert list(CommitWalker(diamond.repo, diamond.ids["merge"], limit=0)) == []

    def test_restartable(self, diamond: Graph) -> None:
        walker = CommitWalker(diamond.repo, diamond.ids["merge"])

        assert [c.id for c in walker] == [c.id for c in walker]

    def test_multiple_starts_share_history(self, diamond: Graph) -> None:
        walker = CommitWalker(diamond.repo, [diamond.ids["left"], diamond.ids["right"]])

        assert diamond.names(list(walker)) == ["right", "left", "root"]

    def test_missing_commit_raises(self, graph: Graph) -> None:
        walker = CommitWalker(graph.repo, b"0" * 40)

        with pytest.raises(ObjectNotFoundError):
            _ = list(walker)


class TestAncestry:
    def test_commit_is_its_own_ancestor(self, diamond: Graph) -> None:
        root = diamond.ids["root"]

        assert is_ancestor(diamond.repo, root, root)

    def test_reachability(self, diamond: Graph) -> None:
        ids = diamond.ids

        assert is_ancestor(diamond.repo, ids["root"], ids["merge"])
        assert is_ancestor(diamond.repo, ids["right"], ids["merge"])
        assert not is_ancestor(diamond.repo, ids["merge"], ids["root"])
        assert not is_ancestor(diamond.repo, ids["left"], ids["right"])

    def test_reachability_through_skewed_clocks(self, graph: Graph) -> None:
        root = graph.commit("root", time=500)
        _ = graph.commit("side", "root", time=100)
        tip = graph.commit("tip", "side", time=200)

        assert is_ancestor(graph.repo, root, tip)
        assert not is_ancestor(graph.repo, tip, root)

    def test_merge_base_of_siblings(self, diamond: Graph) -> None:
        ids = diamond.ids

        assert find_merge_base(diamond.repo, ids["left"], ids["right"]) == ids["root"]

    def test_merge_base_with_ancestor_is_the_ancestor(self, diamond: Graph) -> None:
        ids = diamond.ids

        assert find_merge_base(diamond.repo, ids["merge"], ids["left"]) == ids["left"]
        assert find_merge_base(diamond.repo, ids["left"], ids["merge"]) == ids["left"]

    def test_unrelated_histories_have_no_base(self, graph: Graph) -> None:
        a = graph.commit("a", time=1)
        b = graph.commit("b", time=2)

        assert find_merge_base(graph.repo, a, b) is None

    def test_criss_cross_prefers_most_recent_base(self, graph: Graph) -> None:
        _ = graph.commit("root", time=1)
        _ = graph.commit("x", "root", time=2)
        _ = graph.commit("y", "root", time=3)
        a = graph.commit("a", "x", "y", time=4)
        b = graph.commit("b", "y", "x", time=5)

        bases = find_merge_bases(graph.repo, a, b)

        assert bases == [graph.ids["y"], graph.ids["x"]]
        assert find_merge_base(graph.repo, a, b) == graph.ids["y"]

    def test_redundant_common_ancestors_are_dropped(self, diamond: Graph) -> None:
        tip = diamond.commit("tip", "right", "root", time=500)

        bases = find_merge_bases(diamond.repo, diamond.ids["merge"], tip)

        assert bases == [diamond.ids["right"]]
