"""Property-based tests for history traversal over random commit graphs."""

from dataclasses import dataclass, field

from dulwich.objects import Commit, Tree
from dulwich.repo import MemoryRepo
from hypothesis import given, settings, strategies as st

from januslens.repository import CommitWalker, find_merge_base, is_ancestor

# =============================================================================
# Graph construction
# =============================================================================


@dataclass
class RandomGraph:
    """Commits stored in memory, indexed in creation order."""

    repo: MemoryRepo = field(default_factory=MemoryRepo)
    ids: list[bytes] = field(default_factory=list)
    parents: dict[bytes, list[bytes]] = field(default_factory=dict)
    times: list[int] = field(default_factory=list)

    def add(self, index: int, parent_indexes: list[int], time: int, tree: bytes) -> None:
        commit = Commit()
        commit.tree = tree
        commit.parents = [self.ids[p] for p in parent_indexes]
        commit.author = commit.committer = b"Test User <test@example.com>"
        commit.author_time = commit.commit_time = time
        commit.author_timezone = commit.commit_timezone = 0
        commit.message = f"commit {index}\n".encode()
        self.repo.object_store.add_object(commit)
        self.ids.append(commit.id)
        self.times.append(time)
        self.parents[commit.id] = list(commit.parents)

    def reachable(self, start: bytes) -> set[bytes]:
        seen: set[bytes] = set()
        stack = [start]
        while stack:
            current = stack.pop()
            if current not in seen:
                seen.add(current)
                stack.extend(self.parents[current])
        return seen


@st.composite
def graphs(draw: st.DrawFn, *, monotonic: bool = False) -> RandomGraph:
    """Draw a DAG where every commit's parents were created before it.

    With ``monotonic`` every commit is strictly newer than its parents;
    otherwise timestamps are arbitrary, as with skewed clocks.
    """
    graph = RandomGraph()
    tree = Tree()
    graph.repo.object_store.add_object(tree)

    size = draw(st.integers(min_value=1, max_value=12))
    for index in range(size):
        parent_indexes: list[int] = []
        if index > 0:
            parent_indexes = draw(
                st.lists(
                    st.integers(min_value=0, max_value=index - 1),
                    max_size=2,
                    unique=True,
                )
            )
        time = draw(st.integers(min_value=0, max_value=20))
        if monotonic:
            time += 1 + max((graph.times[p] for p in parent_indexes), default=0)
        graph.add(index, parent_indexes, time, tree.id)
    return graph


# =============================================================================
# Properties
# =============================================================================


class TestWalkerOrder:
    @given(graph=graphs())
    @settings(max_examples=150, deadline=None)
    def test_visits_every_reachable_commit_once(self, graph: RandomGraph) -> None:
        head = graph.ids[-1]

        walked = [c.id for c in CommitWalker(graph.repo, head)]

        assert len(walked) == len(set(walked))
        assert set(walked) == graph.reachable(head)

    @given(graph=graphs())
    @settings(max_examples=150, deadline=None)
    def test_children_come_before_parents(self, graph: RandomGraph) -> None:
        walked = [c.id for c in CommitWalker(graph.repo, graph.ids[-1])]
        position = {commit_id: i for i, commit_id in enumerate(walked)}

        for commit_id in walked:
            for parent in graph.parents[commit_id]:
                assert position[commit_id] < position[parent]

    @given(graph=graphs(), limit=st.integers(min_value=0, max_value=15))
    @settings(max_examples=100, deadline=None)
    def test_limited_walk_keeps_children_first(
        self, graph: RandomGraph, limit: int
    ) -> None:
        head = graph.ids[-1]

        limited = [c.id for c in CommitWalker(graph.repo, head, limit=limit)]
        position = {commit_id: i for i, commit_id in enumerate(limited)}

        assert len(limited) == min(limit, len(graph.reachable(head)))
        assert set(limited) <= graph.reachable(head)
        for commit_id in limited:
            for parent in graph.parents[commit_id]:
                if parent in position:
                    assert position[commit_id] < position[parent]

    @given(graph=graphs(monotonic=True), limit=st.integers(min_value=0, max_value=15))
    @settings(max_examples=100, deadline=None)
    def test_limit_is_a_prefix_with_ordered_clocks(
        self, graph: RandomGraph, limit: int
    ) -> None:
        head = graph.ids[-1]

        full = [c.id for c in CommitWalker(graph.repo, head)]
        limited = [c.id for c in CommitWalker(graph.repo, head, limit=limit)]

        assert limited == full[:limit]


class TestMergeBase:
    @given(graph=graphs(), data=st.data())
    @settings(max_examples=150, deadline=None)
    def test_base_is_common_ancestor(self, graph: RandomGraph, data: st.DataObject) -> None:
        a = data.draw(st.sampled_from(graph.ids))
        b = data.draw(st.sampled_from(graph.ids))

        base = find_merge_base(graph.repo, a, b)

        common = graph.reachable(a) & graph.reachable(b)
        if base is None:
            assert common == set()
        else:
            assert base in common
            assert is_ancestor(graph.repo, base, a)
            assert is_ancestor(graph.repo, base, b)

    @given(graph=graphs(), data=st.data())
    @settings(max_examples=150, deadline=None)
    def test_ancestry_matches_reachability(
        self, graph: RandomGraph, data: st.DataObject
    ) -> None:
        a = data.draw(st.sampled_from(graph.ids))
        b = data.draw(st.sampled_from(graph.ids))

        assert is_ancestor(graph.repo, a, b) == (a in graph.reachable(b))
