"""Unit tests for the exception hierarchy."""

from pathlib import Path

import pytest

from januslens import exceptions
from januslens.exceptions import (
    ConfigLoadError,
    ConfigValidationError,
    DirtyWorkingTreeError,
    JanusError,
    ObjectNotFoundError,
    PathOutsideRepositoryError,
    ReferenceNotFoundError,
    RepositoryError,
)


def all_error_classes() -> list[type[JanusError]]:
    return [
        obj
        for obj in vars(exceptions).values()
        if isinstance(obj, type) and issubclass(obj, JanusError)
    ]


class TestKinds:
    def test_concrete_errors_have_distinct_kinds(self) -> None:
        concrete = [
            cls
            for cls in all_error_classes()
            if "kind" in vars(cls) and cls is not JanusError
        ]
        kinds = [cls.kind for cls in concrete]

        assert len(kinds) == len(set(kinds))

    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (ConfigLoadError("bad"), "ConfigurationFailure"),
            (ConfigValidationError("bad", key="k", value=1, expected="str"), "ConfigurationFailure"),
            (DirtyWorkingTreeError("dirty", paths=("a",)), "DirtyWorkingTree"),
            (ReferenceNotFoundError("missing", name="x"), "ReferenceNotFound"),
        ],
    )
    def test_kind_is_stable(self, error: JanusError, kind: str) -> None:
        assert error.kind == kind


class TestMessages:
    def test_key_error_subclasses_keep_plain_message(self) -> None:
        assert str(ReferenceNotFoundError("Reference not found: dev")) == (
            "Reference not found: dev"
        )
        assert str(ObjectNotFoundError("Path not found: a.txt")) == "Path not found: a.txt"

    def test_builtin_bases_are_catchable(self) -> None:
        with pytest.raises(KeyError):
            raise ReferenceNotFoundError("missing", name="x")
        with pytest.raises(ValueError, match="outside"):
            raise PathOutsideRepositoryError("outside", path="../x", root=Path("/r"))


class TestContext:
    def test_attributes_are_kept(self) -> None:
        error = PathOutsideRepositoryError("outside", path="../x", root=Path("/r"))

        assert isinstance(error, RepositoryError)
        assert error.path == "../x"
        assert error.root == Path("/r")

    def test_dirty_paths(self) -> None:
        error = DirtyWorkingTreeError("dirty", paths=("a.txt", "b.txt"))

        assert error.paths == ("a.txt", "b.txt")
