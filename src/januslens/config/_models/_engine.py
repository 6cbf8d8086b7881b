"""Engine configuration models.

Sections tuning repository operations: locking, checkout, merge, diff,
history and the recent repositories list.
"""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, PositiveInt

from januslens.config._models._common import ConflictStyle


class RepositoryConfig(BaseModel):
    """Repository section.

    Attributes:
        lock_timeout: Seconds to wait for the repository lock.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    lock_timeout: float = Field(default=5.0, ge=0)


class CheckoutConfig(BaseModel):
    """Checkout section.

    Attributes:
        guard_dirty: Refuse checkouts and fast-forwards that would overwrite
            uncommitted changes.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    guard_dirty: bool = False


class MergeConfig(BaseModel):
    """Merge section.

    Attributes:
        line_level: Merge divergent text files line by line.
        conflict_style: Marker layout for conflicted files.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    line_level: bool = True
    conflict_style: ConflictStyle = ConflictStyle.MERGE


class DiffConfig(BaseModel):
    """Diff section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    context_lines: NonNegativeInt = 3


class HistoryConfig(BaseModel):
    """History section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    default_limit: PositiveInt = 100


class RecentConfig(BaseModel):
    """Recent repositories section."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    max_entries: PositiveInt = 20
