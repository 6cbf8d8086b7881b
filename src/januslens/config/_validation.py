# pyright: reportAny=false, reportExplicitAny=false, reportUnknownArgumentType=false, reportUnknownMemberType=false, reportUnknownParameterType=false, reportUnknownVariableType=false
"""Configuration validation using Pydantic schemas.

This module validates JanusLens configuration dictionaries against the
frozen section models. The lenient schema ignores unknown keys; the strict
one reports them.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from januslens.config._models._engine import (
    CheckoutConfig,
    DiffConfig,
    HistoryConfig,
    MergeConfig,
    RecentConfig,
    RepositoryConfig,
)
from januslens.config._models._logging import LoggingConfig
from januslens.exceptions import ConfigValidationError

if TYPE_CHECKING:
    from pydantic_core import ErrorDetails

    from januslens.config._models._common import ConfigSource


# -----------------------------------------------------------------------------
# Validation Issue
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Represents a configuration validation issue.

    Attributes:
        key: Dotted path to the configuration key (e.g., "logging.level").
        message: Human-readable description of the issue.
        expected: Description of expected value or type, if available.
        actual: The actual value that caused the issue.
        source: Name of the ConfigSource where the issue was found, or None.
        severity: Whether this is an error or warning.
    """

    key: str
    message: str
    expected: str | None
    actual: Any
    source: str | None
    severity: Literal["error", "warning"]


# -----------------------------------------------------------------------------
# Pydantic Schemas
# -----------------------------------------------------------------------------


class ConfigSchema(BaseModel):
    """Pydantic schema for root configuration (lenient mode)."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    logging: LoggingConfig = LoggingConfig()
    repository: RepositoryConfig = RepositoryConfig()
    checkout: CheckoutConfig = CheckoutConfig()
    merge: MergeConfig = MergeConfig()
    diff: DiffConfig = DiffConfig()
    history: HistoryConfig = HistoryConfig()
    recent: RecentConfig = RecentConfig()


class ConfigSchemaStrict(ConfigSchema):
    """Pydantic schema for root configuration (strict mode)."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")


# -----------------------------------------------------------------------------
# Validation Functions
# -----------------------------------------------------------------------------


def _pydantic_error_to_issue(
    error: ErrorDetails,
    source: str | None,
) -> ValidationIssue:
    """Convert a Pydantic error dict to a ValidationIssue.

    Args:
        error: A single error dict from ValidationError.errors().
        source: The ConfigSourceName value, or None for merged config.

    Returns:
        A ValidationIssue representing the validation error.
    """
    loc = error.get("loc", ())
    key = ".".join(str(part) for part in loc)

    ctx = error.get("ctx")
    expected: str | None = None
    if ctx is not None:
        if "expected" in ctx:
            expected = str(ctx["expected"])
        elif "ge" in ctx:
            expected = f">= {ctx['ge']}"
        elif "gt" in ctx:
            expected = f"> {ctx['gt']}"

    return ValidationIssue(
        key=key,
        message=str(error.get("msg", "Validation error")),
        expected=expected,
        actual=error.get("input"),
        source=source,
        severity="error",
    )


def validate_config(
    config: dict[str, Any],
    *,
    strict: bool = False,
) -> list[ValidationIssue]:
    """Validate a merged configuration dictionary.

    Args:
        config: The merged configuration dictionary to validate.
        strict: If True, unknown keys are errors. If False, they are ignored.

    Returns:
        List of ValidationIssue objects. Empty list indicates valid config.
    """
    schema_class = ConfigSchemaStrict if strict else ConfigSchema

    try:
        _ = schema_class.model_validate(config)
    except ValidationError as e:
        return [_pydantic_error_to_issue(err, source=None) for err in e.errors()]
    else:
        return []


def validate_source(source: ConfigSource) -> list[ValidationIssue]:
    """Validate a single ConfigSource's values.

    Args:
        source: The ConfigSource to validate.

    Returns:
        List of ValidationIssue objects tagged with source.name.
        Empty list if source is empty, doesn't exist, or is valid.
    """
    if not source.exists or not source.values:
        return []

    try:
        _ = ConfigSchema.model_validate(source.values)
    except ValidationError as e:
        return [
            _pydantic_error_to_issue(err, source=source.name.value)
            for err in e.errors()
        ]
    else:
        return []


def raise_if_validation_errors(
    issues: list[ValidationIssue],
    source: str | None = None,
) -> None:
    """Raise ConfigValidationError for the first validation error.

    Args:
        issues: List of ValidationIssue objects to check.
        source: Optional source string to use in the exception.
            If not provided, uses the source from the first error.

    Raises:
        ConfigValidationError: If any issues have severity="error".
    """
    errors = [i for i in issues if i.severity == "error"]
    if errors:
        issue = errors[0]
        msg = f"Invalid configuration value for '{issue.key}'"
        raise ConfigValidationError(
            msg,
            key=issue.key,
            value=issue.actual,
            expected=issue.expected or issue.message,
            source=source or issue.source,
        )
