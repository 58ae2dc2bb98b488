# conditional_forms/contracts.py
from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from conditional_forms._compat import Self, StrEnum
from conditional_forms.schema import SchemaNode

if TYPE_CHECKING:
    from conditional_forms.schema_checks import SchemaCheckOutcome


class SchemaError(ValueError):
    """Raised when a schema definition is malformed; fatal at construction time."""

    def __init__(self, message: str, *, outcomes: Iterable[SchemaCheckOutcome] = ()) -> None:
        super().__init__(message)
        self.outcomes: tuple[SchemaCheckOutcome, ...] = tuple(outcomes)


class FormOperationError(RuntimeError):
    """Raised when a session is driven incorrectly (terminal state, bad index, bad path)."""


# ------------------------------------------------------------------------------
# Shared BaseModel config helpers
# ------------------------------------------------------------------------------

_CONTRACT_CONFIG = ConfigDict(
    extra="forbid",
    validate_assignment=True,
    use_enum_values=False,  # keep enums as enums in Python
)

_IMMUTABLE_CONTRACT_CONFIG = ConfigDict(
    extra="forbid",
    use_enum_values=False,
    frozen=True,
)

FieldPath = tuple[Union[str, int], ...]


# ------------------------------------------------------------------------------
# Field validation results
# ------------------------------------------------------------------------------


class ErrorKind(StrEnum):
    TYPE_MISMATCH = "TypeMismatch"
    PATTERN_MISMATCH = "PatternMismatch"
    ENUM_MISMATCH = "EnumMismatch"
    RANGE_VIOLATION = "RangeViolation"
    MISSING_REQUIRED = "MissingRequired"
    TOO_FEW_ITEMS = "TooFewItems"


class ValidationError(BaseModel):
    """
    One user-facing violation. `message` is English fallback text; the
    rendering layer is expected to localize by `kind` + `field_path`.
    """

    model_config = _IMMUTABLE_CONTRACT_CONFIG
    field_path: FieldPath = ()
    kind: ErrorKind
    message: str

    @property
    def dotted_path(self) -> str:
        return ".".join(str(part) for part in self.field_path)

    def is_under(self, prefix: Iterable[str | int]) -> bool:
        head = tuple(prefix)
        return self.field_path[: len(head)] == head


def error_sort_key(error: ValidationError) -> tuple[Any, ...]:
    # ints before strings at each position so mixed paths stay comparable
    path_key = tuple((0, part, "") if isinstance(part, int) else (1, 0, part) for part in error.field_path)
    return (path_key, error.kind.value, error.message)


# ------------------------------------------------------------------------------
# Session outputs
# ------------------------------------------------------------------------------


class SessionState(StrEnum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


class SessionSnapshot(BaseModel):
    """What the renderer gets back after every edit."""

    model_config = _IMMUTABLE_CONTRACT_CONFIG
    state: SessionState
    data: dict[str, Any] = Field(default_factory=dict)
    effective_schema: SchemaNode
    errors: tuple[ValidationError, ...] = ()

    @model_validator(mode="after")
    def _accepted_has_no_errors(self) -> Self:
        if self.state == SessionState.ACCEPTED and self.errors:
            raise ValueError("an accepted form cannot carry validation errors")
        return self

    @property
    def ok(self) -> bool:
        return not self.errors


class Accepted(BaseModel):
    model_config = _IMMUTABLE_CONTRACT_CONFIG
    status: Literal["accepted"] = "accepted"
    data: dict[str, Any] = Field(default_factory=dict)


class Rejected(BaseModel):
    model_config = _IMMUTABLE_CONTRACT_CONFIG
    status: Literal["rejected"] = "rejected"
    errors: tuple[ValidationError, ...]

    @field_validator("errors")
    @classmethod
    def _require_errors(cls, value: tuple[ValidationError, ...]) -> tuple[ValidationError, ...]:
        if not value:
            raise ValueError("a rejected submission must carry at least one error")
        return value


SubmissionOutcome = Annotated[Union[Accepted, Rejected], Field(discriminator="status")]


# ------------------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------------------

ENV_PREFIX = "LOANFORM_"


class SessionConfig(BaseModel):
    model_config = _CONTRACT_CONFIG

    # False: edits only recompute the effective schema; errors appear on submit
    live_validation: bool = True
    memoize_branches: bool = False

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> Self:
        return cls.model_validate(dict(payload or {}))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Self:
        env = os.environ if environ is None else environ
        raw: dict[str, Any] = {}
        for name in cls.model_fields:
            key = ENV_PREFIX + name.upper()
            if key in env:
                raw[name] = env[key].strip()
        return cls.model_validate(raw)
