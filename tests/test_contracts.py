from __future__ import annotations

import pytest
from pydantic import ValidationError as PydanticValidationError

from conditional_forms.contracts import (
    ErrorKind,
    Rejected,
    SessionConfig,
    SessionSnapshot,
    SessionState,
    ValidationError,
    error_sort_key,
)
from conditional_forms.schema import EMPTY_OBJECT


def _error(path, kind=ErrorKind.MISSING_REQUIRED) -> ValidationError:
    return ValidationError(field_path=path, kind=kind, message="x")


def test_validation_error_helpers() -> None:
    error = _error(("guarantors", 1, "relation"))

    assert error.dotted_path == "guarantors.1.relation"
    assert error.is_under(("guarantors", 1))
    assert error.is_under(())
    assert not error.is_under(("guarantors", 0))


def test_sort_key_handles_mixed_path_segments() -> None:
    errors = [
        _error(("rows", "name")),
        _error(("rows", 1)),
        _error(("rows", 0), ErrorKind.TYPE_MISMATCH),
        _error(("rows", 0), ErrorKind.ENUM_MISMATCH),
        _error(()),
    ]

    ordered = sorted(errors, key=error_sort_key)

    assert [(e.field_path, e.kind.value) for e in ordered] == [
        ((), "MissingRequired"),
        (("rows", 0), "EnumMismatch"),
        (("rows", 0), "TypeMismatch"),
        (("rows", 1), "MissingRequired"),
        (("rows", "name"), "MissingRequired"),
    ]


def test_validation_error_is_frozen() -> None:
    error = _error(("gstin",))

    with pytest.raises(PydanticValidationError):
        error.message = "changed"


def test_rejected_requires_errors() -> None:
    with pytest.raises(PydanticValidationError):
        Rejected(errors=())


@pytest.mark.parametrize(
    ("environ", "expected"),
    [
        ({}, SessionConfig()),
        ({"LOANFORM_LIVE_VALIDATION": "false"}, SessionConfig(live_validation=False)),
        ({"LOANFORM_MEMOIZE_BRANCHES": " 1 ", "OTHER": "x"}, SessionConfig(memoize_branches=True)),
    ],
)
def test_session_config_from_env(environ, expected) -> None:
    assert SessionConfig.from_env(environ) == expected


def test_session_config_rejects_unknown_and_invalid_values() -> None:
    with pytest.raises(PydanticValidationError):
        SessionConfig.from_mapping({"live_validaton": False})
    with pytest.raises(PydanticValidationError):
        SessionConfig.from_env({"LOANFORM_LIVE_VALIDATION": "sometimes"})
    assert SessionConfig.from_mapping(None) == SessionConfig()


def test_accepted_snapshot_cannot_carry_errors() -> None:
    with pytest.raises(PydanticValidationError):
        SessionSnapshot(state=SessionState.ACCEPTED, effective_schema=EMPTY_OBJECT, errors=(_error(("gstin",)),))

    snapshot = SessionSnapshot(state=SessionState.EDITING, effective_schema=EMPTY_OBJECT, errors=(_error(("gstin",)),))
    assert not snapshot.ok
