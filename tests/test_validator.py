from __future__ import annotations

import itertools

import pytest

from conditional_forms.contracts import ErrorKind
from conditional_forms.loan_application import GSTIN_PATTERN
from conditional_forms.schema import (
    ArrayNode,
    Branch,
    ConditionalNode,
    ObjectNode,
    PrimitiveKind,
    PrimitiveNode,
    ValueIn,
)
from conditional_forms.validator import validate


def _kinds(errors) -> list[tuple[tuple, ErrorKind]]:
    return [(e.field_path, e.kind) for e in errors]


@pytest.mark.parametrize(
    ("node", "value", "expected"),
    [
        (PrimitiveNode(kind=PrimitiveKind.STRING), 5, [ErrorKind.TYPE_MISMATCH]),
        (PrimitiveNode(kind=PrimitiveKind.NUMBER), "5", [ErrorKind.TYPE_MISMATCH]),
        (PrimitiveNode(kind=PrimitiveKind.NUMBER), False, [ErrorKind.TYPE_MISMATCH]),
        (PrimitiveNode(kind=PrimitiveKind.NUMBER, minimum=300, maximum=900), 299, [ErrorKind.RANGE_VIOLATION]),
        (PrimitiveNode(kind=PrimitiveKind.NUMBER, minimum=300, maximum=900), 901.5, [ErrorKind.RANGE_VIOLATION]),
        (PrimitiveNode(kind=PrimitiveKind.NUMBER, minimum=300, maximum=900), 300, []),
        (PrimitiveNode(kind=PrimitiveKind.STRING, enum=("Father", "Other")), "Uncle", [ErrorKind.ENUM_MISMATCH]),
        (PrimitiveNode(kind=PrimitiveKind.STRING, pattern=GSTIN_PATTERN), "bad", [ErrorKind.PATTERN_MISMATCH]),
        (PrimitiveNode(kind=PrimitiveKind.STRING, pattern=GSTIN_PATTERN), "22AAAAA0000A1Z5", []),
        (PrimitiveNode(kind=PrimitiveKind.STRING, pattern=GSTIN_PATTERN), "22AAAAA0000A1Z5\n", [ErrorKind.PATTERN_MISMATCH]),
        (PrimitiveNode(kind=PrimitiveKind.STRING, pattern=r"^\d+\$"), "12$", []),
        (PrimitiveNode(kind=PrimitiveKind.NUMBER, minimum=300, maximum=900), float("nan"), [ErrorKind.TYPE_MISMATCH]),
        (PrimitiveNode(kind=PrimitiveKind.NUMBER), float("inf"), [ErrorKind.TYPE_MISMATCH]),
        (PrimitiveNode(kind=PrimitiveKind.STRING, format="data-url"), "data:application/pdf;base64,AAAA", []),
    ],
)
def test_primitive_rules(node, value, expected) -> None:
    assert [e.kind for e in validate(node, value, ("field",))] == expected


def test_type_mismatch_skips_remaining_primitive_checks() -> None:
    node = PrimitiveNode(kind=PrimitiveKind.STRING, pattern="^a$", enum=("a",))

    assert _kinds(validate(node, 7)) == [((), ErrorKind.TYPE_MISMATCH)]


def test_pattern_and_enum_violations_accumulate_on_one_field() -> None:
    node = PrimitiveNode(kind=PrimitiveKind.STRING, pattern="^[A-Z]+$", enum=("ABC",))

    kinds = sorted(e.kind.value for e in validate(node, "abc"))

    assert kinds == ["EnumMismatch", "PatternMismatch"]


def test_missing_and_null_required_properties_are_reported_with_titles() -> None:
    node = ObjectNode(
        properties={
            "name": PrimitiveNode(kind="string", title="Director Name"),
            "pan": PrimitiveNode(kind="string"),
        },
        required=("name", "pan"),
    )

    errors = validate(node, {"pan": None, "unknown": 1})

    assert _kinds(errors) == [(("name",), ErrorKind.MISSING_REQUIRED), (("pan",), ErrorKind.MISSING_REQUIRED)]
    assert errors[0].message == "Director Name is required"
    assert errors[1].message == "pan is required"


def test_arrays_check_min_items_and_every_element() -> None:
    node = ObjectNode(
        properties={
            "rows": ArrayNode(
                title="Rows",
                items=PrimitiveNode(kind="number", minimum=0),
                min_items=3,
            )
        }
    )

    errors = validate(node, {"rows": [1, -1, "x"]})
    assert _kinds(errors) == [
        (("rows", 1), ErrorKind.RANGE_VIOLATION),
        (("rows", 2), ErrorKind.TYPE_MISMATCH),
    ]

    errors = validate(node, {"rows": [None]})
    assert _kinds(errors) == [(("rows",), ErrorKind.TOO_FEW_ITEMS)]
    assert errors[0].message == "Rows needs at least 3 entries"


def test_container_type_mismatches() -> None:
    node = ObjectNode(properties={"rows": ArrayNode(items=PrimitiveNode(kind="string")), "group": ObjectNode()})

    errors = validate(node, {"rows": "a,b", "group": ["x"]})

    assert _kinds(errors) == [(("group",), ErrorKind.TYPE_MISMATCH), (("rows",), ErrorKind.TYPE_MISMATCH)]
    assert _kinds(validate(node, "not an object")) == [((), ErrorKind.TYPE_MISMATCH)]


def test_scenario_a_high_score_has_no_extra_requirements(loan_schema) -> None:
    assert validate(loan_schema, {"creditScore": 750, "loanAmount": 100000}) == ()


def test_scenario_b_low_score_requires_two_guarantors(loan_schema) -> None:
    errors = validate(loan_schema, {"creditScore": 650, "loanAmount": 100000, "guarantors": []})

    assert _kinds(errors) == [(("guarantors",), ErrorKind.TOO_FEW_ITEMS)]


def test_scenario_c_gstin_pattern(business_schema) -> None:
    assert validate(business_schema, {"gstin": "22AAAAA0000A1Z5"}) == ()
    assert _kinds(validate(business_schema, {"gstin": "bad"})) == [(("gstin",), ErrorKind.PATTERN_MISMATCH)]


def test_unanswered_trigger_adds_no_errors_beyond_base(loan_schema) -> None:
    errors = validate(loan_schema, {"loanAmount": 100000, "guarantors": "ignored while no branch is active"})

    assert _kinds(errors) == [(("creditScore",), ErrorKind.MISSING_REQUIRED)]


def test_nested_conditional_inside_array_items(loan_schema) -> None:
    data = {
        "creditScore": 600,
        "loanAmount": 60000,
        "guarantors": [
            {"name": "A", "relationship": "Other"},
            {"name": "B", "relationship": "Cousin"},
        ],
    }

    assert _kinds(validate(loan_schema, data)) == [
        (("guarantors", 0, "relation"), ErrorKind.MISSING_REQUIRED),
        (("guarantors", 1, "relationship"), ErrorKind.ENUM_MISMATCH),
    ]


def test_bare_conditional_is_validated_as_its_enclosing_object() -> None:
    conditional = ConditionalNode(
        trigger_field="kind",
        branches=(
            Branch(
                predicate=ValueIn(values=("other",)),
                extra_schema=ObjectNode(properties={"detail": PrimitiveNode(kind="string")}, required=("detail",)),
            ),
        ),
    )

    assert validate(conditional, {"kind": "other"})[0].field_path == ("detail",)
    assert validate(conditional, {"kind": "self"}) == ()


def test_error_set_is_independent_of_property_order() -> None:
    fields = {
        "a": PrimitiveNode(kind="number", maximum=1),
        "b": PrimitiveNode(kind="string", enum=("x",)),
        "c": PrimitiveNode(kind="string"),
    }
    data = {"a": 5, "b": "y", "c": 3}
    results = set()
    for order in itertools.permutations(fields):
        node = ObjectNode(properties={name: fields[name] for name in order}, required=tuple(order) + ("d",))
        results.add(validate(node, data))

    assert len(results) == 1


def test_validation_is_deterministic(loan_schema) -> None:
    data = {"creditScore": 100, "loanAmount": "lots", "guarantors": [{"relationship": "Other"}]}

    assert validate(loan_schema, data) == validate(loan_schema, data)


@pytest.mark.parametrize("score", [699.5, 699.01])
def test_score_between_numeric_branches_is_a_range_violation(loan_schema, score) -> None:
    errors = validate(loan_schema, {"creditScore": score, "loanAmount": 100000})

    assert _kinds(errors) == [(("creditScore",), ErrorKind.RANGE_VIOLATION)]
    assert errors[0].message == "Credit Score must be >= 700 or <= 699"


def test_unmatched_enum_trigger_adds_no_error(loan_schema) -> None:
    data = {
        "creditScore": 600,
        "loanAmount": 60000,
        "guarantors": [{"name": "A", "relationship": "Father"}, {"name": "B", "relationship": "Spouse"}],
    }

    assert validate(loan_schema, data) == ()
