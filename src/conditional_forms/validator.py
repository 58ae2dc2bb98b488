# conditional_forms/validator.py
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Optional

from conditional_forms._compat import is_number, literal_equals
from conditional_forms.contracts import ErrorKind, FieldPath, ValidationError, error_sort_key
from conditional_forms.resolver import BranchCache, active_conditionals, effective_object
from conditional_forms.schema import (
    ArrayNode,
    ConditionalNode,
    ObjectNode,
    PrimitiveKind,
    PrimitiveNode,
    SchemaNode,
    ValueAtLeast,
    ValueAtMost,
    node_label,
)


def _label(node: Optional[SchemaNode], path: FieldPath) -> str:
    return node_label(node, path[-1] if path else "value")


def _error(path: FieldPath, kind: ErrorKind, message: str) -> ValidationError:
    return ValidationError(field_path=path, kind=kind, message=message)


def _format_literal(value: Any) -> str:
    return value if isinstance(value, str) else repr(value)


def _validate_primitive(node: PrimitiveNode, value: Any, path: FieldPath, errors: list[ValidationError]) -> None:
    label = _label(node, path)
    if node.kind == PrimitiveKind.STRING and not isinstance(value, str):
        errors.append(_error(path, ErrorKind.TYPE_MISMATCH, f"{label} must be text"))
        return
    if node.kind == PrimitiveKind.NUMBER and not is_number(value):
        errors.append(_error(path, ErrorKind.TYPE_MISMATCH, f"{label} must be a number"))
        return

    pattern = node.compiled_pattern()
    if pattern is not None and isinstance(value, str) and pattern.search(value) is None:
        errors.append(_error(path, ErrorKind.PATTERN_MISMATCH, f"{label} is not in the expected format"))

    if node.enum is not None and not any(literal_equals(value, allowed) for allowed in node.enum):
        choices = ", ".join(_format_literal(v) for v in node.enum)
        errors.append(_error(path, ErrorKind.ENUM_MISMATCH, f"{label} must be one of: {choices}"))

    if is_number(value):
        if node.minimum is not None and value < node.minimum:
            errors.append(_error(path, ErrorKind.RANGE_VIOLATION, f"{label} must be at least {node.minimum}"))
        if node.maximum is not None and value > node.maximum:
            errors.append(_error(path, ErrorKind.RANGE_VIOLATION, f"{label} must be at most {node.maximum}"))


def _validate_object(
    node: ObjectNode,
    value: Any,
    path: FieldPath,
    errors: list[ValidationError],
    cache: Optional[BranchCache],
) -> None:
    if not isinstance(value, Mapping):
        errors.append(_error(path, ErrorKind.TYPE_MISMATCH, f"{_label(node, path)} must be a group of fields"))
        return

    # conditionals are only ever judged in the context of their enclosing object
    effective = effective_object(node, value, cache=cache)

    for conditional, index in active_conditionals(node, value, cache=cache):
        trigger = value.get(conditional.trigger_field)
        if index is not None or not is_number(trigger):
            continue
        # a number that falls between the numeric branches (699.5 between <= 699 and >= 700)
        ranges = [
            branch.predicate.describe()
            for branch in conditional.branches
            if isinstance(branch.predicate, (ValueAtMost, ValueAtLeast))
        ]
        if ranges:
            label = node_label(effective.properties.get(conditional.trigger_field), conditional.trigger_field)
            errors.append(
                _error(
                    path + (conditional.trigger_field,),
                    ErrorKind.RANGE_VIOLATION,
                    f"{label} must be " + " or ".join(ranges),
                )
            )

    for name in effective.required:
        if value.get(name) is None:
            child = effective.properties.get(name)
            errors.append(
                _error(path + (name,), ErrorKind.MISSING_REQUIRED, f"{node_label(child, name)} is required")
            )

    for name, child in effective.properties.items():
        child_value = value.get(name)
        if child_value is None:
            continue
        _validate_node(child, child_value, path + (name,), errors, cache)


def _validate_array(
    node: ArrayNode,
    value: Any,
    path: FieldPath,
    errors: list[ValidationError],
    cache: Optional[BranchCache],
) -> None:
    label = _label(node, path)
    if not isinstance(value, (list, tuple)):
        errors.append(_error(path, ErrorKind.TYPE_MISMATCH, f"{label} must be a list"))
        return

    if node.min_items is not None and len(value) < node.min_items:
        noun = "entry" if node.min_items == 1 else "entries"
        errors.append(_error(path, ErrorKind.TOO_FEW_ITEMS, f"{label} needs at least {node.min_items} {noun}"))

    for index, item in enumerate(value):
        if item is None:
            # a freshly added entry that has not been filled in yet
            continue
        _validate_node(node.items, item, path + (index,), errors, cache)


def _validate_node(
    node: SchemaNode,
    value: Any,
    path: FieldPath,
    errors: list[ValidationError],
    cache: Optional[BranchCache],
) -> None:
    if isinstance(node, ConditionalNode):
        _validate_object(ObjectNode(conditionals=(node,)), value, path, errors, cache)
    elif isinstance(node, ObjectNode):
        _validate_object(node, value, path, errors, cache)
    elif isinstance(node, ArrayNode):
        _validate_array(node, value, path, errors, cache)
    else:
        _validate_primitive(node, value, path, errors)


def validate(
    schema: SchemaNode,
    value: Any,
    path: Sequence[str | int] = (),
    *,
    cache: Optional[BranchCache] = None,
) -> tuple[ValidationError, ...]:
    """
    Validate `value` against `schema`, collecting every violation.

    Never raises for bad data: violations come back as `ValidationError`
    records sorted by path, so the result does not depend on the order in
    which properties were declared or entered.
    """
    errors: list[ValidationError] = []
    _validate_node(schema, value, tuple(path), errors, cache)
    return tuple(sorted(errors, key=error_sort_key))
