"""
Validating builder from declarative JSON-Schema-style literals to the
tagged schema model.

Supported keywords: `type` (object, array, string, number), `title`,
`properties`, `required`, `items`, `minItems`, `pattern`, `enum`, `minimum`,
`maximum`, `format` and object-level `dependencies` of the
`{trigger: {"oneOf": [...]}}` form. Each `oneOf` entry selects itself through
its constraint on the trigger property (`minimum`, `maximum` or `enum`); that
constraint becomes the branch predicate and is dropped from the branch's
extra properties so the base definition of the trigger stays in force.

Presentation hints come from a parallel ui-schema (`ui:options`,
`ui:placeholder`, `ui:widget`), keyed the same way as the data.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from conditional_forms.contracts import SchemaError
from conditional_forms.schema import (
    ArrayNode,
    ArrayUiOptions,
    Branch,
    ConditionalNode,
    ObjectNode,
    PrimitiveKind,
    PrimitiveNode,
    SchemaNode,
    ValueAtLeast,
    ValueAtMost,
    ValueIn,
)
from conditional_forms.schema_checks import ensure_valid_schema

logger = logging.getLogger(__name__)

_PRIMITIVE_TYPES = {kind.value for kind in PrimitiveKind}
_UI_OPTION_KEYS = {
    "addable": "addable",
    "removable": "removable",
    "orderable": "orderable",
    "addButtonText": "add_button_text",
}

Location = tuple[Union[str, int], ...]


def _where(location: Location) -> str:
    return "/".join(str(p) for p in location) or "<root>"


def _infer_type(definition: Mapping[str, Any]) -> Optional[str]:
    declared = definition.get("type")
    if declared is not None:
        return declared
    if "properties" in definition or "dependencies" in definition:
        return "object"
    if "items" in definition:
        return "array"
    return None


def _ui_for(ui_schema: Optional[Mapping[str, Any]], key: str) -> Optional[Mapping[str, Any]]:
    if not isinstance(ui_schema, Mapping):
        return None
    sub = ui_schema.get(key)
    return sub if isinstance(sub, Mapping) else None


def _predicate_from(constraint: Any, *, trigger: str, location: Location) -> Any:
    if not isinstance(constraint, Mapping):
        raise SchemaError(
            f"branch at {_where(location)} must constrain trigger '{trigger}' with minimum, maximum or enum"
        )
    present = [key for key in ("minimum", "maximum", "enum") if key in constraint]
    if len(present) != 1:
        raise SchemaError(
            f"branch at {_where(location)} must constrain trigger '{trigger}' with exactly one of "
            f"minimum, maximum or enum (found {present or 'none'})"
        )
    key = present[0]
    if key == "minimum":
        return ValueAtLeast(limit=constraint["minimum"])
    if key == "maximum":
        return ValueAtMost(limit=constraint["maximum"])
    values = constraint["enum"]
    if not isinstance(values, (list, tuple)) or not values:
        raise SchemaError(f"enum at {_where(location)} must be a non-empty list")
    return ValueIn(values=tuple(values))


def _build_branch(
    entry: Any,
    *,
    trigger: str,
    ui_schema: Optional[Mapping[str, Any]],
    location: Location,
) -> Branch:
    if not isinstance(entry, Mapping):
        raise SchemaError(f"oneOf entry at {_where(location)} must be an object")

    raw_properties = dict(entry.get("properties") or {})
    predicate = _predicate_from(raw_properties.pop(trigger, None), trigger=trigger, location=location)

    extra = _build_object(
        {
            "properties": raw_properties,
            "required": entry.get("required", []),
            "dependencies": entry.get("dependencies", {}),
        },
        ui_schema=ui_schema,
        location=location,
    )
    return Branch(predicate=predicate, extra_schema=extra)


def _build_conditional(
    trigger: str,
    dependency: Any,
    *,
    ui_schema: Optional[Mapping[str, Any]],
    location: Location,
) -> ConditionalNode:
    if not isinstance(dependency, Mapping) or not isinstance(dependency.get("oneOf"), list):
        raise SchemaError(
            f"dependency on '{trigger}' at {_where(location)} must be of the form {{\"oneOf\": [...]}}"
        )
    branches = tuple(
        _build_branch(entry, trigger=trigger, ui_schema=ui_schema, location=location + ("oneOf", index))
        for index, entry in enumerate(dependency["oneOf"])
    )
    return ConditionalNode(trigger_field=trigger, branches=branches)


def _build_object(
    definition: Mapping[str, Any],
    *,
    ui_schema: Optional[Mapping[str, Any]],
    location: Location,
) -> ObjectNode:
    raw_properties = definition.get("properties") or {}
    if not isinstance(raw_properties, Mapping):
        raise SchemaError(f"properties at {_where(location)} must be an object")

    properties = {
        str(name): _build_node(sub, ui_schema=_ui_for(ui_schema, name), location=location + ("properties", name))
        for name, sub in raw_properties.items()
    }

    dependencies = definition.get("dependencies") or {}
    if not isinstance(dependencies, Mapping):
        raise SchemaError(f"dependencies at {_where(location)} must be an object")
    conditionals = tuple(
        _build_conditional(
            str(trigger),
            dependency,
            ui_schema=ui_schema,
            location=location + ("dependencies", trigger),
        )
        for trigger, dependency in dependencies.items()
    )

    return ObjectNode(
        title=definition.get("title"),
        properties=properties,
        required=tuple(definition.get("required") or ()),
        conditionals=conditionals,
    )


def _build_array(
    definition: Mapping[str, Any],
    *,
    ui_schema: Optional[Mapping[str, Any]],
    location: Location,
) -> ArrayNode:
    if "items" not in definition:
        raise SchemaError(f"array at {_where(location)} must declare items")

    raw_options = {}
    if isinstance(ui_schema, Mapping) and isinstance(ui_schema.get("ui:options"), Mapping):
        raw_options = {
            _UI_OPTION_KEYS[key]: value
            for key, value in ui_schema["ui:options"].items()
            if key in _UI_OPTION_KEYS
        }

    return ArrayNode(
        title=definition.get("title"),
        items=_build_node(definition["items"], ui_schema=_ui_for(ui_schema, "items"), location=location + ("items",)),
        min_items=definition.get("minItems"),
        ui_options=ArrayUiOptions(**raw_options),
        widget=ui_schema.get("ui:widget") if isinstance(ui_schema, Mapping) else None,
    )


def _build_primitive(
    definition: Mapping[str, Any],
    *,
    kind: str,
    ui_schema: Optional[Mapping[str, Any]],
    location: Location,
) -> PrimitiveNode:
    if "dependencies" in definition:
        raise SchemaError(
            f"dependencies at {_where(location)} belong on the enclosing object, not on a {kind} field"
        )
    enum = definition.get("enum")
    ui = ui_schema or {}
    return PrimitiveNode(
        kind=PrimitiveKind(kind),
        title=definition.get("title"),
        pattern=definition.get("pattern"),
        enum=tuple(enum) if enum is not None else None,
        minimum=definition.get("minimum"),
        maximum=definition.get("maximum"),
        format=definition.get("format"),
        placeholder=ui.get("ui:placeholder"),
        widget=ui.get("ui:widget"),
    )


def _build_node(
    definition: Any,
    *,
    ui_schema: Optional[Mapping[str, Any]],
    location: Location,
) -> SchemaNode:
    if not isinstance(definition, Mapping):
        raise SchemaError(f"schema at {_where(location)} must be an object, got {type(definition).__name__}")

    node_type = _infer_type(definition)
    if node_type == "object":
        return _build_object(definition, ui_schema=ui_schema, location=location)
    if node_type == "array":
        return _build_array(definition, ui_schema=ui_schema, location=location)
    if node_type in _PRIMITIVE_TYPES:
        return _build_primitive(definition, kind=node_type, ui_schema=ui_schema, location=location)
    raise SchemaError(f"unsupported schema type {node_type!r} at {_where(location)}")


def build_schema(
    definition: Mapping[str, Any],
    *,
    ui_schema: Optional[Mapping[str, Any]] = None,
) -> SchemaNode:
    """Build and check a schema tree; any problem surfaces as `SchemaError`."""
    try:
        node = _build_node(definition, ui_schema=ui_schema, location=())
    except PydanticValidationError as exc:
        logger.error("schema definition rejected by model validation: %s", exc)
        raise SchemaError(f"invalid schema definition: {exc.error_count()} field error(s)") from exc
    except SchemaError:
        logger.error("schema definition rejected", exc_info=True)
        raise
    return ensure_valid_schema(node)
