# conditional_forms/schema.py
from __future__ import annotations

import re
from functools import lru_cache
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from conditional_forms._compat import StrEnum, is_number, literal_equals

# ------------------------------------------------------------------------------
# Shared BaseModel config helpers
# ------------------------------------------------------------------------------

_NODE_CONFIG = ConfigDict(
    extra="forbid",
    use_enum_values=False,
    frozen=True,
)


class PrimitiveKind(StrEnum):
    STRING = "string"
    NUMBER = "number"


# ------------------------------------------------------------------------------
# Branch predicates
# ------------------------------------------------------------------------------


class ValueAtMost(BaseModel):
    """Matches a numeric trigger value `<= limit`."""

    model_config = _NODE_CONFIG
    op: Literal["at_most"] = "at_most"
    limit: Union[int, float]

    def matches(self, value: Any) -> bool:
        return is_number(value) and value <= self.limit

    def describe(self) -> str:
        return f"<= {self.limit}"


class ValueAtLeast(BaseModel):
    """Matches a numeric trigger value `>= limit`."""

    model_config = _NODE_CONFIG
    op: Literal["at_least"] = "at_least"
    limit: Union[int, float]

    def matches(self, value: Any) -> bool:
        return is_number(value) and value >= self.limit

    def describe(self) -> str:
        return f">= {self.limit}"


class ValueIn(BaseModel):
    model_config = _NODE_CONFIG
    op: Literal["in"] = "in"
    values: tuple[Any, ...]

    def matches(self, value: Any) -> bool:
        return any(literal_equals(value, candidate) for candidate in self.values)

    def describe(self) -> str:
        return "in {" + ", ".join(repr(v) for v in self.values) + "}"


Predicate = Annotated[Union[ValueAtMost, ValueAtLeast, ValueIn], Field(discriminator="op")]


# ------------------------------------------------------------------------------
# Schema nodes
# ------------------------------------------------------------------------------


class PrimitiveNode(BaseModel):
    model_config = _NODE_CONFIG
    node_type: Literal["primitive"] = "primitive"
    kind: PrimitiveKind
    title: Optional[str] = None
    pattern: Optional[str] = None
    enum: Optional[tuple[Any, ...]] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    # opaque tag, e.g. "data-url" for an upload already turned into a string
    format: Optional[str] = None
    placeholder: Optional[str] = None
    widget: Optional[str] = None

    def compiled_pattern(self) -> Optional[re.Pattern[str]]:
        if self.pattern is None:
            return None
        return _compile_pattern(self.pattern)


class ObjectNode(BaseModel):
    """
    Ordered property map (insertion order is display order) plus the
    conditional sections whose triggers are sibling properties.
    """

    model_config = _NODE_CONFIG
    node_type: Literal["object"] = "object"
    title: Optional[str] = None
    properties: dict[str, SchemaNode] = Field(default_factory=dict)
    required: tuple[str, ...] = ()
    conditionals: tuple[ConditionalNode, ...] = ()

    def is_empty(self) -> bool:
        return not self.properties and not self.required and not self.conditionals


class ArrayUiOptions(BaseModel):
    """Repeating-group hints for the renderer; never enforced by the core."""

    model_config = _NODE_CONFIG
    addable: bool = True
    removable: bool = True
    orderable: bool = True
    add_button_text: Optional[str] = None


class ArrayNode(BaseModel):
    model_config = _NODE_CONFIG
    node_type: Literal["array"] = "array"
    title: Optional[str] = None
    items: SchemaNode
    min_items: Optional[int] = None
    ui_options: ArrayUiOptions = Field(default_factory=ArrayUiOptions)
    widget: Optional[str] = None


class Branch(BaseModel):
    model_config = _NODE_CONFIG
    predicate: Predicate
    extra_schema: ObjectNode = Field(default_factory=ObjectNode)


class ConditionalNode(BaseModel):
    """
    Sections that apply only while the sibling `trigger_field` satisfies a
    branch predicate. The trigger is looked up by name at resolution time.
    """

    model_config = _NODE_CONFIG
    node_type: Literal["conditional"] = "conditional"
    trigger_field: str = Field(min_length=1)
    branches: tuple[Branch, ...] = ()


SchemaNode = Annotated[
    Union[PrimitiveNode, ObjectNode, ArrayNode, ConditionalNode],
    Field(discriminator="node_type"),
]

ObjectNode.model_rebuild()
ArrayNode.model_rebuild()
Branch.model_rebuild()
ConditionalNode.model_rebuild()

EMPTY_OBJECT = ObjectNode()


def _strict_end_anchor(pattern: str) -> str:
    # Python's `$` also matches before a trailing newline; `\Z` does not
    if not pattern.endswith("$"):
        return pattern
    escapes = len(pattern[:-1]) - len(pattern[:-1].rstrip("\\"))
    if escapes % 2:
        return pattern
    return pattern[:-1] + r"\Z"


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> re.Pattern[str]:
    return re.compile(_strict_end_anchor(pattern))


# ------------------------------------------------------------------------------
# Structural queries
# ------------------------------------------------------------------------------


def child_schema(node: SchemaNode, key: str | int) -> Optional[SchemaNode]:
    """Declared schema one step below `node`; conditionals are not consulted."""
    if isinstance(node, ObjectNode) and isinstance(key, str):
        return node.properties.get(key)
    if isinstance(node, ArrayNode) and isinstance(key, int):
        return node.items
    return None


def is_required(node: SchemaNode, key: str) -> bool:
    return isinstance(node, ObjectNode) and key in node.required


def property_names(node: SchemaNode) -> tuple[str, ...]:
    if isinstance(node, ObjectNode):
        return tuple(node.properties)
    return ()


def default_value(node: SchemaNode) -> Any:
    """Blank value for a freshly added repeating-group entry."""
    if isinstance(node, (ObjectNode, ConditionalNode)):
        return {}
    if isinstance(node, ArrayNode):
        return []
    return None


def node_label(node: Optional[SchemaNode], fallback: str | int) -> str:
    title = getattr(node, "title", None)
    if title:
        return str(title)
    return str(fallback)
