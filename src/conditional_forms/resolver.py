# conditional_forms/resolver.py
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from conditional_forms.schema import (
    EMPTY_OBJECT,
    ArrayNode,
    ConditionalNode,
    ObjectNode,
    SchemaNode,
)

logger = logging.getLogger(__name__)


class BranchCache:
    """
    Memoizes branch selection per conditional node, keyed on the trigger
    value. Only valid while the schema tree it was filled from is alive.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[int, str, Any], Optional[int]] = {}
        self.hits = 0
        self.misses = 0

    def lookup(self, node: ConditionalNode, value: Any) -> Optional[int]:
        key = self._key(node, value)
        if key is None:
            return select_branch(node, value)
        if key in self._entries:
            self.hits += 1
            return self._entries[key]
        self.misses += 1
        index = select_branch(node, value)
        self._entries[key] = index
        return index

    def clear(self) -> None:
        self._entries.clear()

    @staticmethod
    def _key(node: ConditionalNode, value: Any) -> Optional[tuple[int, str, Any]]:
        try:
            hash(value)
        except TypeError:
            return None
        return (id(node), type(value).__name__, value)


def trigger_value(node: ConditionalNode, data: Any) -> Any:
    if not isinstance(data, Mapping):
        return None
    return data.get(node.trigger_field)


def select_branch(node: ConditionalNode, value: Any) -> Optional[int]:
    """Index of the first branch whose predicate matches `value`, if any."""
    if value is None:
        return None
    for index, branch in enumerate(node.branches):
        if branch.predicate.matches(value):
            return index
    return None


def active_branch(node: ConditionalNode, data: Any, *, cache: Optional[BranchCache] = None) -> Optional[int]:
    value = trigger_value(node, data)
    if value is None:
        # not answered yet: no extra requirements
        return None
    if cache is not None:
        return cache.lookup(node, value)
    return select_branch(node, value)


def resolve(node: ConditionalNode, data: Any, *, cache: Optional[BranchCache] = None) -> ObjectNode:
    index = active_branch(node, data, cache=cache)
    if index is None:
        return EMPTY_OBJECT
    logger.debug(
        "branch %d (%s) active for %s",
        index,
        node.branches[index].predicate.describe(),
        node.trigger_field,
    )
    return node.branches[index].extra_schema


def merge_branch(base: ObjectNode, extra: ObjectNode) -> ObjectNode:
    """
    Union a branch into its enclosing object: branch properties replace base
    definitions of the same name, required names are unioned (base first).
    Nested conditionals of `extra` are left to `effective_object`.
    """
    if not extra.properties and not extra.required:
        return base
    properties = dict(base.properties)
    properties.update(extra.properties)
    required = base.required + tuple(name for name in extra.required if name not in base.required)
    return base.model_copy(update={"properties": properties, "required": required})


def active_conditionals(
    node: ObjectNode, data: Any, *, cache: Optional[BranchCache] = None
) -> list[tuple[ConditionalNode, Optional[int]]]:
    """Every conditional that applies to `node`, nested branch conditionals included, with its selected branch."""
    outcomes: list[tuple[ConditionalNode, Optional[int]]] = []
    pending = list(node.conditionals)
    while pending:
        conditional = pending.pop(0)
        index = active_branch(conditional, data, cache=cache)
        outcomes.append((conditional, index))
        if index is not None:
            pending.extend(conditional.branches[index].extra_schema.conditionals)
    return outcomes


def effective_object(node: ObjectNode, data: Any, *, cache: Optional[BranchCache] = None) -> ObjectNode:
    """Object schema with every applicable branch merged in; the result has no conditionals."""
    effective = node.model_copy(update={"conditionals": ()})
    for conditional, index in active_conditionals(node, data, cache=cache):
        if index is None:
            continue
        branch = conditional.branches[index]
        logger.debug("branch %d (%s) active for %s", index, branch.predicate.describe(), conditional.trigger_field)
        effective = merge_branch(effective, branch.extra_schema)
    return effective


def _as_object(node: SchemaNode) -> SchemaNode:
    if isinstance(node, ConditionalNode):
        return ObjectNode(conditionals=(node,))
    return node


def effective_schema(node: SchemaNode, data: Any, *, cache: Optional[BranchCache] = None) -> SchemaNode:
    """
    Branch-resolved view of `node` for `data`. Nested objects are resolved
    against their own values; array items keep their declared schema since
    every element may resolve differently (see `effective_schema_at`).
    """
    node = _as_object(node)
    if not isinstance(node, ObjectNode):
        return node

    resolved = effective_object(node, data, cache=cache)
    values = data if isinstance(data, Mapping) else {}
    properties = {
        name: effective_schema(child, values.get(name), cache=cache) if isinstance(child, ObjectNode) else child
        for name, child in resolved.properties.items()
    }
    return resolved.model_copy(update={"properties": properties})


def effective_schema_at(
    node: SchemaNode,
    data: Any,
    path: Sequence[str | int],
    *,
    cache: Optional[BranchCache] = None,
) -> Optional[SchemaNode]:
    """Resolved schema of the value at `path`, or None when the path leaves the schema."""
    current: Optional[SchemaNode] = node
    value = data
    for part in path:
        current = _as_object(current) if current is not None else None
        if isinstance(current, ObjectNode) and isinstance(part, str):
            current = effective_object(current, value, cache=cache).properties.get(part)
            value = value.get(part) if isinstance(value, Mapping) else None
        elif isinstance(current, ArrayNode) and isinstance(part, int):
            current = current.items
            value = value[part] if isinstance(value, list) and -len(value) <= part < len(value) else None
        else:
            return None
        if current is None:
            return None
    return effective_schema(current, value, cache=cache)


def required_fields(node: SchemaNode, data: Any, *, cache: Optional[BranchCache] = None) -> tuple[str, ...]:
    node = _as_object(node)
    if not isinstance(node, ObjectNode):
        return ()
    return effective_object(node, data, cache=cache).required
