from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, Union

from conditional_forms._compat import is_number, literal_equals
from conditional_forms.contracts import SchemaError
from conditional_forms.schema import (
    ArrayNode,
    ConditionalNode,
    ObjectNode,
    PrimitiveNode,
    SchemaNode,
    ValueAtLeast,
    ValueAtMost,
    ValueIn,
)

logger = logging.getLogger(__name__)

SchemaPath = tuple[Union[str, int], ...]


class SchemaCheckId(str, Enum):
    TRIGGER_FIELD_PRESENT = "trigger_field_present.v1"
    MIN_ITEMS_NON_NEGATIVE = "min_items_non_negative.v1"
    PATTERN_COMPILES = "pattern_compiles.v1"
    BOUNDS_ORDERED = "bounds_ordered.v1"
    BRANCHES_DISJOINT = "branches_disjoint.v1"
    BRANCHES_CONTIGUOUS = "branches_contiguous.v1"


@dataclass(frozen=True)
class SchemaCheckOutcome:
    check_id: SchemaCheckId
    passed: bool
    code: str
    reason: str
    path: SchemaPath = ()
    details: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SchemaCheckContext:
    node: SchemaNode
    path: SchemaPath
    # property names visible to a conditional (base object plus enclosing branch)
    siblings: Mapping[str, SchemaNode] = field(default_factory=dict)


Checker = Callable[[SchemaCheckContext], SchemaCheckOutcome]


def _ok(check_id: SchemaCheckId, code: str, ctx: SchemaCheckContext) -> SchemaCheckOutcome:
    return SchemaCheckOutcome(check_id=check_id, passed=True, code=code, reason=code, path=ctx.path)


def _fail(
    check_id: SchemaCheckId,
    code: str,
    reason: str,
    ctx: SchemaCheckContext,
    details: Optional[Mapping[str, Any]] = None,
) -> SchemaCheckOutcome:
    return SchemaCheckOutcome(
        check_id=check_id,
        passed=False,
        code=code,
        reason=reason,
        path=ctx.path,
        details=dict(details or {}),
    )


def check_trigger_field_present(ctx: SchemaCheckContext) -> SchemaCheckOutcome:
    node = ctx.node
    if not isinstance(node, ConditionalNode):
        return _ok(SchemaCheckId.TRIGGER_FIELD_PRESENT, "trigger_check_not_applicable", ctx)
    if node.trigger_field in ctx.siblings:
        return _ok(SchemaCheckId.TRIGGER_FIELD_PRESENT, "trigger_field_declared", ctx)
    return _fail(
        SchemaCheckId.TRIGGER_FIELD_PRESENT,
        "trigger_field_missing",
        f"Conditional section depends on '{node.trigger_field}', which is not a sibling property.",
        ctx,
        {"trigger_field": node.trigger_field, "siblings": sorted(ctx.siblings)},
    )


def check_min_items_non_negative(ctx: SchemaCheckContext) -> SchemaCheckOutcome:
    node = ctx.node
    if not isinstance(node, ArrayNode) or node.min_items is None:
        return _ok(SchemaCheckId.MIN_ITEMS_NON_NEGATIVE, "min_items_not_applicable", ctx)
    if node.min_items >= 0:
        return _ok(SchemaCheckId.MIN_ITEMS_NON_NEGATIVE, "min_items_valid", ctx)
    return _fail(
        SchemaCheckId.MIN_ITEMS_NON_NEGATIVE,
        "min_items_negative",
        f"minItems must be a non-negative integer, got {node.min_items}.",
        ctx,
        {"min_items": node.min_items},
    )


def check_pattern_compiles(ctx: SchemaCheckContext) -> SchemaCheckOutcome:
    node = ctx.node
    if not isinstance(node, PrimitiveNode) or node.pattern is None:
        return _ok(SchemaCheckId.PATTERN_COMPILES, "pattern_not_applicable", ctx)
    try:
        node.compiled_pattern()
    except re.error as exc:
        return _fail(
            SchemaCheckId.PATTERN_COMPILES,
            "pattern_invalid",
            f"pattern {node.pattern!r} does not compile: {exc}",
            ctx,
            {"pattern": node.pattern},
        )
    return _ok(SchemaCheckId.PATTERN_COMPILES, "pattern_compiles", ctx)


def check_bounds_ordered(ctx: SchemaCheckContext) -> SchemaCheckOutcome:
    node = ctx.node
    if not isinstance(node, PrimitiveNode) or node.minimum is None or node.maximum is None:
        return _ok(SchemaCheckId.BOUNDS_ORDERED, "bounds_not_applicable", ctx)
    if node.minimum <= node.maximum:
        return _ok(SchemaCheckId.BOUNDS_ORDERED, "bounds_ordered", ctx)
    return _fail(
        SchemaCheckId.BOUNDS_ORDERED,
        "bounds_inverted",
        f"minimum {node.minimum} is greater than maximum {node.maximum}.",
        ctx,
        {"minimum": node.minimum, "maximum": node.maximum},
    )


def _interval(predicate: Any) -> Optional[tuple[float, float]]:
    if isinstance(predicate, ValueAtMost):
        return (-math.inf, predicate.limit)
    if isinstance(predicate, ValueAtLeast):
        return (predicate.limit, math.inf)
    return None


def _predicates_overlap(left: Any, right: Any) -> bool:
    left_range, right_range = _interval(left), _interval(right)
    if left_range is not None and right_range is not None:
        return max(left_range[0], right_range[0]) <= min(left_range[1], right_range[1])
    if left_range is not None and isinstance(right, ValueIn):
        return any(is_number(v) and left_range[0] <= v <= left_range[1] for v in right.values)
    if right_range is not None and isinstance(left, ValueIn):
        return any(is_number(v) and right_range[0] <= v <= right_range[1] for v in left.values)
    if isinstance(left, ValueIn) and isinstance(right, ValueIn):
        return any(literal_equals(a, b) for a in left.values for b in right.values)
    return False


def check_branches_disjoint(ctx: SchemaCheckContext) -> SchemaCheckOutcome:
    node = ctx.node
    if not isinstance(node, ConditionalNode):
        return _ok(SchemaCheckId.BRANCHES_DISJOINT, "disjoint_not_applicable", ctx)

    overlaps: list[dict[str, Any]] = []
    for i, left in enumerate(node.branches):
        for j in range(i + 1, len(node.branches)):
            right = node.branches[j]
            if _predicates_overlap(left.predicate, right.predicate):
                overlaps.append(
                    {
                        "branches": [i, j],
                        "predicates": [left.predicate.describe(), right.predicate.describe()],
                    }
                )
    if not overlaps:
        return _ok(SchemaCheckId.BRANCHES_DISJOINT, "branches_disjoint", ctx)
    return _fail(
        SchemaCheckId.BRANCHES_DISJOINT,
        "branches_overlap",
        f"Branches on '{node.trigger_field}' overlap; a trigger value could select more than one.",
        ctx,
        {"trigger_field": node.trigger_field, "overlaps": overlaps},
    )


def _declared_domain(trigger: Optional[SchemaNode]) -> tuple[float, float]:
    if isinstance(trigger, PrimitiveNode):
        lo = trigger.minimum if trigger.minimum is not None else -math.inf
        hi = trigger.maximum if trigger.maximum is not None else math.inf
        return (lo, hi)
    return (-math.inf, math.inf)


def find_range_gaps(
    ranges: Sequence[tuple[float, float]], domain: tuple[float, float]
) -> list[tuple[float, float]]:
    """
    Gaps left by inclusive ranges over `domain`. Neighbouring ranges whose
    bounds differ by at most one (699 / 700) count as contiguous.
    """
    if not ranges:
        return []
    ordered = sorted(ranges)
    domain_lo, domain_hi = domain
    gaps: list[tuple[float, float]] = []

    if ordered[0][0] > domain_lo:
        gaps.append((domain_lo, ordered[0][0]))
    reach = ordered[0][1]
    for lo, hi in ordered[1:]:
        if lo - reach > 1:
            gaps.append((reach, lo))
        reach = max(reach, hi)
    if reach < domain_hi:
        gaps.append((reach, domain_hi))
    return gaps


def check_branches_contiguous(ctx: SchemaCheckContext) -> SchemaCheckOutcome:
    node = ctx.node
    if not isinstance(node, ConditionalNode):
        return _ok(SchemaCheckId.BRANCHES_CONTIGUOUS, "contiguity_not_applicable", ctx)

    ranges = [r for r in (_interval(b.predicate) for b in node.branches) if r is not None]
    if not ranges:
        return _ok(SchemaCheckId.BRANCHES_CONTIGUOUS, "contiguity_not_applicable", ctx)

    domain = _declared_domain(ctx.siblings.get(node.trigger_field))
    gaps = find_range_gaps(ranges, domain)
    if not gaps:
        return _ok(SchemaCheckId.BRANCHES_CONTIGUOUS, "branches_contiguous", ctx)
    return _fail(
        SchemaCheckId.BRANCHES_CONTIGUOUS,
        "branches_leave_gap",
        f"Numeric branches on '{node.trigger_field}' leave values that select no branch.",
        ctx,
        {"trigger_field": node.trigger_field, "gaps": [list(g) for g in gaps]},
    )


REGISTRY: dict[SchemaCheckId, Checker] = {
    SchemaCheckId.TRIGGER_FIELD_PRESENT: check_trigger_field_present,
    SchemaCheckId.MIN_ITEMS_NON_NEGATIVE: check_min_items_non_negative,
    SchemaCheckId.PATTERN_COMPILES: check_pattern_compiles,
    SchemaCheckId.BOUNDS_ORDERED: check_bounds_ordered,
    SchemaCheckId.BRANCHES_DISJOINT: check_branches_disjoint,
    SchemaCheckId.BRANCHES_CONTIGUOUS: check_branches_contiguous,
}


def iter_check_contexts(
    node: SchemaNode,
    path: SchemaPath = (),
    siblings: Optional[Mapping[str, SchemaNode]] = None,
) -> Iterator[SchemaCheckContext]:
    yield SchemaCheckContext(node=node, path=path, siblings=dict(siblings or {}))

    if isinstance(node, ObjectNode):
        for name, child in node.properties.items():
            yield from iter_check_contexts(child, path + ("properties", name))
        for conditional in node.conditionals:
            yield from iter_check_contexts(
                conditional,
                path + ("dependencies", conditional.trigger_field),
                node.properties,
            )
    elif isinstance(node, ArrayNode):
        yield from iter_check_contexts(node.items, path + ("items",))
    elif isinstance(node, ConditionalNode):
        for index, branch in enumerate(node.branches):
            branch_path = path + ("oneOf", index)
            visible = {**(siblings or {}), **branch.extra_schema.properties}
            for name, child in branch.extra_schema.properties.items():
                yield from iter_check_contexts(child, branch_path + ("properties", name))
            for nested in branch.extra_schema.conditionals:
                yield from iter_check_contexts(
                    nested,
                    branch_path + ("dependencies", nested.trigger_field),
                    visible,
                )


def run_schema_checks(
    node: SchemaNode,
    check_ids: Optional[Sequence[SchemaCheckId]] = None,
) -> list[SchemaCheckOutcome]:
    selected = tuple(check_ids or REGISTRY)
    outcomes: list[SchemaCheckOutcome] = []
    for ctx in iter_check_contexts(node):
        for check_id in selected:
            outcomes.append(REGISTRY[check_id](ctx))
    return outcomes


def ensure_valid_schema(node: SchemaNode) -> SchemaNode:
    failures = [outcome for outcome in run_schema_checks(node) if not outcome.passed]
    if not failures:
        return node

    for failure in failures:
        logger.error(
            "schema check %s failed at %s: %s",
            failure.check_id.value,
            "/".join(str(p) for p in failure.path) or "<root>",
            failure.reason,
        )
    summary = "; ".join(f"{f.code}: {f.reason}" for f in failures)
    raise SchemaError(f"invalid schema ({len(failures)} problem(s)): {summary}", outcomes=failures)
