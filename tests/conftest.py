from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

import pytest

from conditional_forms.contracts import SessionConfig, ValidationError
from conditional_forms.loan_application import business_details_schema, loan_details_schema
from conditional_forms.schema import (
    ArrayNode,
    Branch,
    ConditionalNode,
    ObjectNode,
    PrimitiveKind,
    PrimitiveNode,
    SchemaNode,
    ValueAtLeast,
    ValueAtMost,
)
from conditional_forms.session import FormSession


class RecordingListener:
    def __init__(self) -> None:
        self.submitted: list[tuple[str, dict[str, Any]]] = []
        self.rejected: list[tuple[str, tuple[ValidationError, ...]]] = []

    def on_submit(self, tab_id: str, data: Mapping[str, Any]) -> None:
        self.submitted.append((tab_id, dict(data)))

    def on_error(self, tab_id: str, errors: Sequence[ValidationError]) -> None:
        self.rejected.append((tab_id, tuple(errors)))


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def loan_schema() -> SchemaNode:
    return loan_details_schema()


@pytest.fixture
def business_schema() -> SchemaNode:
    return business_details_schema()


@pytest.fixture
def make_score_schema() -> Callable[..., ObjectNode]:
    """Small credit-score style object: `score` decides whether `cosigner` is required."""

    def _make_score_schema(
        *,
        low_limit: int | float = 699,
        high_limit: int | float = 700,
        minimum: int | float | None = 300,
        maximum: int | float | None = 900,
        trigger_field: str = "score",
    ) -> ObjectNode:
        return ObjectNode(
            properties={
                "score": PrimitiveNode(kind=PrimitiveKind.NUMBER, title="Score", minimum=minimum, maximum=maximum),
                "amount": PrimitiveNode(kind=PrimitiveKind.NUMBER, title="Amount"),
            },
            required=("score",),
            conditionals=(
                ConditionalNode(
                    trigger_field=trigger_field,
                    branches=(
                        Branch(predicate=ValueAtLeast(limit=high_limit)),
                        Branch(
                            predicate=ValueAtMost(limit=low_limit),
                            extra_schema=ObjectNode(
                                properties={
                                    "cosigners": ArrayNode(
                                        title="Co-signers",
                                        items=PrimitiveNode(kind=PrimitiveKind.STRING),
                                        min_items=1,
                                    ),
                                },
                                required=("cosigners",),
                            ),
                        ),
                    ),
                ),
            ),
        )

    return _make_score_schema


@pytest.fixture
def make_session(listener: RecordingListener) -> Callable[..., FormSession]:
    def _make_session(
        schema: SchemaNode,
        *,
        tab_id: str = "tab:test",
        config: SessionConfig | None = None,
        initial_data: Mapping[str, Any] | None = None,
    ) -> FormSession:
        return FormSession(
            schema,
            tab_id=tab_id,
            listener=listener,
            config=config,
            initial_data=initial_data,
        )

    return _make_session
