# conditional_forms/session.py
from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any, Optional

from conditional_forms.adapters.rendering import SubmissionListener
from conditional_forms.contracts import (
    Accepted,
    FormOperationError,
    Rejected,
    SessionConfig,
    SessionSnapshot,
    SessionState,
    SubmissionOutcome,
    ValidationError,
)
from conditional_forms.data_paths import (
    PathLike,
    insert_item,
    move_item,
    normalize_path,
    remove_item,
    set_in,
    update_list,
)
from conditional_forms.resolver import BranchCache, effective_schema, effective_schema_at
from conditional_forms.schema import ArrayNode, SchemaNode, default_value
from conditional_forms.schema_checks import ensure_valid_schema
from conditional_forms.validator import validate

logger = logging.getLogger(__name__)

_MISSING = object()


class FormSession:
    """
    Owns the data of one form tab.

    States: EDITING -> SUBMITTING -> ACCEPTED, or back to EDITING with the
    outstanding errors. `cancel()` empties the data and ends the session.
    Every edit rebuilds the effective schema and error list from scratch.
    """

    def __init__(
        self,
        schema: SchemaNode,
        *,
        tab_id: str = "form",
        listener: Optional[SubmissionListener] = None,
        config: Optional[SessionConfig] = None,
        initial_data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.schema = ensure_valid_schema(schema)
        self.tab_id = tab_id
        self.listener = listener
        self.config = config or SessionConfig()
        self._cache: Optional[BranchCache] = BranchCache() if self.config.memoize_branches else None
        self._state = SessionState.EDITING
        self._data: dict[str, Any] = copy.deepcopy(dict(initial_data or {}))
        self._effective_schema: SchemaNode = self.schema
        self._errors: tuple[ValidationError, ...] = ()
        self._recompute()
        logger.info("form session %s started", self.tab_id)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def data(self) -> dict[str, Any]:
        # callers get a copy; only edits may change the session data
        return copy.deepcopy(self._data)

    @property
    def errors(self) -> tuple[ValidationError, ...]:
        return self._errors

    @property
    def effective_schema(self) -> SchemaNode:
        return self._effective_schema

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            data=copy.deepcopy(self._data),
            effective_schema=self._effective_schema,
            errors=self._errors,
        )

    def effective_schema_at(self, path: PathLike) -> Optional[SchemaNode]:
        return effective_schema_at(self.schema, self._data, normalize_path(path), cache=self._cache)

    def errors_at(self, path: PathLike) -> tuple[ValidationError, ...]:
        prefix = normalize_path(path)
        return tuple(error for error in self._errors if error.is_under(prefix))

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def edit(self, path: PathLike, value: Any) -> SessionSnapshot:
        self._require_editing("edit")
        parts = normalize_path(path)
        if not parts:
            raise FormOperationError("edit needs a field path")
        self._replace(set_in(self._data, parts, value), reason=f"edit {'.'.join(map(str, parts))}")
        return self.snapshot()

    def add_item(self, path: PathLike, value: Any = _MISSING, *, index: Optional[int] = None) -> SessionSnapshot:
        self._require_editing("add_item")
        array = self._array_at(path)
        entry = default_value(array.items) if value is _MISSING else value
        self._replace(
            update_list(self._data, path, lambda items: insert_item(items, entry, index)),
            reason=f"add item to {path}",
        )
        return self.snapshot()

    def remove_item(self, path: PathLike, index: int) -> SessionSnapshot:
        # dropping below minItems is allowed; validation reports it
        self._require_editing("remove_item")
        self._array_at(path)
        self._replace(
            update_list(self._data, path, lambda items: remove_item(items, index)),
            reason=f"remove item {index} from {path}",
        )
        return self.snapshot()

    def move_item(self, path: PathLike, from_index: int, to_index: int) -> SessionSnapshot:
        self._require_editing("move_item")
        self._array_at(path)
        self._replace(
            update_list(self._data, path, lambda items: move_item(items, from_index, to_index)),
            reason=f"move item {from_index}->{to_index} in {path}",
        )
        return self.snapshot()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self) -> SubmissionOutcome:
        self._require_editing("submit")
        self._state = SessionState.SUBMITTING
        self._effective_schema = effective_schema(self.schema, self._data, cache=self._cache)
        self._errors = validate(self.schema, self._data, cache=self._cache)

        if self._errors:
            self._state = SessionState.EDITING
            logger.warning("form %s rejected with %d error(s)", self.tab_id, len(self._errors))
            if self.listener is not None:
                self.listener.on_error(self.tab_id, self._errors)
            return Rejected(errors=self._errors)

        self._state = SessionState.ACCEPTED
        logger.info("form %s accepted", self.tab_id)
        if self.listener is not None:
            self.listener.on_submit(self.tab_id, copy.deepcopy(self._data))
        return Accepted(data=copy.deepcopy(self._data))

    def cancel(self) -> SessionSnapshot:
        if self._state == SessionState.CANCELLED:
            return self.snapshot()
        self._require_editing("cancel")
        self._data = {}
        self._recompute()
        self._state = SessionState.CANCELLED
        logger.info("form session %s cancelled", self.tab_id)
        return self.snapshot()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_editing(self, operation: str) -> None:
        if self._state != SessionState.EDITING:
            raise FormOperationError(f"cannot {operation} form {self.tab_id!r} in state {self._state.value}")

    def _array_at(self, path: PathLike) -> ArrayNode:
        node = self.effective_schema_at(path)
        if not isinstance(node, ArrayNode):
            raise FormOperationError(f"'{path}' is not a repeating group in form {self.tab_id!r}")
        return node

    def _replace(self, data: dict[str, Any], *, reason: str) -> None:
        self._data = data
        self._recompute()
        logger.debug("form %s recomputed after %s: %d error(s)", self.tab_id, reason, len(self._errors))

    def _recompute(self) -> None:
        self._effective_schema = effective_schema(self.schema, self._data, cache=self._cache)
        if self.config.live_validation:
            self._errors = validate(self.schema, self._data, cache=self._cache)
        else:
            self._errors = ()
