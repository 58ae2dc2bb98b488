from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from conditional_forms.contracts import ValidationError


class SubmissionListener(Protocol):
    """Adapter interface the rendering layer implements to hear about submissions."""

    def on_submit(self, tab_id: str, data: Mapping[str, Any]) -> None:
        """Called once with the final data when a tab is accepted."""
        ...

    def on_error(self, tab_id: str, errors: Sequence[ValidationError]) -> None:
        """Called with the outstanding errors when a submission is rejected."""
        ...
