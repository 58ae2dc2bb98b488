"""
The two-tab business loan application: Business Details and Loan Details.

Both tabs are declared as schema literals and built once through the
validating builder; `LoanApplicationForm` keeps one `FormSession` per tab.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Optional

from conditional_forms.adapters.rendering import SubmissionListener
from conditional_forms.builder import build_schema
from conditional_forms.contracts import FormOperationError, SessionConfig, SubmissionOutcome
from conditional_forms.schema import SchemaNode
from conditional_forms.session import FormSession

logger = logging.getLogger(__name__)

GSTIN_PATTERN = "^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[0-9A-Z]{1}[Z]{1}[0-9A-Z]{1}$"

RELATIONSHIPS = ["Father", "Mother", "Brother", "Sister", "Spouse", "Other"]

BUSINESS_DETAILS_DEFINITION: dict[str, Any] = {
    "type": "object",
    "title": "Business Details",
    "properties": {
        "businessName": {"type": "string", "title": "Business Name"},
        "gstin": {"type": "string", "title": "GSTIN", "pattern": GSTIN_PATTERN},
        "directors": {
            "type": "array",
            "title": "Directors",
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string", "title": "Director Name"},
                    "panNumber": {"type": "string", "title": "PAN Number"},
                    "tags": {"type": "array", "title": "Roles", "items": {"type": "string"}},
                },
            },
        },
    },
}

BUSINESS_DETAILS_UI: dict[str, Any] = {
    "directors": {
        "ui:options": {
            "addButtonText": "Add Director",
            "addable": True,
            "removable": True,
            "orderable": True,
        },
        "items": {
            "name": {"ui:placeholder": "Enter Director Name"},
            "panNumber": {"ui:placeholder": "Enter PAN Number"},
            "tags": {"ui:widget": "checkboxes"},
        },
    },
}

GUARANTOR_DEFINITION: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "title": "Name"},
        "panNumber": {"type": "string", "title": "PAN Number"},
        "relationship": {
            "type": "string",
            "title": "Relationship with Applicant",
            "enum": RELATIONSHIPS,
        },
    },
    "dependencies": {
        "relationship": {
            "oneOf": [
                {
                    "properties": {
                        "relationship": {"enum": ["Other"]},
                        "relation": {"type": "string", "title": "Specify Relation"},
                    },
                    "required": ["relation"],
                },
            ],
        },
    },
}

LOAN_DETAILS_DEFINITION: dict[str, Any] = {
    "type": "object",
    "title": "Loan Details",
    "required": ["creditScore", "loanAmount"],
    "properties": {
        "creditScore": {"type": "number", "title": "Credit Score", "minimum": 300, "maximum": 900},
        "loanAmount": {
            "type": "number",
            "title": "Required Loan Amount",
            "minimum": 50000,
            "maximum": 500000,
        },
    },
    "dependencies": {
        "creditScore": {
            "oneOf": [
                {"properties": {"creditScore": {"minimum": 700}}},
                {
                    "properties": {
                        "creditScore": {"maximum": 699},
                        "guarantors": {
                            "type": "array",
                            "title": "Guarantors",
                            "minItems": 2,
                            "items": GUARANTOR_DEFINITION,
                        },
                        "bankStatement": {
                            "type": "array",
                            "title": "Bank Statements",
                            "items": {"type": "string", "format": "data-url"},
                        },
                    },
                    "required": ["guarantors"],
                },
            ],
        },
    },
}


@lru_cache(maxsize=None)
def business_details_schema() -> SchemaNode:
    return build_schema(BUSINESS_DETAILS_DEFINITION, ui_schema=BUSINESS_DETAILS_UI)


@lru_cache(maxsize=None)
def loan_details_schema() -> SchemaNode:
    return build_schema(LOAN_DETAILS_DEFINITION)


@dataclass(frozen=True)
class TabSpec:
    tab_id: str
    title: str
    schema: Callable[[], SchemaNode]


TABS: tuple[TabSpec, ...] = (
    TabSpec(tab_id="business-details", title="Business Details", schema=business_details_schema),
    TabSpec(tab_id="loan-details", title="Loan Details", schema=loan_details_schema),
)


def tab_spec(tab_id: str) -> TabSpec:
    for spec in TABS:
        if spec.tab_id == tab_id:
            return spec
    raise FormOperationError(f"unknown tab {tab_id!r}; expected one of {[s.tab_id for s in TABS]}")


class LoanApplicationForm:
    """One independently submittable session per tab, in display order."""

    def __init__(
        self,
        *,
        listener: Optional[SubmissionListener] = None,
        config: Optional[SessionConfig] = None,
    ) -> None:
        self.listener = listener
        self.config = config or SessionConfig()
        self._sessions: dict[str, FormSession] = {spec.tab_id: self._new_session(spec) for spec in TABS}
        self._active = TABS[0].tab_id

    def _new_session(self, spec: TabSpec) -> FormSession:
        return FormSession(spec.schema(), tab_id=spec.tab_id, listener=self.listener, config=self.config)

    @property
    def tabs(self) -> tuple[tuple[str, str], ...]:
        return tuple((spec.tab_id, spec.title) for spec in TABS)

    @property
    def active_tab(self) -> str:
        return self._active

    def select_tab(self, tab_id: str) -> FormSession:
        tab_spec(tab_id)
        self._active = tab_id
        return self._sessions[tab_id]

    def tab(self, tab_id: Optional[str] = None) -> FormSession:
        key = tab_id or self._active
        tab_spec(key)
        return self._sessions[key]

    def restart_tab(self, tab_id: str) -> FormSession:
        """Replace a finished (accepted or cancelled) tab with a fresh session."""
        spec = tab_spec(tab_id)
        self._sessions[tab_id] = self._new_session(spec)
        logger.info("tab %s restarted", tab_id)
        return self._sessions[tab_id]

    def submit_all(self) -> dict[str, SubmissionOutcome]:
        return {spec.tab_id: self._sessions[spec.tab_id].submit() for spec in TABS}
