"""Conditional schema resolution and validation for multi-tab forms."""

from conditional_forms.builder import build_schema
from conditional_forms.contracts import (
    Accepted,
    ErrorKind,
    FormOperationError,
    Rejected,
    SchemaError,
    SessionConfig,
    SessionSnapshot,
    SessionState,
    ValidationError,
)
from conditional_forms.loan_application import LoanApplicationForm
from conditional_forms.resolver import effective_schema, effective_schema_at, merge_branch, resolve
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
    ValueIn,
    child_schema,
    is_required,
)
from conditional_forms.schema_checks import ensure_valid_schema
from conditional_forms.session import FormSession
from conditional_forms.validator import validate

__all__ = [
    "Accepted",
    "ArrayNode",
    "Branch",
    "ConditionalNode",
    "ErrorKind",
    "FormOperationError",
    "FormSession",
    "LoanApplicationForm",
    "ObjectNode",
    "PrimitiveKind",
    "PrimitiveNode",
    "Rejected",
    "SchemaError",
    "SchemaNode",
    "SessionConfig",
    "SessionSnapshot",
    "SessionState",
    "ValidationError",
    "ValueAtLeast",
    "ValueAtMost",
    "ValueIn",
    "build_schema",
    "child_schema",
    "effective_schema",
    "effective_schema_at",
    "ensure_valid_schema",
    "is_required",
    "merge_branch",
    "resolve",
    "validate",
]
