from __future__ import annotations

import math
from enum import Enum
from typing import Any

from typing_extensions import Self


class StrEnum(str, Enum):  # noqa: UP042
    """Python 3.10-compatible StrEnum."""

    pass


def is_number(value: Any) -> bool:
    # bool is an int subclass; a checkbox answer is never a number.
    # non-finite floats are not JSON numbers, and NaN would slip past every bound
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not isinstance(value, float) or math.isfinite(value)


def literal_equals(left: Any, right: Any) -> bool:
    """Equality for enum literals that keeps True apart from 1 and "1" apart from 1."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left is right
    if is_number(left) and is_number(right):
        return left == right
    return type(left) is type(right) and left == right


__all__ = ["Self", "StrEnum", "is_number", "literal_equals"]
