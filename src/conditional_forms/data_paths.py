"""
Copy-on-write access to nested form data.

Every update returns a new top-level value; containers along the edited
path are shallow-copied and everything else is shared with the previous
value.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Union

from conditional_forms.contracts import FieldPath, FormOperationError

PathLike = Union[str, Sequence[Union[str, int]]]


def normalize_path(path: PathLike) -> FieldPath:
    """Accept `("guarantors", 0, "name")` or the dotted form `"guarantors.0.name"`."""
    if isinstance(path, str):
        if not path:
            return ()
        return tuple(int(part) if part.isdigit() else part for part in path.split("."))
    return tuple(path)


def get_in(data: Any, path: PathLike, default: Any = None) -> Any:
    current = data
    for part in normalize_path(path):
        if isinstance(part, int) and isinstance(current, list):
            if not -len(current) <= part < len(current):
                return default
            current = current[part]
        elif isinstance(part, str) and isinstance(current, Mapping):
            if part not in current:
                return default
            current = current[part]
        else:
            return default
    return current


def _set(container: Any, parts: FieldPath, value: Any, walked: FieldPath) -> Any:
    if not parts:
        return value

    head, rest = parts[0], parts[1:]
    if isinstance(head, int):
        if not isinstance(container, list):
            raise FormOperationError(f"expected a list at '{_dotted(walked)}' to index with {head}")
        if not -len(container) <= head < len(container):
            raise FormOperationError(f"index {head} out of range at '{_dotted(walked)}' (length {len(container)})")
        updated = list(container)
        updated[head] = _set(container[head], rest, value, walked + (head,))
        return updated

    if container is None:
        container = {}
    if not isinstance(container, Mapping):
        raise FormOperationError(f"expected a group of fields at '{_dotted(walked)}', found {type(container).__name__}")
    updated_map = dict(container)
    updated_map[head] = _set(container.get(head), rest, value, walked + (head,))
    return updated_map


def set_in(data: Any, path: PathLike, value: Any) -> Any:
    """Return a copy of `data` with `value` at `path`, creating missing groups on the way."""
    return _set(data, normalize_path(path), value, ())


def update_list(data: Any, path: PathLike, update: Callable[[list[Any]], list[Any]]) -> Any:
    parts = normalize_path(path)
    current = get_in(data, parts)
    if current is None:
        current = []
    if not isinstance(current, list):
        raise FormOperationError(f"expected a list at '{_dotted(parts)}', found {type(current).__name__}")
    return set_in(data, parts, update(list(current)))


def _check_index(items: list[Any], index: int, *, allow_end: bool = False) -> int:
    upper = len(items) + (1 if allow_end else 0)
    if not 0 <= index < upper:
        raise FormOperationError(f"index {index} out of range for {len(items)} item(s)")
    return index


def insert_item(items: list[Any], value: Any, index: int | None = None) -> list[Any]:
    position = len(items) if index is None else _check_index(items, index, allow_end=True)
    return items[:position] + [value] + items[position:]


def remove_item(items: list[Any], index: int) -> list[Any]:
    _check_index(items, index)
    return items[:index] + items[index + 1 :]


def move_item(items: list[Any], from_index: int, to_index: int) -> list[Any]:
    _check_index(items, from_index)
    _check_index(items, to_index)
    moved = list(items)
    moved.insert(to_index, moved.pop(from_index))
    return moved


def _dotted(path: FieldPath) -> str:
    return ".".join(str(p) for p in path) or "<root>"
