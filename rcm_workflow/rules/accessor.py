"""Dot-path access into entity trees.

Paths are dot-separated keys; a segment may carry one or more bracketed list
indices, e.g. ``items[0].procedure_code`` or ``matrix[1][2]``.
"""
from __future__ import annotations

import re
from typing import Any

_SEGMENT_PATTERN = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")
_INDEX_PATTERN = re.compile(r"\[(\d+)\]")


def _parse_segment(segment: str) -> tuple[str, list[int]]:
    match = _SEGMENT_PATTERN.match(segment)
    if not match:
        return segment, []
    key, indices = match.groups()
    return key, [int(i) for i in _INDEX_PATTERN.findall(indices)]


def get_nested_value(obj: Any, path: str) -> Any:
    """Return the value at ``path`` or None when any step is missing."""
    current = obj
    for segment in path.split("."):
        if current is None:
            return None
        key, indices = _parse_segment(segment)
        if key:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        for index in indices:
            if not isinstance(current, list) or index >= len(current):
                return None
            current = current[index]
    return current


def set_nested_value(obj: dict[str, Any], path: str, value: Any) -> None:
    """Assign ``value`` at ``path``, creating intermediate containers."""
    steps: list[str | int] = []
    for segment in path.split("."):
        key, indices = _parse_segment(segment)
        if key:
            steps.append(key)
        steps.extend(indices)
    if not steps:
        raise ValueError("Field path must not be empty")

    current: Any = obj
    for step, next_step in zip(steps, steps[1:]):
        container = [] if isinstance(next_step, int) else {}
        if isinstance(step, int):
            _pad(current, step)
            child = current[step]
            if not isinstance(child, type(container)):
                child = container
                current[step] = child
        else:
            child = current.get(step)
            if not isinstance(child, type(container)):
                child = container
                current[step] = child
        current = child

    last = steps[-1]
    if isinstance(last, int):
        _pad(current, last)
    current[last] = value


def _pad(items: list[Any], index: int) -> None:
    if len(items) <= index:
        items.extend([None] * (index + 1 - len(items)))
