"""Path-based access to nested step configuration trees.

A config tree is a JSON-shaped value: mappings keyed by strings, arrays
indexed by integers, and scalar leaves. Its shape is defined by the step
type and is opaque to the editor; only these helpers walk it.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any, Union

from flowstudio.exceptions import ValidationError

ConfigScalar = Union[str, int, float, bool, None]
ConfigValue = Union[ConfigScalar, dict[str, Any], list[Any]]
PathSegment = Union[str, int]
ConfigPath = Sequence[PathSegment]

_MISSING = object()


def parse_path(path: str | ConfigPath) -> list[PathSegment]:
    """Normalise a path to a list of segments.

    Accepts either a sequence (``["questionScreen", "question"]``) or a
    dotted string (``"options.0.label"``), where integer segments (``-1`` included)
    become list indexes.
    """
    if isinstance(path, str):
        if not path:
            return []
        return [_parse_segment(part) for part in path.split(".")]
    segments = list(path)
    for segment in segments:
        if isinstance(segment, bool) or not isinstance(segment, (str, int)):
            raise ValidationError(f"Invalid config path segment: {segment!r}")
    return segments


def _parse_segment(part: str) -> PathSegment:
    digits = part[1:] if part.startswith("-") else part
    return int(part) if digits.isdigit() else part


def get_at_path(tree: ConfigValue, path: str | ConfigPath, default: Any = None) -> Any:
    """Read the value at ``path``, or ``default`` when any segment is missing."""
    node: Any = tree
    for segment in parse_path(path):
        if isinstance(segment, int) and isinstance(node, list):
            if -len(node) <= segment < len(node):
                node = node[segment]
                continue
            return default
        if isinstance(segment, str) and isinstance(node, dict):
            node = node.get(segment, _MISSING)
            if node is _MISSING:
                return default
            continue
        return default
    return node


def set_at_path(tree: dict[str, Any], path: str | ConfigPath, value: Any) -> dict[str, Any]:
    """Return a copy of ``tree`` with ``value`` stored at ``path``.

    Missing or scalar intermediates are replaced by a fresh container: a
    list when the next segment is an int, a dict otherwise. Lists grow with
    ``None`` padding to reach the index. The input tree is never mutated.

    Raises:
        ValidationError: If the path is empty and ``value`` is not a mapping,
            or a negative index falls outside an existing list.
    """
    segments = parse_path(path)
    if not segments:
        if not isinstance(value, dict):
            raise ValidationError("Config root must be a mapping")
        return copy.deepcopy(value)
    if isinstance(segments[0], int):
        raise ValidationError("Config root is a mapping; first path segment must be a key")

    result = copy.deepcopy(tree) if isinstance(tree, dict) else {}
    _assign(result, segments, copy.deepcopy(value))
    return result


def _assign(container: dict[str, Any] | list[Any], segments: list[PathSegment], value: Any) -> None:
    """Store ``value`` under ``segments`` inside ``container`` in place."""
    segment, rest = segments[0], segments[1:]

    if isinstance(container, list):
        if not isinstance(segment, int):
            raise ValidationError(f"List index expected, got {segment!r}")
        if segment < 0:
            if segment < -len(container):
                raise ValidationError(f"List index {segment} out of range")
            segment += len(container)
        while len(container) <= segment:
            container.append(None)
    elif not isinstance(segment, str):
        raise ValidationError(f"Mapping key expected, got {segment!r}")

    if not rest:
        container[segment] = value  # type: ignore[index]
        return

    child = container[segment] if isinstance(container, list) else container.get(segment)
    wanted: type = list if isinstance(rest[0], int) else dict
    if not isinstance(child, wanted):
        child = wanted()
        container[segment] = child  # type: ignore[index]
    _assign(child, rest, value)
