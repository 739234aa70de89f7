"""Permissive field lookup into provider JSON.

Beszel renamed fields between releases and the container/pod collections come
from different agents, so every logical field is described as an ordered list
of dotted paths. The first path that resolves to a usable value wins.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from typing import Any

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")


def get_path(obj: Any, path: str) -> Any:
    if not obj or not path:
        return None
    current = obj
    for key in path.split("."):
        if isinstance(current, Mapping) and key in current:
            current = current[key]
        else:
            return None
    return current


def to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", value))
        if match is not None:
            parsed = float(match.group(0))
            if math.isfinite(parsed):
                return parsed
    return None


def pick_number(obj: Any, paths: Sequence[str]) -> float | None:
    for path in paths:
        value = to_number(get_path(obj, path))
        if value is not None:
            return value
    return None


def pick_string(obj: Any, paths: Sequence[str], fallback: str = "") -> str:
    for path in paths:
        value = get_path(obj, path)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return fallback


def pick_records(obj: Any, paths: Sequence[str]) -> list[dict[str, Any]]:
    """Return the first non-empty list found at ``paths``, keeping only objects."""
    for path in paths:
        value = get_path(obj, path)
        if isinstance(value, list) and value:
            return [item for item in value if isinstance(item, dict)]
    return []
