"""Structural reshaping of JSON-shaped values: flattening and key casing."""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping
from typing import Any

_SNAKE_SEGMENT = re.compile(r"_([a-z])")
_UPPER = re.compile(r"[A-Z]")


def flatten(obj: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Collapse nested dicts into dot-joined keys.

    Lists are leaves and are not descended into. Empty dicts are kept as
    leaves so that ``unflatten`` can restore them.
    """
    result: dict[str, Any] = {}
    for key, value in obj.items():
        new_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, Mapping) and value:
            result.update(flatten(value, new_key))
        else:
            result[new_key] = value
    return result


def unflatten(obj: Mapping[str, Any]) -> dict[str, Any]:
    """Rebuild nested dicts from dot-joined keys.

    The input is never modified; dict leaves are copied into the result.

    Raises:
        ValueError: If one key is a path prefix of another, in either order
    """
    result: dict[str, Any] = {}
    leaf_paths: set[str] = set()
    node_paths: set[str] = set()

    for key, value in obj.items():
        parts = key.split(".")
        prefixes = [".".join(parts[:i]) for i in range(1, len(parts))]

        conflict = next((p for p in prefixes if p in leaf_paths), None)
        if conflict is not None:
            raise ValueError(f"Key {key!r} conflicts with a leaf value at {conflict!r}")
        if key in node_paths:
            raise ValueError(f"Key {key!r} conflicts with a nested path")

        current = result
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = copy.deepcopy(value)

        node_paths.update(prefixes)
        leaf_paths.add(key)
    return result


def transform_keys(obj: Any, fn: Callable[[str], str]) -> Any:
    """Apply ``fn`` to every dict key at any depth, descending into lists."""
    if isinstance(obj, list):
        return [transform_keys(item, fn) for item in obj]
    if isinstance(obj, Mapping):
        return {fn(key): transform_keys(value, fn) for key, value in obj.items()}
    return obj


def to_camel_case(key: str) -> str:
    return _SNAKE_SEGMENT.sub(lambda m: m.group(1).upper(), key)


def to_snake_case(key: str) -> str:
    return _UPPER.sub(lambda m: f"_{m.group(0).lower()}", key)
