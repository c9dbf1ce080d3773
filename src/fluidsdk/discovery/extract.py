"""
Capability list extraction from agent card documents.

Agent cards in the wild put their lists in different places. Each strategy
below looks in one place and returns a Lookup; the first hit wins.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from fluidsdk.core.types import Lookup

NAME_FIELDS = ("name", "id", "identifier", "title")
CONTAINER_KEYS = ("capabilities", "abilities", "features")


def entry_name(entry: Any, fields: tuple[str, ...] = NAME_FIELDS) -> str | None:
    """A string entry as-is, or the first string among ``fields`` of an object entry."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        for field_name in fields:
            value = entry.get(field_name)
            if isinstance(value, str):
                return value
    return None


def names_from_list(items: Any, fields: tuple[str, ...] = NAME_FIELDS) -> list[str]:
    """Names of every usable entry, duplicates removed, order kept."""
    if not isinstance(items, list):
        return []
    names: list[str] = []
    for item in items:
        name = entry_name(item, fields)
        if name is not None and name not in names:
            names.append(name)
    return names


def object_names(items: Any, fields: tuple[str, ...]) -> list[str]:
    """
    Names from object entries only, as MCP list results carry them.

    Bare strings and objects without a string in ``fields`` are skipped.
    """
    if not isinstance(items, list):
        return []
    return names_from_list([item for item in items if isinstance(item, dict)], fields)


def _from_top_level(data: dict[str, Any], key: str) -> Lookup[list[str]]:
    names = names_from_list(data.get(key))
    if names:
        return Lookup.hit(names)
    return Lookup.miss(f"no '{key}' at top level")


def _from_containers(data: dict[str, Any], key: str) -> Lookup[list[str]]:
    for container_key in CONTAINER_KEYS:
        container = data.get(container_key)
        if not isinstance(container, dict):
            continue
        names = names_from_list(container.get(key))
        if names:
            return Lookup.hit(names)
    return Lookup.miss(f"no '{key}' in {', '.join(CONTAINER_KEYS)}")


STRATEGIES: list[Callable[[dict[str, Any], str], Lookup[list[str]]]] = [
    _from_top_level,
    _from_containers,
]


def extract_list(data: Any, key: str) -> list[str]:
    """
    Extract a list of names for ``key`` from an agent card.

    Returns an empty list when no strategy finds anything.
    """
    if not isinstance(data, dict):
        return []
    for strategy in STRATEGIES:
        result = strategy(data, key)
        if result.found:
            return result.value or []
    return []


__all__ = [
    "NAME_FIELDS",
    "CONTAINER_KEYS",
    "entry_name",
    "names_from_list",
    "object_names",
    "extract_list",
]
