"""Namespaced partial updates of a habit's shared plugin-data bag.

Every plugin owns exactly one key of ``habit.plugin_data``.  A write builds a
new bag in which only that key changes.  The other values are carried over as
the same objects, so a plugin can neither see nor damage a sibling's data
through this path.

Values are replaced whole.  A plugin that wants to amend its namespace reads
its current value, builds the full replacement, then merges it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

logger = logging.getLogger("habitcycle.plugins.data_bag")

PluginDataBag = dict[str, Any]

T = TypeVar("T")


def merge_namespace(
    bag: Mapping[str, Any] | None, namespace: str, value: Any
) -> PluginDataBag:
    """Return a copy of ``bag`` with ``namespace`` set to ``value``.

    Args:
        bag:       Current plugin-data bag (``None`` counts as empty).
        namespace: Plugin identifier owning the key.
        value:     Full replacement value, any JSON-compatible shape.

    Returns:
        A new dict.  ``bag`` is not modified.
    """
    merged = dict(bag or {})
    merged[namespace] = value
    return merged


def remove_namespace(bag: Mapping[str, Any] | None, namespace: str) -> PluginDataBag:
    """Return a copy of ``bag`` without ``namespace`` (no-op if absent)."""
    remaining = {k: v for k, v in (bag or {}).items() if k != namespace}
    if len(remaining) != len(bag or {}):
        logger.debug("Removed plugin namespace %s", namespace)
    return remaining


def read_namespace(
    bag: Mapping[str, Any] | None, namespace: str, default: T | None = None
) -> Any | T | None:
    return (bag or {}).get(namespace, default)


def partial_update_for(bag: PluginDataBag) -> dict[str, Any]:
    """Partial entity fields carrying a new bag to the host update call."""
    return {"plugin_data": bag}
