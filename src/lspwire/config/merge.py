"""Layered dict merging for the config cascade and client capabilities.

A layer only has to name what it changes: nested tables are merged key by
key, anything else in the upper layer replaces the lower value outright.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` laid on top. Neither input is modified.

    ``None`` in ``override`` means "not set" and keeps the base value, so an
    empty YAML key (``request_timeout:``) cannot wipe a lower layer. Lists
    replace; a project that lists ``command: [pylsp]`` does not want the
    user's argv appended to it.
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def merge_configs(*layers: Mapping[str, Any] | None) -> dict[str, Any]:
    """Fold ``layers`` lowest first. Empty or missing layers are skipped."""
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged = deep_merge(merged, layer)
    return merged
