"""
Structural comparison of JSON-shaped values.

Used to certify that independent runs and fresh folds agree exactly. Every
difference is reported with its path; nothing is truncated.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

# Wall-clock derived keys, excluded when comparing runs that did not share a clock.
TIMESTAMP_KEYS = frozenset(
    {
        "created_at",
        "updated_at",
        "match_began_at",
        "last_place_at",
        "scored_at",
        "ended_at",
        "reward_paid_at",
        "paid_at",
    },
)


def structural_diff(
    expected: Any,
    actual: Any,
    *,
    path: str = "$",
    ignore_keys: frozenset[str] = frozenset(),
) -> list[str]:
    """Return one line per difference between two JSON-shaped values."""
    if isinstance(expected, dict) and isinstance(actual, dict):
        diffs: list[str] = []
        for key in sorted(set(expected) | set(actual), key=str):
            if key in ignore_keys:
                continue
            child = f"{path}.{key}"
            if key not in actual:
                diffs.append(f"{child}: missing in actual")
            elif key not in expected:
                diffs.append(f"{child}: unexpected in actual")
            else:
                diffs.extend(structural_diff(expected[key], actual[key], path=child, ignore_keys=ignore_keys))
        return diffs

    if isinstance(expected, list | tuple) and isinstance(actual, list | tuple):
        diffs = []
        if len(expected) != len(actual):
            diffs.append(f"{path}: length {len(expected)} != {len(actual)}")
        for index, (left, right) in enumerate(zip(expected, actual, strict=False)):
            diffs.extend(structural_diff(left, right, path=f"{path}[{index}]", ignore_keys=ignore_keys))
        return diffs

    if type(expected) is not type(actual) or expected != actual:
        return [f"{path}: expected {expected!r}, got {actual!r}"]
    return []


def canonical_json(value: Any) -> str:
    """Sorted-key, whitespace-free JSON encoding."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def artifact_digest(value: Any) -> str:
    """SHA-256 hex digest of the canonical JSON encoding."""
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()
