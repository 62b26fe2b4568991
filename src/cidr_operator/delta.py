"""Field-by-field differencing of resource descriptors.

Descriptors are frozen dataclasses whose optional fields are None when the
caller does not care about them. The delta is a descriptor of the same type
holding only the fields that need to change; everything else is None.

RULES:
- actual is None (resource absent): every field set on expected is a change
- expected field is None: never a change ("don't care")
- references compare by identity(), sequences compare as tuples
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from typing import Any, TypeVar

T = TypeVar("T")


def values_equal(actual: Any, expected: Any) -> bool:
    """Compare two field values using descriptor semantics."""
    if actual is None or expected is None:
        return actual is expected

    if hasattr(expected, "identity") and hasattr(actual, "identity"):
        return actual.identity() == expected.identity()

    if isinstance(expected, Sequence) and not isinstance(expected, str):
        if not isinstance(actual, Sequence) or isinstance(actual, str):
            return False
        return tuple(actual) == tuple(expected)

    return actual == expected


def build_changes(actual: T | None, expected: T) -> tuple[T, bool]:
    """Compute the delta between actual and expected state.

    Args:
        actual: Discovered state, or None if the resource does not exist.
        expected: Desired state.

    Returns:
        Tuple of (changes, changed). changes is a new descriptor of the same
        type; changed is True if any field is populated.
    """
    if not dataclasses.is_dataclass(expected):
        raise TypeError(f"expected a dataclass descriptor, got {type(expected).__name__}")

    delta: dict[str, Any] = {}
    for f in dataclasses.fields(expected):
        want = getattr(expected, f.name)
        if want is None:
            continue
        if actual is None:
            delta[f.name] = want
            continue
        have = getattr(actual, f.name)
        if not values_equal(have, want):
            delta[f.name] = want

    empty = {f.name: None for f in dataclasses.fields(expected)}
    changes = type(expected)(**{**empty, **delta})
    return changes, bool(delta)


def changed_fields(changes: Any) -> list[str]:
    """Names of the populated fields of a delta."""
    return [
        f.name for f in dataclasses.fields(changes) if getattr(changes, f.name) is not None
    ]
