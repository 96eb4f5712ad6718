"""Vector extraction and Euclidean distance for exhaustive kNN search."""

from __future__ import annotations

from collections.abc import Sequence
import math
from typing import Any


DEFAULT_VECTOR_FIELD = "vector"

# Distance reported for vectors of different dimensions; sorts after every finite distance.
INCOMPARABLE = math.inf


def is_number(value: Any) -> bool:
    """Return True for JSON numbers. Booleans are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def extract_vector(data: Any, field_name: str) -> tuple[float, ...] | None:
    """Return ``data[field_name]`` as a float tuple if it is an array of numbers.

    Missing fields, non-object documents, non-array values and arrays holding
    anything other than numbers all yield None.
    """
    if not isinstance(data, dict):
        return None
    raw = data.get(field_name)
    if not isinstance(raw, list):
        return None
    if not all(is_number(item) for item in raw):
        return None
    return tuple(float(item) for item in raw)


def l2_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance, or ``INCOMPARABLE`` when the lengths differ.

    Examples:
        >>> l2_distance([0.0, 0.0], [3.0, 4.0])
        5.0
        >>> l2_distance([1.0], [1.0, 2.0])
        inf
    """
    if len(a) != len(b):
        return INCOMPARABLE
    return math.dist(a, b)
