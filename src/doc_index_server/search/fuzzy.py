"""Fuzzy matching for typo-tolerant search over JSON documents.

Computes the minimum edit distance between a query token and any scalar
reachable inside a document:

- strings are lowercased and split on whitespace, each token compared
- objects and arrays are searched recursively
- numbers, booleans and null are compared through their JSON rendering

A branch whose best distance exceeds the threshold reports no match (None),
never a large finite number.
"""

from __future__ import annotations

from typing import Any

import orjson


def levenshtein_distance(s1: str, s2: str, max_distance: int | None = None) -> int:
    """Calculate the Levenshtein (edit) distance between two strings.

    Args:
        s1: First string.
        s2: Second string.
        max_distance: If provided, return max_distance+1 early when
            distance is guaranteed to exceed this threshold.

    Returns:
        The minimum number of single-character insertions, deletions or
        substitutions needed to change s1 into s2. If max_distance is set
        and exceeded, returns max_distance+1.

    Examples:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("hello", "hallo")
        1
        >>> levenshtein_distance("", "abc")
        3
    """
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    # Shorter string as columns
    if len(s1) > len(s2):
        s1, s2 = s2, s1

    m, n = len(s1), len(s2)

    if max_distance is not None and n - m > max_distance:
        return max_distance + 1

    prev_row = list(range(m + 1))
    curr_row = [0] * (m + 1)

    for j in range(1, n + 1):
        curr_row[0] = j
        row_min = curr_row[0]
        for i in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(
                prev_row[i] + 1,  # deletion
                curr_row[i - 1] + 1,  # insertion
                prev_row[i - 1] + cost,  # substitution
            )
            row_min = min(row_min, curr_row[i])

        if max_distance is not None and row_min > max_distance:
            return max_distance + 1

        prev_row, curr_row = curr_row, prev_row

    return prev_row[m]


def distance_to_score(distance: int) -> float:
    """Map an edit distance to a score in (0, 1]: 0 -> 1.0, 1 -> 0.5, 2 -> 0.333..."""
    return 1.0 / (distance + 1)


def _best_token_distance(query: str, text: str, max_distance: int) -> int | None:
    best: int | None = None
    for token in text.lower().split():
        distance = levenshtein_distance(query, token, max_distance)
        if distance <= max_distance and (best is None or distance < best):
            best = distance
            if best == 0:
                break
    return best


def fuzzy_match(value: Any, query: str, max_distance: int) -> int | None:
    """Return the minimum edit distance between ``query`` and any scalar in ``value``.

    Args:
        value: A JSON value (object, array or scalar).
        query: Lowercase query token.
        max_distance: Largest distance that still counts as a match.

    Returns:
        The smallest distance found, or None when nothing is within
        ``max_distance``.

    Examples:
        >>> fuzzy_match({"title": "Hello World"}, "helo", 1)
        1
        >>> fuzzy_match(["alpha", {"n": 42}], "41", 1)
        1
        >>> fuzzy_match({"title": "hello"}, "xyz", 1) is None
        True
    """
    if isinstance(value, str):
        return _best_token_distance(query, value, max_distance)

    if isinstance(value, dict):
        children = value.values()
    elif isinstance(value, list):
        children = value
    else:
        distance = levenshtein_distance(query, orjson.dumps(value).decode("utf-8"), max_distance)
        return distance if distance <= max_distance else None

    best: int | None = None
    for child in children:
        distance = fuzzy_match(child, query, max_distance)
        if distance is not None and (best is None or distance < best):
            best = distance
            if best == 0:
                break
    return best
