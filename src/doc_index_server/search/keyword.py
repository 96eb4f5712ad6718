"""Keyword search: case-insensitive substring or fuzzy match over whole documents."""

from __future__ import annotations

from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field

from doc_index_server.domain.model import Hit, Index
from doc_index_server.search.fuzzy import distance_to_score, fuzzy_match


DEFAULT_LIMIT = 10


class KeywordQuery(BaseModel):
    """Parameters of a keyword search."""

    model_config = ConfigDict(frozen=True)

    q: str
    limit: int = Field(default=DEFAULT_LIMIT, ge=0)
    fuzz: int = Field(default=0, ge=0)
    scores: bool = False


def render_value(value: Any) -> str:
    """Compact JSON rendering with sorted object keys; strings keep their quotes."""
    return orjson.dumps(value, option=orjson.OPT_SORT_KEYS).decode("utf-8")


def contains_text(value: Any, needle: str) -> bool:
    """True when the lowercased rendering of ``value`` contains ``needle``."""
    return needle in render_value(value).lower()


def keyword_search(index: Index, query: KeywordQuery) -> list[Hit]:
    """Scan ``index`` for documents matching ``query``.

    With ``fuzz == 0`` every document whose rendering contains the lowercased
    query scores 1.0. Otherwise a document matches when the fuzzy matcher
    finds a token within ``fuzz`` edits and scores ``1 / (distance + 1)``.
    Results are ordered by descending score (stable) and cut to ``limit``.
    """
    needle = query.q.lower()
    scored: list[tuple[float, int]] = []
    for position, document in enumerate(index.docs):
        if query.fuzz > 0:
            distance = fuzzy_match(document.data, needle, query.fuzz)
            if distance is None:
                continue
            scored.append((distance_to_score(distance), position))
        elif contains_text(document.data, needle):
            scored.append((1.0, position))

    scored.sort(key=lambda item: item[0], reverse=True)

    hits: list[Hit] = []
    for score, position in scored[: query.limit]:
        document = index.docs[position]
        hits.append(Hit(id=document.id, document=document.data, score=score if query.scores else None))
    return hits
