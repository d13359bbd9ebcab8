"""Filtering and ranking of search items."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .items import SearchItem
from .query import Filter, ParsedQuery, parse_query

DEFAULT_LIMIT = 1000

SCORE_EXACT_NAME = 100
SCORE_NAME_PREFIX = 80
SCORE_NAME_SUBSTRING = 60
SCORE_TAG = 40
SCORE_BODY = 20


@dataclass
class SearchResults:
    """Ranked results partitioned by kind."""

    prompts: list[SearchItem] = field(default_factory=list)
    contexts: list[SearchItem] = field(default_factory=list)
    rules: list[SearchItem] = field(default_factory=list)
    pipelines: list[SearchItem] = field(default_factory=list)

    def all(self) -> list[SearchItem]:
        return [*self.prompts, *self.contexts, *self.rules, *self.pipelines]

    def __len__(self) -> int:
        return len(self.prompts) + len(self.contexts) + len(self.rules) + len(self.pipelines)

    def add(self, item: SearchItem) -> None:
        bucket = {
            "prompt": self.prompts,
            "context": self.contexts,
            "rules": self.rules,
            "pipeline": self.pipelines,
        }[item.kind]
        bucket.append(item)


class _QueryContext:
    """Per-query state: body cache and the reference time for age filters."""

    def __init__(self, now: float):
        self.now = now
        self._bodies: dict[int, str] = {}

    def body(self, item: SearchItem) -> str:
        key = id(item)
        if key not in self._bodies:
            self._bodies[key] = item.load_body()
        return self._bodies[key]


def _name_score(name: str, needle: str) -> int:
    name = name.lower()
    needle = needle.lower()
    if name == needle:
        return SCORE_EXACT_NAME
    if name.startswith(needle):
        return SCORE_NAME_PREFIX
    if needle in name:
        return SCORE_NAME_SUBSTRING
    return 0


def _term_score(item: SearchItem, term: str, ctx: _QueryContext) -> int:
    score = _name_score(item.name, term)
    if score:
        return score
    needle = term.lower()
    if any(needle in tag for tag in item.tags):
        return SCORE_TAG
    if needle in ctx.body(item).lower():
        return SCORE_BODY
    return 0


def _status_matches(item: SearchItem, value: str) -> bool:
    if value == "all":
        return True
    if value == "archived":
        return item.archived
    return not item.archived


def _filter_matches(item: SearchItem, flt: Filter, ctx: _QueryContext) -> bool:
    if flt.key == "tag":
        return any(v in item.tags for v in flt.values)
    if flt.key == "type":
        return item.kind in flt.values
    if flt.key == "status":
        return any(_status_matches(item, v) for v in flt.values)
    if flt.key == "name":
        return any(v.lower() in item.name.lower() for v in flt.values)
    if flt.key == "content":
        body = ctx.body(item).lower()
        return any(v.lower() in body for v in flt.values)
    if flt.key == "modified":
        if item.modified is None:
            return False
        age = ctx.now - item.modified
        return any(bound.matches(age) for bound in flt.ages)
    return False


def _filter_score(item: SearchItem, flt: Filter) -> int:
    if flt.negate:
        return 0
    if flt.key == "name":
        return max(_name_score(item.name, v) for v in flt.values)
    if flt.key == "tag":
        return SCORE_TAG
    if flt.key == "content":
        return SCORE_BODY
    return 0


def score_item(item: SearchItem, query: ParsedQuery, ctx: _QueryContext) -> int | None:
    """Relevance of ``item`` for ``query``, or None when it does not match."""
    if item.archived and not query.includes_archived:
        return None

    score = 0
    for flt in query.filters:
        if _filter_matches(item, flt, ctx) == flt.negate:
            return None
        score += _filter_score(item, flt)

    for term in query.terms:
        term_score = _term_score(item, term, ctx)
        if not term_score:
            return None
        score += term_score
    return score


def _rank_key(scored: tuple[int, SearchItem]):
    score, item = scored
    return (-score, len(item.name), item.name.lower(), item.name, item.path)


def search(
    query: str | ParsedQuery,
    items: list[SearchItem],
    limit: int = DEFAULT_LIMIT,
    now: float | None = None,
) -> SearchResults:
    """Run a query over items and partition the ranked results.

    An empty query returns every non-archived item ordered by name.

    Raises:
        MalformedError: If ``query`` is a string that does not parse.
    """
    parsed = parse_query(query) if isinstance(query, str) else query
    ctx = _QueryContext(now if now is not None else time.time())

    if parsed.is_empty:
        ranked = sorted((i for i in items if not i.archived), key=lambda i: (i.name.lower(), i.name, i.path))
    else:
        scored = []
        for item in items:
            score = score_item(item, parsed, ctx)
            if score is not None:
                scored.append((score, item))
        ranked = [item for _score, item in sorted(scored, key=_rank_key)]

    if limit and limit > 0:
        ranked = ranked[:limit]

    results = SearchResults()
    for item in ranked:
        results.add(item)
    return results
