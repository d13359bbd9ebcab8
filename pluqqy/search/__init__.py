"""Structured search over components and pipelines."""

from .engine import DEFAULT_LIMIT, SearchResults, search
from .items import SearchItem, build_items
from .query import Filter, ParsedQuery, parse_query

__all__ = [
    "DEFAULT_LIMIT",
    "Filter",
    "ParsedQuery",
    "SearchItem",
    "SearchResults",
    "build_items",
    "parse_query",
    "search",
]
