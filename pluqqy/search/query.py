"""Query language for searching components and pipelines.

    tag:go type:prompt,context -status:archived "free text" name:parser

Whitespace separates tokens and tokens are AND-ed. ``key:value`` tokens with
a recognised key are filters; a leading ``-`` negates a filter and comma
separated values are OR-ed. Anything else, including ``key:value`` with an
unknown key, is free text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..errors import MalformedError
from ..tags.names import normalize_tag_name

RECOGNIZED_KEYS = ("tag", "type", "status", "name", "content", "modified")

TYPE_ALIASES = {
    "context": "context",
    "contexts": "context",
    "prompt": "prompt",
    "prompts": "prompt",
    "rule": "rules",
    "rules": "rules",
    "pipeline": "pipeline",
    "pipelines": "pipeline",
}

STATUS_VALUES = ("active", "archived", "all")

# modified:<7d (changed within 7 days), modified:>30d (older than 30 days)
_AGE = re.compile(r"^([<>])(\d+)([dwmy])$")
_UNIT_SECONDS = {
    "d": 86400,
    "w": 7 * 86400,
    "m": 30 * 86400,
    "y": 365 * 86400,
}

_QUOTES = ("\"", "'")


@dataclass
class AgeBound:
    """Parsed ``modified:`` value."""

    newer: bool  # True for "<" (modified within the window)
    seconds: int

    def matches(self, age_seconds: float) -> bool:
        if self.newer:
            return age_seconds < self.seconds
        return age_seconds > self.seconds


@dataclass
class Filter:
    key: str
    values: list[str]  # OR-ed
    negate: bool = False
    ages: list[AgeBound] = field(default_factory=list)  # modified: only


@dataclass
class ParsedQuery:
    raw: str = ""
    filters: list[Filter] = field(default_factory=list)
    terms: list[str] = field(default_factory=list)

    @property
    def structured(self) -> bool:
        return bool(self.filters)

    @property
    def is_empty(self) -> bool:
        return not self.filters and not self.terms

    def filters_for(self, key: str) -> list[Filter]:
        return [f for f in self.filters if f.key == key]

    @property
    def includes_archived(self) -> bool:
        """Archived items are only considered when a status filter asks for them."""
        return bool(self.filters_for("status"))


def tokenize(text: str) -> list[str]:
    """Split on whitespace; quoted runs keep their spaces and their quotes."""
    tokens: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for ch in text:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
            current.append(ch)
        elif ch.isspace():
            if current:
                tokens.append("".join(current))
                current = []
        else:
            current.append(ch)
    if current:
        tokens.append("".join(current))
    return tokens


def unquote(value: str) -> str:
    """Strip quote characters; an unterminated quote runs to the end of the token."""
    out = []
    quote: str | None = None
    for ch in value:
        if quote:
            if ch == quote:
                quote = None
            else:
                out.append(ch)
        elif ch in _QUOTES:
            quote = ch
        else:
            out.append(ch)
    return "".join(out)


def parse_age(value: str) -> AgeBound:
    match = _AGE.match(value.strip().lower())
    if not match:
        raise MalformedError(f"invalid modified value '{value}': expected <N or >N with unit d, w, m or y (e.g. <7d)")
    op, amount, unit = match.groups()
    return AgeBound(newer=op == "<", seconds=int(amount) * _UNIT_SECONDS[unit])


def _split_values(raw_value: str) -> list[str]:
    if raw_value[:1] in _QUOTES:
        values = [unquote(raw_value)]
    else:
        values = [unquote(part) for part in raw_value.split(",")]
    return [v.strip() for v in values if v.strip()]


def _parse_filter(key: str, raw_value: str, negate: bool, token: str) -> Filter:
    values = _split_values(raw_value)
    if not values:
        raise MalformedError(f"empty value for '{key}:' in query token '{token}'")

    if key == "tag":
        values = [normalize_tag_name(v) for v in values]
    elif key == "type":
        normalized = []
        for v in values:
            kind = TYPE_ALIASES.get(v.lower())
            if kind is None:
                raise MalformedError(f"unknown type '{v}': must be one of context, prompt, rules, pipeline")
            normalized.append(kind)
        values = normalized
    elif key == "status":
        values = [v.lower() for v in values]
        for v in values:
            if v not in STATUS_VALUES:
                raise MalformedError(f"unknown status '{v}': must be one of active, archived, all")
    elif key == "modified":
        return Filter(key=key, values=values, negate=negate, ages=[parse_age(v) for v in values])

    return Filter(key=key, values=values, negate=negate)


def parse_query(text: str) -> ParsedQuery:
    """Parse a search query.

    Raises:
        MalformedError: If a recognised key has an empty or invalid value.
    """
    query = ParsedQuery(raw=text or "")
    free: list[str] = []

    for token in tokenize(query.raw):
        negate = token.startswith("-") and len(token) > 1
        body = token[1:] if negate else token
        key, sep, raw_value = body.partition(":")
        if sep and key.lower() in RECOGNIZED_KEYS and key[:1] not in _QUOTES:
            query.filters.append(_parse_filter(key.lower(), raw_value, negate, token))
            continue
        term = unquote(token).strip()
        if term:
            free.append(term)

    if query.filters:
        query.terms = free
    elif free:
        # Without filters the whole query is one phrase
        query.terms = [" ".join(free)]
    return query
