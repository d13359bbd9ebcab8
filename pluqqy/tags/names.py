"""Tag name normalisation and default colours."""

from __future__ import annotations

import re

from ..errors import InvalidNameError

# Fixed palette; a tag's default colour is picked by hashing its normalised name
PALETTE = (
    "#e74c3c",
    "#3498db",
    "#2ecc71",
    "#f39c12",
    "#9b59b6",
    "#1abc9c",
    "#34495e",
    "#e67e22",
    "#16a085",
    "#8e44ad",
    "#f1c40f",
    "#d35400",
    "#27ae60",
    "#2980b9",
    "#c0392b",
)

_WHITESPACE = re.compile(r"\s+")

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def normalize_tag_name(name: str) -> str:
    """Trim, lowercase and join internal whitespace with single hyphens.

    "  Code Review " -> "code-review"

    Raises:
        InvalidNameError: If the name is empty after trimming.
    """
    normalized = _WHITESPACE.sub("-", str(name).strip().lower())
    if not normalized:
        raise InvalidNameError("tag name cannot be empty")
    return normalized


def fnv1a_32(data: bytes) -> int:
    h = _FNV_OFFSET
    for byte in data:
        h ^= byte
        h = (h * _FNV_PRIME) & 0xFFFFFFFF
    return h


def tag_color(name: str) -> str:
    """Deterministic palette colour for a tag name."""
    key = normalize_tag_name(name).encode("utf-8")
    return PALETTE[fnv1a_32(key) % len(PALETTE)]


def normalize_tag_list(tags: list[str]) -> list[str]:
    """Normalise a list of tags, dropping blanks and duplicates (first wins)."""
    seen: list[str] = []
    for tag in tags:
        try:
            normalized = normalize_tag_name(tag)
        except InvalidNameError:
            continue
        if normalized not in seen:
            seen.append(normalized)
    return seen
