"""Component frontmatter parsing and rendering.

A component file optionally starts with a YAML block delimited by lines
containing only ``---``. The YAML itself is handled by python-frontmatter's
YAML handler; the delimiters are located here so the body survives a rewrite
byte-for-byte.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import yaml
from frontmatter.default_handlers import YAMLHandler

from ..errors import MalformedError

DELIMITER = "---"

_handler = YAMLHandler()


@dataclass
class ParsedComponentFile:
    """Frontmatter fields and body of a component file."""

    name: str | None = None
    tags: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)  # unknown keys, preserved on rewrite
    body: str = ""
    has_frontmatter: bool = False


def _first_content_line(lines: list[str]) -> int | None:
    for index, line in enumerate(lines):
        if line.strip():
            return index
    return None


def _strip_one_blank_line(text: str) -> str:
    if text.startswith("\r\n"):
        return text[2:]
    if text.startswith("\n"):
        return text[1:]
    return text


def parse_component_text(text: str, path: str | None = None) -> ParsedComponentFile:
    """Split a component file into frontmatter fields and body.

    Raises:
        MalformedError: If the frontmatter is unterminated, is not valid YAML,
            or carries fields of the wrong type.
    """
    lines = text.splitlines(keepends=True)
    start = _first_content_line(lines)
    if start is None or lines[start].strip() != DELIMITER:
        return ParsedComponentFile(body=text)

    end = None
    for index in range(start + 1, len(lines)):
        if lines[index].strip() == DELIMITER:
            end = index
            break
    if end is None:
        raise MalformedError(f"unterminated frontmatter in '{path}': missing closing '---'", path)

    block = "".join(lines[start + 1 : end])
    body = _strip_one_blank_line("".join(lines[end + 1 :]))

    try:
        metadata = _handler.load(block) if block.strip() else {}
    except yaml.YAMLError as e:
        raise MalformedError(f"invalid frontmatter YAML in '{path}': {e}", path) from e
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise MalformedError(f"frontmatter in '{path}' must be a YAML mapping", path)

    name = metadata.get("name")
    tags = metadata.get("tags") or []
    if isinstance(tags, str):
        tags = [tags]
    if not isinstance(tags, list):
        raise MalformedError(f"frontmatter 'tags' in '{path}' must be a list of strings", path)

    return ParsedComponentFile(
        name=str(name) if name is not None and str(name).strip() else None,
        tags=[str(tag) for tag in tags if tag is not None],
        extra={k: v for k, v in metadata.items() if k not in ("name", "tags")},
        body=body,
        has_frontmatter=True,
    )


def _looks_like_frontmatter(body: str) -> bool:
    lines = body.splitlines()
    start = _first_content_line(lines)
    return start is not None and lines[start].strip() == DELIMITER


def render_component_text(
    body: str,
    name: str | None = None,
    tags: list[str] | None = None,
    extra: dict[str, Any] | None = None,
) -> str:
    """Render a component file: frontmatter (when there is anything to say) then body."""
    metadata: dict[str, Any] = {}
    if name:
        metadata["name"] = name
    if tags:
        metadata["tags"] = list(tags)
    for key, value in (extra or {}).items():
        if key not in ("name", "tags"):
            metadata[key] = value

    # A body whose first line is a delimiter would be misread as frontmatter
    if not metadata and not _looks_like_frontmatter(body):
        return body

    exported = _handler.export(metadata, sort_keys=False) if metadata else ""
    block = f"{exported}\n" if exported else ""
    return f"{DELIMITER}\n{block}{DELIMITER}\n\n{body}"
