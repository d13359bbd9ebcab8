"""Render pipelines into a single output document.

Composition is deterministic: the same pipeline, settings and component files
always produce the same bytes.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path

from .errors import BrokenReferenceError, NotFoundError, MalformedError
from .models import Component, Pipeline, Settings
from .store.store import Store

logger = logging.getLogger(__name__)

# Display thresholds for token counts
TOKEN_LIMIT = 100_000
TOKEN_WARNING_RATIO = 0.5
TOKEN_DANGER_RATIO = 0.8

MISSING_MARKER = "Warning: the following components could not be loaded:"

_TRAILING_WS = re.compile(r"[ \t]+$", re.MULTILINE)


@dataclass
class Composition:
    """Composed text plus any refs that could not be resolved."""

    text: str
    broken_references: list[str] = field(default_factory=list)

    @property
    def token_count(self) -> int:
        return estimate_tokens(self.text)


def normalize_output(text: str) -> str:
    """``\\n`` line endings, no trailing whitespace, exactly one final newline."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _TRAILING_WS.sub("", text)
    text = text.strip("\n")
    return text + "\n" if text else ""


def _body_block(body: str) -> str | None:
    block = body.replace("\r\n", "\n").replace("\r", "\n").strip("\n")
    return block if block.strip() else None


def compose_pipeline(store: Store, pipeline: Pipeline, settings: Settings) -> Composition:
    """Compose a pipeline according to the configured section layout.

    Refs are rendered in ascending ``order`` and grouped by component kind;
    sections follow ``settings.sections`` and kinds without a section are
    left out.

    Raises:
        BrokenReferenceError: If a ref cannot be read and the pipeline is active.
            Archived pipelines compose with a marker listing the missing refs.
    """
    buckets: dict[str, list[Component]] = {}
    missing: list[str] = []

    for ref in pipeline.sorted_components():
        try:
            component = store.read_component(ref.target)
        except (NotFoundError, MalformedError) as e:
            logger.debug("unresolved ref %s in %s: %s", ref.path, pipeline.path, e)
            missing.append(ref.path)
            continue
        buckets.setdefault(component.kind, []).append(component)

    if missing and not pipeline.archived:
        raise BrokenReferenceError(
            f"pipeline '{pipeline.name}' ({pipeline.path}) references missing components: {', '.join(missing)}",
            pipeline.path,
            missing=missing,
        )

    blocks: list[str] = []
    for section in settings.sections:
        components = buckets.get(section.kind)
        if not components:
            continue
        bodies = [b for b in (_body_block(c.body) for c in components) if b is not None]
        if settings.show_headings and section.heading:
            blocks.append(section.heading)
        blocks.extend(bodies)

    if missing:
        marker = ["---", MISSING_MARKER]
        marker.extend(f"- {path}" for path in missing)
        blocks.append("\n".join(marker))

    return Composition(text=normalize_output("\n\n".join(blocks)), broken_references=missing)


def compose_component(component: Component, settings: Settings) -> str:
    """Render one component under its section heading (if headings are on)."""
    blocks = []
    if settings.show_headings:
        for section in settings.sections:
            if section.kind == component.kind and section.heading:
                blocks.append(section.heading)
                break
    body = _body_block(component.body)
    if body is not None:
        blocks.append(body)
    return normalize_output("\n\n".join(blocks))


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four UTF-8 bytes, rounded up."""
    return math.ceil(len(text.encode("utf-8")) / 4)


def format_token_count(count: int) -> str:
    """1234 -> "1.2k", 2500000 -> "2.5M"."""
    if count < 1000:
        return str(count)
    if count < 1_000_000:
        return f"{count / 1000:.1f}k"
    return f"{count / 1_000_000:.1f}M"


def token_limit_status(count: int, limit: int = TOKEN_LIMIT) -> tuple[int, int, str]:
    """Return ``(percentage, limit, status)`` where status is good, warning or danger."""
    percentage = int(count * 100 / limit) if limit else 0
    ratio = count / limit if limit else 0.0
    if ratio >= TOKEN_DANGER_RATIO:
        status = "danger"
    elif ratio >= TOKEN_WARNING_RATIO:
        status = "warning"
    else:
        status = "good"
    return percentage, limit, status


def output_path_for(pipeline: Pipeline, settings: Settings, base: Path | None = None) -> Path:
    """Effective output file for a pipeline.

    The pipeline's ``output_path`` wins; otherwise ``export_path/default_filename``.
    An override ending in a separator names a directory. Relative paths are
    resolved against ``base`` when given.
    """
    if pipeline.output_path:
        raw = pipeline.output_path
        target = Path(raw).expanduser()
        if raw.endswith(("/", "\\")):
            target = target / settings.default_filename
    else:
        target = Path(settings.export_path or ".").expanduser() / settings.default_filename
    if base is not None and not target.is_absolute():
        target = Path(base) / target
    return target


def write_composed_output(store: Store, text: str, pipeline: Pipeline, settings: Settings) -> Path:
    """Atomically write composed text; relative paths resolve from the project directory.

    Returns the path written.
    """
    target = output_path_for(pipeline, settings, base=store.root.parent)
    store.write_text(target, text)
    logger.info("wrote composed output for %s to %s", pipeline.path, target)
    return target
