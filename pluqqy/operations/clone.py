"""Clone components and pipelines."""

from __future__ import annotations

import logging
import re

from ..errors import CollisionError, InvalidNameError
from ..models import Component, ComponentRef, Pipeline
from ..store.paths import (
    component_path,
    is_pipeline_path,
    kind_from_path,
    normalize_relpath,
    pipeline_path,
    slugify,
    to_archive_path,
)
from ..store.store import Store
from ..tags.registry import TagRegistry
from .results import CloneResult

logger = logging.getLogger(__name__)

MAX_CLONE_ATTEMPTS = 1000

_COPY_PREFIX = re.compile(r"^\(Copy(?: (\d+))?\) (?=\S)")


def _split_copy_prefix(name: str) -> tuple[str, int]:
    """"(Copy 3) Foo" -> ("Foo", 3), "(Copy) Foo" -> ("Foo", 1), "Foo" -> ("Foo", 0)."""
    match = _COPY_PREFIX.match(name)
    if match is None:
        return name, 0
    return name[match.end() :], int(match.group(1) or 1)


def suggest_clone_name(name: str, attempt: int = 1) -> str:
    """"Foo" -> "(Copy) Foo" (attempt 1), "(Copy 2) Foo" (attempt 2), ...

    A name that already carries a copy prefix is renumbered instead of
    prefixed again: "(Copy) Foo" -> "(Copy 2) Foo".
    """
    base, current = _split_copy_prefix(name)
    number = max(attempt, current + 1)
    if number <= 1:
        return f"(Copy) {base}"
    return f"(Copy {number}) {base}"


def _target_path(source_path: str, slug: str, archived: bool) -> str:
    if is_pipeline_path(source_path):
        return pipeline_path(slug, archived)
    return component_path(kind_from_path(source_path), slug, archived)


def _resolve_name(store: Store, source_path: str, name: str, archived: bool, auto_suffix: bool) -> tuple[str, str]:
    target = _target_path(source_path, slugify(name), archived)
    if not store.exists(target):
        return name, target
    if not auto_suffix:
        raise CollisionError(f"'{target}' already exists", target)

    base, current = _split_copy_prefix(name)
    for attempt in range(current + 1, current + MAX_CLONE_ATTEMPTS + 1):
        candidate = suggest_clone_name(base, attempt)
        target = _target_path(source_path, slugify(candidate), archived)
        if not store.exists(target):
            return candidate, target
    raise CollisionError(f"no free name for a copy of '{name}' after {MAX_CLONE_ATTEMPTS} attempts", target)


def clone_item(
    store: Store,
    source_path: str,
    new_name: str,
    source_archived: bool = False,
    target_archived: bool = False,
    auto_suffix: bool = True,
    registry: TagRegistry | None = None,
) -> CloneResult:
    """Copy a component or pipeline under a new display name.

    The copy keeps the source's tags and body (or, for pipelines, its refs).
    Pipelines that reference the source are left alone.

    Raises:
        InvalidNameError: If the new name is empty or slugifies to nothing.
        CollisionError: If the slug is taken and ``auto_suffix`` is off, or no
            free ``(Copy N)`` name exists.
        NotFoundError, MalformedError: If the source cannot be read.
    """
    name = (new_name or "").strip()
    if not name:
        raise InvalidNameError("name cannot be empty")

    source_path = normalize_relpath(source_path)
    if source_archived:
        source_path = to_archive_path(source_path)

    source = store.read_item(source_path)
    chosen, target = _resolve_name(store, source_path, name, target_archived, auto_suffix)

    result = CloneResult(path=target, name=chosen)
    if chosen != name:
        result.messages.append(f"'{name}' is already taken; using '{chosen}'")

    if isinstance(source, Component):
        written = store.write_component(target, source.body, name=chosen, tags=source.tags, extra=source.extra)
        tags = written.tags
    else:
        clone = Pipeline(
            name=chosen,
            path=target,
            components=[ComponentRef(ref.type, ref.path, ref.order) for ref in source.components],
            tags=list(source.tags),
            output_path=source.output_path,
            extra=dict(source.extra),
        )
        store.write_pipeline(clone)
        tags = clone.tags

    if registry is not None and not target_archived and tags:
        registry.register_tags(tags)

    result.created.add(target, store.file_size(target))
    result.messages.append(f"Cloned '{source.name}' to {target}")
    logger.info("cloned %s -> %s", source_path, target)
    result.log_to_journal(store.root, "clone", {"source": source_path, "target": target, "name": chosen})
    return result
