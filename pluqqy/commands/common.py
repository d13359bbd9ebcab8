"""Helpers shared by command implementations."""

from __future__ import annotations

from pathlib import PurePosixPath

from ..errors import MalformedError, NotFoundError
from ..models import COMPONENT_KINDS, KIND_ALIASES
from ..store.paths import (
    COMPONENT_SUFFIX,
    PIPELINE_SUFFIX,
    component_path,
    normalize_relpath,
    pipeline_path,
    slugify,
)
from ..store.store import Store


def resolve_item(store: Store, ref: str, archived: bool | None = None) -> str:
    """Turn a user reference into a repository-relative path.

    Accepts a full path (``components/rules/a.md``), ``<kind>/<slug>``, or a
    bare name/slug, which is looked up as a pipeline first and then as a
    component of any kind. ``archived`` limits the lookup to one tree.

    Raises:
        NotFoundError: If nothing matches.
        MalformedError: If a bare name matches several components.
    """
    raw = normalize_relpath(ref)
    if store.exists(raw):
        return raw

    trees = [False, True] if archived is None else [archived]
    parts = PurePosixPath(raw).parts

    if len(parts) == 2 and parts[0].lower() in KIND_ALIASES:
        slug = PurePosixPath(parts[1]).stem
        for tree in trees:
            candidate = component_path(parts[0], slug, tree)
            if store.exists(candidate):
                return candidate
        raise NotFoundError(f"component '{ref}' not found", ref)

    stem = raw[: -len(PIPELINE_SUFFIX)] if raw.endswith(PIPELINE_SUFFIX) else raw
    stem = stem[: -len(COMPONENT_SUFFIX)] if stem.endswith(COMPONENT_SUFFIX) else stem
    slug = slugify(stem)

    for tree in trees:
        candidate = pipeline_path(slug, tree)
        if store.exists(candidate):
            return candidate

    for tree in trees:
        matches = [component_path(kind, slug, tree) for kind in COMPONENT_KINDS]
        matches = [m for m in matches if store.exists(m)]
        if len(matches) > 1:
            raise MalformedError(
                f"multiple components named '{ref}': {', '.join(matches)}; use <kind>/<name> to choose",
                ref,
            )
        if matches:
            return matches[0]

    raise NotFoundError(f"item '{ref}' not found as pipeline or component", ref)
