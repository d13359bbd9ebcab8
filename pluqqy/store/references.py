"""Scans and rewrites of pipeline -> component references."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..errors import PluqqyError
from ..models import ref_target
from .paths import kind_from_path, normalize_relpath
from .store import Store

logger = logging.getLogger(__name__)


@dataclass
class ReferenceUpdate:
    """Outcome of rewriting references across several pipelines."""

    updated: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # pipeline path -> error message

    @property
    def ok(self) -> bool:
        return not self.failed


def _ref_prefix(ref_path: str) -> str:
    """Leading ``../`` / ``./`` segments of a ref path, kept when rewriting it."""
    path = ref_path.replace("\\", "/")
    prefix = ""
    while True:
        if path.startswith("../"):
            prefix, path = prefix + "../", path[3:]
        elif path.startswith("./"):
            prefix, path = prefix + "./", path[2:]
        else:
            return prefix


def find_referring_pipelines(store: Store, component_path: str) -> list[str]:
    """Paths of active and archived pipelines referencing ``component_path``.

    Unreadable pipelines are logged and skipped.
    """
    target = ref_target(normalize_relpath(component_path))
    referring = []
    for archived in (False, True):
        for entry in store.iter_pipelines(archived=archived):
            if entry.error is not None:
                logger.warning("skipping unreadable pipeline %s: %s", entry.path, entry.error)
                continue
            if entry.item.references(target):
                referring.append(entry.path)
    return referring


def rewrite_references(store: Store, pipeline_path: str, old: str, new: str) -> int:
    """Point every ref to ``old`` in one pipeline at ``new``. Returns refs changed.

    The pipeline file is rewritten atomically, and only when something changed.
    """
    old_target = ref_target(old)
    new_target = ref_target(new)
    new_kind = kind_from_path(new_target)

    pipeline = store.read_pipeline(pipeline_path)
    changed = 0
    for ref in pipeline.components:
        if ref.target == old_target:
            ref.path = _ref_prefix(ref.path) + new_target
            ref.type = new_kind
            changed += 1
    if changed:
        store.write_pipeline(pipeline)
        logger.info("rewrote %d reference(s) in %s", changed, pipeline_path)
    return changed


def rewrite_all_references(store: Store, pipeline_paths: list[str], old: str, new: str) -> ReferenceUpdate:
    """Apply :func:`rewrite_references` to each pipeline, collecting failures."""
    result = ReferenceUpdate()
    for path in pipeline_paths:
        try:
            rewrite_references(store, path, old, new)
        except PluqqyError as e:
            result.failed[path] = str(e)
            continue
        result.updated.append(path)
    return result


def remove_references(store: Store, component_path: str) -> ReferenceUpdate:
    """Drop refs to a component from every pipeline that has them.

    Remaining refs keep their relative order values.
    """
    target = ref_target(normalize_relpath(component_path))
    result = ReferenceUpdate()
    for path in find_referring_pipelines(store, target):
        try:
            pipeline = store.read_pipeline(path)
            pipeline.components = [ref for ref in pipeline.components if ref.target != target]
            store.write_pipeline(pipeline)
        except PluqqyError as e:
            result.failed[path] = str(e)
            continue
        result.updated.append(path)
        logger.info("removed references to %s from %s", target, path)
    return result


def count_component_usage(store: Store) -> dict[str, int]:
    """Count how many active pipelines reference each component path.

    A pipeline that lists the same component twice counts once.
    """
    counts: dict[str, int] = {}
    for entry in store.iter_pipelines():
        if entry.error is not None:
            logger.warning("skipping unreadable pipeline %s: %s", entry.path, entry.error)
            continue
        for target in {ref.target for ref in entry.item.components}:
            counts[target] = counts.get(target, 0) + 1
    return counts
