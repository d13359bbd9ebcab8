"""Delete components and pipelines."""

from __future__ import annotations

import logging

from ..errors import MalformedError, PartialDeleteError
from ..store.paths import is_component_path, normalize_relpath
from ..store.references import find_referring_pipelines
from ..store.references import remove_references as strip_references
from ..store.store import Store
from ..tags.registry import TagRegistry
from .results import DeleteResult, Scheduler, run_sweep

logger = logging.getLogger(__name__)


def delete_item(
    store: Store,
    path: str,
    remove_references: bool = False,
    registry: TagRegistry | None = None,
    schedule: Scheduler | None = None,
) -> DeleteResult:
    """Delete an active or archived item.

    An orphan sweep over the item's tags follows. With ``remove_references``,
    refs to a deleted component are stripped from every pipeline; otherwise
    pipelines that still reference it are listed in the messages.

    Raises:
        NotFoundError, StoreIOError: If the file cannot be removed.
        PartialDeleteError: If the file was removed but some pipelines could
            not be rewritten; ``stale_paths`` lists them.
    """
    path = normalize_relpath(path)
    try:
        tags = list(store.read_item(path).tags)
    except MalformedError as e:
        logger.warning("deleting unreadable file %s: %s", path, e)
        tags = []

    referrers = find_referring_pipelines(store, path) if is_component_path(path) else []

    size = store.delete(path)
    result = DeleteResult(path=path)
    result.erased.add(path, size)
    result.messages.append(f"Deleted {path}")

    if registry is not None and tags:
        result.sweep = run_sweep(registry.sweep_orphans, tags, schedule=schedule)

    if referrers and remove_references:
        update = strip_references(store, path)
        result.updated_pipelines = update.updated
        for pipeline_path in update.updated:
            result.messages.append(f"Removed reference from {pipeline_path}")
        if not update.ok:
            result.log_to_journal(store.root, "delete", {"path": path, "partial": True})
            details = "; ".join(f"{p}: {msg}" for p, msg in update.failed.items())
            raise PartialDeleteError(
                f"deleted {path} but {len(update.failed)} pipeline(s) still reference it: {details}",
                path,
                stale_paths=list(update.failed),
            )
    elif referrers:
        result.messages.append(f"Still referenced by: {', '.join(referrers)}")

    result.log_to_journal(store.root, "delete", {"path": path})
    return result
