"""Archive and unarchive components and pipelines."""

from __future__ import annotations

import logging

from ..errors import MalformedError, NotFoundError
from ..models import Pipeline
from ..store.paths import normalize_relpath
from ..store.store import Store
from ..tags.registry import TagRegistry
from .results import ArchiveResult, Scheduler, run_sweep

logger = logging.getLogger(__name__)


def _tags_of(store: Store, path: str) -> list[str]:
    try:
        return list(store.read_item(path).tags)
    except MalformedError as e:
        logger.warning("could not read tags from %s: %s", path, e)
        return []


def archive_item(
    store: Store,
    path: str,
    registry: TagRegistry | None = None,
    schedule: Scheduler | None = None,
) -> ArchiveResult:
    """Move an active item into the archive tree.

    Tags that are now only used by archived items are dropped from the
    registry by an orphan sweep (run through ``schedule`` when given).

    Raises:
        NotFoundError, CollisionError, MalformedError, StoreIOError
    """
    path = normalize_relpath(path)
    if not store.exists(path):
        raise NotFoundError(f"'{path}' not found", path)
    tags = _tags_of(store, path)
    size = store.file_size(path)

    new_path = store.archive(path)
    result = ArchiveResult(old_path=path, new_path=new_path)
    result.erased.add(path, size)
    result.created.add(new_path, size)
    result.messages.append(f"Archived {path}")

    if registry is not None and tags:
        result.sweep = run_sweep(registry.sweep_orphans, tags, schedule=schedule)

    result.log_to_journal(store.root, "archive", {"from": path, "to": new_path})
    return result


def unarchive_item(store: Store, path: str, registry: TagRegistry | None = None) -> ArchiveResult:
    """Move an archived item back to the active tree and register its tags.

    Restoring a pipeline does not restore the components it references; any
    that are missing from the active tree are listed in the messages.
    """
    path = normalize_relpath(path)
    new_path = store.unarchive(path)
    size = store.file_size(new_path)
    result = ArchiveResult(old_path=path, new_path=new_path)
    result.erased.add(path, size)
    result.created.add(new_path, size)
    result.messages.append(f"Restored {new_path}")

    item = store.read_item(new_path)
    if registry is not None and item.tags:
        created = registry.register_tags(item.tags)
        if created:
            result.messages.append(f"Registered tag(s): {', '.join(created)}")

    if isinstance(item, Pipeline):
        missing = [ref.path for ref in item.components if not store.exists(ref.target)]
        if missing:
            result.messages.append(f"{len(missing)} referenced component(s) are not available: {', '.join(missing)}")

    result.log_to_journal(store.root, "restore", {"from": path, "to": new_path})
    return result
