"""Rename components and pipelines, rewriting pipeline references."""

from __future__ import annotations

import logging

from ..errors import CollisionError, InvalidNameError, PartialRenameError
from ..models import Component
from ..store.paths import normalize_relpath, sibling_path, slugify
from ..store.references import find_referring_pipelines, rewrite_all_references
from ..store.store import Store
from .results import RenameResult

logger = logging.getLogger(__name__)


def rename_item(store: Store, path: str, new_name: str) -> RenameResult:
    """Give an item a new display name, moving it to the matching slug.

    For components, every pipeline (active or archived) that references the
    old path is rewritten before the old file is removed.

    Raises:
        InvalidNameError: If the name is empty or unchanged.
        CollisionError: If another file already uses the new slug.
        PartialRenameError: If some referring pipelines could not be rewritten.
            The new file is in place, the old file is kept, and ``stale_paths``
            lists the pipelines still pointing at the old path.
    """
    name = (new_name or "").strip()
    if not name:
        raise InvalidNameError("name cannot be empty")

    path = normalize_relpath(path)
    item = store.read_item(path)
    if name == item.name:
        raise InvalidNameError(f"'{name}' is already the name of {path}", path)

    new_path = sibling_path(path, slugify(name))
    if new_path != path and store.exists(new_path):
        raise CollisionError(f"cannot rename to '{name}': {new_path} already exists", new_path)

    result = RenameResult(old_path=path, new_path=new_path)
    old_size = store.file_size(path)

    if isinstance(item, Component):
        referrers = find_referring_pipelines(store, path) if new_path != path else []
        store.write_component(new_path, item.body, name=name, tags=item.tags, extra=item.extra)
        result.created.add(new_path, store.file_size(new_path))

        update = rewrite_all_references(store, referrers, path, new_path)
        result.updated_pipelines = update.updated
        for pipeline_path in update.updated:
            result.messages.append(f"Updated reference in {pipeline_path}")

        if not update.ok:
            details = "; ".join(f"{p}: {msg}" for p, msg in update.failed.items())
            result.log_to_journal(store.root, "rename", {"from": path, "to": new_path, "partial": True})
            raise PartialRenameError(
                f"renamed {path} to {new_path} but {len(update.failed)} pipeline(s) still reference the old path: {details}",
                path,
                stale_paths=list(update.failed),
            )
    else:
        item.name = name
        item.path = new_path
        store.write_pipeline(item)
        result.created.add(new_path, store.file_size(new_path))

    if new_path != path:
        store.delete(path)
        result.erased.add(path, old_size)

    result.messages.insert(0, f"Renamed {path} to {new_path}")
    logger.info("renamed %s -> %s", path, new_path)
    result.log_to_journal(store.root, "rename", {"from": path, "to": new_path, "name": name})
    return result
