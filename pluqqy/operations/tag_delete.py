"""Remove a tag from every file and from the registry."""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager, nullcontext
from typing import Callable

from ..errors import NotFoundError, PluqqyError
from ..store.store import Store
from ..tags.names import normalize_tag_name
from ..tags.registry import TagRegistry
from .results import TagDeletionReport

logger = logging.getLogger(__name__)

# progress(current_file, scanned, total)
ProgressCallback = Callable[[str, int, int], None]
# Called between files; a truthy return stops the sweep
Checkpoint = Callable[[], bool]


def _sweep_paths(store: Store) -> list[str]:
    """Active components, active pipelines, archived components, archived pipelines."""
    return [
        *store.component_paths(),
        *store.pipeline_paths(),
        *store.component_paths(archived=True),
        *store.pipeline_paths(archived=True),
    ]


def delete_tag_completely(
    store: Store,
    registry: TagRegistry,
    tag: str,
    progress: ProgressCallback | None = None,
    checkpoint: Checkpoint | None = None,
    lock: AbstractContextManager | None = None,
) -> TagDeletionReport:
    """Strip ``tag`` from every active and archived file, then unregister it.

    Each file is rewritten atomically with its body untouched, so the store
    is consistent whenever ``checkpoint`` runs. Per-file failures are
    collected in the report and do not stop the sweep. When ``checkpoint``
    asks to stop, the registry record is kept.

    When ``lock`` is given it is held for each file's read and rewrite, so
    foreground writers to the same file wait for that step.

    Raises:
        InvalidNameError: If the tag name is empty.
    """
    name = normalize_tag_name(tag)
    report = TagDeletionReport(tag=name)
    paths = _sweep_paths(store)
    total = len(paths)
    guard = lock if lock is not None else nullcontext()

    for index, path in enumerate(paths):
        if index and checkpoint is not None and checkpoint():
            report.interrupted = True
            logger.info("tag delete of %s stopped after %d of %d files", name, report.files_scanned, total)
            break

        report.files_scanned += 1
        if progress is not None:
            progress(path, report.files_scanned, total)

        try:
            with guard:
                item = store.read_item(path)
                kept = [t for t in item.tags if not (str(t).strip() and normalize_tag_name(t) == name)]
                if len(kept) == len(item.tags):
                    continue
                store.update_tags(path, kept)
        except NotFoundError:
            logger.debug("tag delete skipped %s: removed during the sweep", path)
            continue
        except PluqqyError as e:
            logger.warning("tag delete could not update %s: %s", path, e)
            report.errors[path] = str(e)
            continue

        report.files_updated += 1
        report.updated_paths.append(path)
        report.created.add(path, store.file_size(path))

    if not report.interrupted:
        if registry.remove_tag(name):
            report.messages.append(f"Removed tag '{name}' from the registry")

    report.messages.insert(0, f"Removed '{name}' from {report.files_updated} of {report.files_scanned} file(s)")
    if report.errors:
        report.messages.append(f"{len(report.errors)} file(s) could not be updated")
    report.log_to_journal(
        store.root,
        "tag-delete",
        {"tag": name, "files_updated": report.files_updated, "errors": len(report.errors), "interrupted": report.interrupted},
    )
    return report
