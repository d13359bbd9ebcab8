"""Facade over the store, tag registry and operations.

Foreground calls run on the caller's thread. Orphan sweeps and tag-wide
deletes run on a single background worker, so they execute one at a time and
in submission order. Foreground mutations and each per-file step of a
tag-wide delete hold the service lock, so they never overlap on a file.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from ..composer import Composition, compose_pipeline, write_composed_output
from ..models import Settings
from ..search import SearchResults, build_items, search
from ..settings import load_settings
from ..store.store import Store
from ..tags.registry import TagRegistry, TagReloadReport
from .archive import archive_item, unarchive_item
from .clone import clone_item
from .delete import delete_item
from .rename import rename_item
from .results import ArchiveResult, CloneResult, DeleteResult, RenameResult, TagDeletionReport
from .session import EditSession
from .tag_delete import Checkpoint, ProgressCallback, delete_tag_completely
from .tag_edit import TagEditSession

logger = logging.getLogger(__name__)


def _log_failure(future: Future) -> None:
    error = future.exception()
    if error is not None:
        logger.warning("background task failed: %s", error)


class OperationService:
    """Entry point for callers that mutate a repository."""

    def __init__(self, root: Path):
        self.store = Store(Path(root))
        self.registry = TagRegistry(self.store)
        self._settings: Settings | None = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pluqqy-sweep")
        self._pending: list[Future] = []
        self._lock = threading.RLock()

    def __enter__(self) -> "OperationService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def root(self) -> Path:
        return self.store.root

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = load_settings(self.store.root)
        return self._settings

    def schedule(self, fn, *args) -> Future:
        """Queue ``fn`` on the background worker. Finished tasks are dropped from the pending list."""
        self._pending = [f for f in self._pending if not f.done()]
        future = self._executor.submit(fn, *args)
        future.add_done_callback(_log_failure)
        self._pending.append(future)
        return future

    # Item operations

    def clone(self, path: str, new_name: str, to_archive: bool = False) -> CloneResult:
        with self._lock:
            return clone_item(self.store, path, new_name, target_archived=to_archive, registry=self.registry)

    def rename(self, path: str, new_name: str) -> RenameResult:
        with self._lock:
            return rename_item(self.store, path, new_name)

    def archive(self, path: str) -> ArchiveResult:
        with self._lock:
            return archive_item(self.store, path, registry=self.registry, schedule=self.schedule)

    def unarchive(self, path: str) -> ArchiveResult:
        with self._lock:
            return unarchive_item(self.store, path, registry=self.registry)

    def delete(self, path: str, remove_references: bool = False) -> DeleteResult:
        with self._lock:
            return delete_item(
                self.store,
                path,
                remove_references=remove_references,
                registry=self.registry,
                schedule=self.schedule,
            )

    # Tags

    def edit_tags(self, path: str) -> TagEditSession:
        return TagEditSession(self.store, self.registry, path, lock=self._lock)

    def tag_edit_flow(self, path: str) -> tuple[EditSession, TagEditSession]:
        """A started EditSession whose commit writes the tag changes."""
        tags = self.edit_tags(path)
        session = EditSession(on_commit=lambda: tags.commit(schedule=self.schedule), is_dirty=lambda: tags.dirty)
        session.start()
        return session, tags

    def delete_tag(
        self,
        tag: str,
        progress: ProgressCallback | None = None,
        checkpoint: Checkpoint | None = None,
    ) -> Future:
        """Queue a tag-wide delete; the Future resolves to a TagDeletionReport."""
        return self.schedule(delete_tag_completely, self.store, self.registry, tag, progress, checkpoint, self._lock)

    def delete_tag_now(self, tag: str, progress: ProgressCallback | None = None) -> TagDeletionReport:
        self.wait()
        return delete_tag_completely(self.store, self.registry, tag, progress=progress, lock=self._lock)

    def reload_tags(self) -> TagReloadReport:
        return self.registry.reload()

    # Composition and search

    def compose(self, path: str) -> Composition:
        return compose_pipeline(self.store, self.store.read_pipeline(path), self.settings)

    def export(self, path: str) -> tuple[Composition, Path]:
        pipeline = self.store.read_pipeline(path)
        composition = compose_pipeline(self.store, pipeline, self.settings)
        target = write_composed_output(self.store, composition.text, pipeline, self.settings)
        return composition, target

    def search(self, query: str, limit: int = 1000) -> SearchResults:
        return search(query, build_items(self.store, self.settings), limit=limit)

    # Background work

    def wait(self) -> list:
        """Block until all queued background work has finished.

        Returns the results of the tasks still pending; failures are returned
        as exception objects (they are logged when they happen).
        """
        pending, self._pending = self._pending, []
        outcomes = []
        for future in pending:
            error = future.exception()
            if error is not None:
                outcomes.append(error)
            else:
                outcomes.append(future.result())
        return outcomes

    def close(self) -> None:
        self.wait()
        self._executor.shutdown(wait=True)
