"""Interactive tag editing for a single component or pipeline."""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager, nullcontext

from ..store.paths import is_archived_path, normalize_relpath
from ..store.store import Store
from ..tags.names import normalize_tag_list, normalize_tag_name
from ..tags.registry import TagRegistry
from .results import Scheduler, TagEditResult, run_sweep

logger = logging.getLogger(__name__)


class TagEditSession:
    """Short-lived editing state for one file's tags.

    Nothing is written until :meth:`commit`. The session is dirty when the
    current tag set differs from the original one; order does not matter.
    """

    def __init__(
        self,
        store: Store,
        registry: TagRegistry,
        path: str,
        lock: AbstractContextManager | None = None,
    ):
        self.store = store
        self.registry = registry
        self._lock = lock if lock is not None else nullcontext()
        self.path = normalize_relpath(path)
        item = store.read_item(self.path)
        self.name = item.name
        self.original_tags: list[str] = normalize_tag_list(item.tags)
        self.current_tags: list[str] = list(self.original_tags)
        self.cursor = 0

    @property
    def available_tags(self) -> list[str]:
        """Registered tags not yet on the item, in registry order."""
        return [tag.name for tag in self.registry.list_tags() if tag.name not in self.current_tags]

    @property
    def dirty(self) -> bool:
        return set(self.original_tags) != set(self.current_tags)

    def add(self, name: str) -> bool:
        """Add a tag (normalised). Returns False if it is already present.

        Raises:
            InvalidNameError: If the name is empty.
        """
        tag = normalize_tag_name(name)
        if tag in self.current_tags:
            return False
        self.current_tags.append(tag)
        self.cursor = len(self.current_tags) - 1
        return True

    def remove(self, name: str) -> bool:
        tag = normalize_tag_name(name)
        if tag not in self.current_tags:
            return False
        self.current_tags.remove(tag)
        self._clamp_cursor()
        return True

    def remove_at_cursor(self) -> str | None:
        if not self.current_tags:
            return None
        removed = self.current_tags.pop(self.cursor)
        self._clamp_cursor()
        return removed

    def move_cursor(self, delta: int) -> int:
        self.cursor += delta
        self._clamp_cursor()
        return self.cursor

    def import_available(self, index: int) -> str:
        """Add the ``index``-th available tag and return its name.

        Raises:
            IndexError: If there is no such available tag.
        """
        available = self.available_tags
        if not 0 <= index < len(available):
            raise IndexError(f"no available tag at position {index}")
        tag = available[index]
        self.add(tag)
        return tag

    def _clamp_cursor(self) -> None:
        self.cursor = max(0, min(self.cursor, len(self.current_tags) - 1))

    def commit(self, schedule: Scheduler | None = None) -> TagEditResult:
        """Write the new tags, register them, and sweep removed ones.

        The additions and removals are applied to the tags the file has at
        commit time, so changes written since the session started are kept.
        The body and other frontmatter keys of the file are preserved.
        """
        added = [t for t in self.current_tags if t not in self.original_tags]
        removed = [t for t in self.original_tags if t not in self.current_tags]
        result = TagEditResult(path=self.path, added=added, removed=removed)

        if not self.dirty and self.current_tags == self.original_tags:
            result.messages.append(f"No tag changes for {self.path}")
            return result

        with self._lock:
            on_disk = normalize_tag_list(self.store.read_item(self.path).tags)
            if set(on_disk) == set(self.original_tags):
                tags = list(self.current_tags)
            else:
                tags = [t for t in on_disk if t not in removed] + [t for t in added if t not in on_disk]
            self.store.update_tags(self.path, tags)
            result.created.add(self.path, self.store.file_size(self.path))
            result.messages.append(f"Updated tags on {self.path}")

            if tags and not is_archived_path(self.path):
                new = self.registry.register_tags(tags)
                if new:
                    result.messages.append(f"Registered tag(s): {', '.join(new)}")
        if removed:
            result.sweep = run_sweep(self.registry.sweep_orphans, removed, schedule=schedule)

        self.current_tags = tags
        self.original_tags = list(tags)
        self._clamp_cursor()
        logger.info("tags on %s: +%s -%s", self.path, added, removed)
        result.log_to_journal(self.store.root, "tag-edit", {"path": self.path, "added": added, "removed": removed})
        return result
