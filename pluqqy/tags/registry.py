"""Persistent tag registry (``tags.yaml``).

The registry is a YAML mapping of normalised tag name to
``{display_name, color}``. It is loaded on first use and written back after
every mutation. A single lock guards the in-memory mapping so background
sweeps and foreground edits do not interleave their read-modify-write cycles.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import yaml

from ..errors import MalformedError, StoreIOError
from ..models import Tag
from ..store.paths import TAGS_FILE
from ..store.store import Store, dump_yaml, write_atomic
from .names import normalize_tag_list, normalize_tag_name, tag_color
from .usage import live_tag_names

logger = logging.getLogger(__name__)


@dataclass
class TagReloadReport:
    """Result of rebuilding the registry from files on disk."""

    components_scanned: int = 0
    pipelines_scanned: int = 0
    new_tags: list[str] = field(default_factory=list)
    failed_files: dict[str, str] = field(default_factory=dict)  # path -> error message


def _tag_from_entry(name: str, entry: object) -> Tag:
    normalized = normalize_tag_name(name)
    if not isinstance(entry, dict):
        entry = {}
    return Tag(
        name=normalized,
        display_name=str(entry.get("display_name") or name),
        color=str(entry.get("color") or tag_color(normalized)),
    )


def parse_registry(data: object, path: str = TAGS_FILE) -> dict[str, Tag]:
    """Parse registry YAML.

    Older registries stored ``tags: [{name, color}, ...]``; both shapes load.
    """
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise MalformedError(f"tag registry '{path}' must be a YAML mapping", path)

    tags: dict[str, Tag] = {}
    legacy = data.get("tags")
    if isinstance(legacy, list) and all(isinstance(item, dict) for item in legacy):
        for item in legacy:
            if not item.get("name"):
                continue
            tag = _tag_from_entry(str(item["name"]), {"color": item.get("color")})
            tags.setdefault(tag.name, tag)
        return tags

    for name, entry in data.items():
        tag = _tag_from_entry(str(name), entry)
        tags.setdefault(tag.name, tag)
    return tags


class TagRegistry:
    """Canonical set of known tags, backed by ``<root>/tags.yaml``."""

    def __init__(self, store: Store):
        self.store = store
        self.path: Path = store.root / TAGS_FILE
        self._lock = threading.Lock()
        self._tags: dict[str, Tag] | None = None

    # Callers must hold self._lock for the helpers below

    def _loaded(self) -> dict[str, Tag]:
        if self._tags is None:
            self._tags = self._read()
        return self._tags

    def _read(self) -> dict[str, Tag]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StoreIOError(f"failed to read tag registry '{self.path}': {e}", str(self.path)) from e
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise MalformedError(f"invalid YAML in tag registry '{self.path}': {e}", str(self.path)) from e
        tags = parse_registry(data, str(self.path))
        logger.debug("loaded %d tag(s) from %s", len(tags), self.path)
        return tags

    def _save(self) -> None:
        tags = self._loaded()
        data = {tag.name: {"display_name": tag.display_name, "color": tag.color} for tag in tags.values()}
        write_atomic(self.path, dump_yaml(data) if data else "{}\n")

    def _add(self, name: str) -> tuple[Tag, bool]:
        normalized = normalize_tag_name(name)
        tags = self._loaded()
        existing = tags.get(normalized)
        if existing is not None:
            return existing, False
        tag = Tag(name=normalized, display_name=str(name).strip(), color=tag_color(normalized))
        tags[normalized] = tag
        return tag, True

    # Public API

    def get_or_create_tag(self, name: str) -> Tag:
        """Return the registry record for ``name``, creating it if needed.

        Raises:
            InvalidNameError: If the name is empty.
        """
        with self._lock:
            tag, created = self._add(name)
            if created:
                self._save()
                logger.info("registered tag %s", tag.name)
            return tag

    def register_tags(self, names: Iterable[str]) -> list[str]:
        """Ensure every name is registered; returns the newly created names."""
        with self._lock:
            created = []
            for name in normalize_tag_list(list(names)):
                tag, is_new = self._add(name)
                if is_new:
                    created.append(tag.name)
            if created:
                self._save()
                logger.info("registered tag(s): %s", ", ".join(created))
            return created

    def get_tag(self, name: str) -> Tag | None:
        normalized = normalize_tag_name(name)
        with self._lock:
            return self._loaded().get(normalized)

    def contains(self, name: str) -> bool:
        return self.get_tag(name) is not None

    def remove_tag(self, name: str) -> bool:
        """Remove a tag from the registry only. Files keep their tags."""
        normalized = normalize_tag_name(name)
        with self._lock:
            tags = self._loaded()
            if normalized not in tags:
                return False
            del tags[normalized]
            self._save()
        logger.info("removed tag %s from registry", normalized)
        return True

    def list_tags(self) -> list[Tag]:
        with self._lock:
            return list(self._loaded().values())

    def invalidate(self) -> None:
        """Drop the in-memory copy; the next access re-reads ``tags.yaml``."""
        with self._lock:
            self._tags = None

    def reload(self) -> TagReloadReport:
        """Register every tag found on active components and pipelines.

        Existing records (and their colours) are kept.
        """
        report = TagReloadReport()
        found: list[str] = []
        for entry in self.store.iter_components():
            report.components_scanned += 1
            if entry.error is not None:
                report.failed_files[entry.path] = str(entry.error)
                continue
            found.extend(entry.item.tags)
        for entry in self.store.iter_pipelines():
            report.pipelines_scanned += 1
            if entry.error is not None:
                report.failed_files[entry.path] = str(entry.error)
                continue
            found.extend(entry.item.tags)

        with self._lock:
            self._tags = self._read()
            for name in normalize_tag_list(found):
                tag, is_new = self._add(name)
                if is_new:
                    report.new_tags.append(tag.name)
            if report.new_tags:
                self._save()

        logger.info(
            "tag reload scanned %d component(s) and %d pipeline(s), %d new tag(s)",
            report.components_scanned,
            report.pipelines_scanned,
            len(report.new_tags),
        )
        return report

    def sweep_orphans(self, candidates: Iterable[str]) -> list[str]:
        """Remove candidates no longer used by any active file.

        Returns the names removed. Running it again with the same candidates
        removes nothing further.
        """
        wanted = normalize_tag_list(list(candidates))
        if not wanted:
            return []

        removed = []
        # register_tags must not interleave between the scan and the removal
        with self._lock:
            in_use = live_tag_names(self.store)
            tags = self._loaded()
            for name in wanted:
                if name in tags and name not in in_use:
                    del tags[name]
                    removed.append(name)
            if removed:
                self._save()
        if removed:
            logger.info("orphan sweep removed tag(s): %s", ", ".join(removed))
        return removed
