"""Tag usage counting over the live (non-archived) store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..store.store import Store
from .names import normalize_tag_list, normalize_tag_name

logger = logging.getLogger(__name__)


@dataclass
class TagUsage:
    """Where a tag is used."""

    component_count: int = 0
    pipeline_count: int = 0
    referencing_paths: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.component_count + self.pipeline_count


def _live_items(store: Store):
    """(path, is_pipeline, normalised tags) for every readable active file."""
    for entry in store.iter_components():
        if entry.error is not None:
            logger.warning("skipping unreadable component %s: %s", entry.path, entry.error)
            continue
        yield entry.path, False, normalize_tag_list(entry.item.tags)
    for entry in store.iter_pipelines():
        if entry.error is not None:
            logger.warning("skipping unreadable pipeline %s: %s", entry.path, entry.error)
            continue
        yield entry.path, True, normalize_tag_list(entry.item.tags)


def count_tag_usage(store: Store, name: str) -> TagUsage:
    """Full scan of active components and pipelines for one tag."""
    tag = normalize_tag_name(name)
    usage = TagUsage()
    for path, is_pipeline, tags in _live_items(store):
        if tag not in tags:
            continue
        if is_pipeline:
            usage.pipeline_count += 1
        else:
            usage.component_count += 1
        usage.referencing_paths.append(path)
    return usage


def all_tag_usage(store: Store) -> dict[str, TagUsage]:
    """Usage of every tag found on active files, in first-seen order."""
    usages: dict[str, TagUsage] = {}
    for path, is_pipeline, tags in _live_items(store):
        for tag in tags:
            usage = usages.setdefault(tag, TagUsage())
            if is_pipeline:
                usage.pipeline_count += 1
            else:
                usage.component_count += 1
            usage.referencing_paths.append(path)
    return usages


def live_tag_names(store: Store) -> set[str]:
    names: set[str] = set()
    for _path, _is_pipeline, tags in _live_items(store):
        names.update(tags)
    return names

