"""Searchable items built from the store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable

from ..composer import compose_pipeline, estimate_tokens
from ..errors import PluqqyError
from ..models import KIND_LABELS, Pipeline, Settings
from ..store.store import Store
from ..tags.names import normalize_tag_list

logger = logging.getLogger(__name__)


@dataclass
class SearchItem:
    """One component or pipeline as seen by the search engine."""

    name: str
    path: str
    kind: str  # context, prompt, rules or pipeline
    tags: list[str] = field(default_factory=list)
    token_count: int = 0
    archived: bool = False
    modified: float | None = None
    body: str | None = field(default=None, repr=False)
    loader: Callable[[], str] | None = field(default=None, repr=False, compare=False)

    @property
    def is_pipeline(self) -> bool:
        return self.kind == "pipeline"

    def load_body(self) -> str:
        """Body text; read through ``loader`` when not already known."""
        if self.body is not None:
            return self.body
        if self.loader is None:
            return ""
        return self.loader()

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "kind": self.kind,
            "tags": list(self.tags),
            "token_count": self.token_count,
            "archived": self.archived,
        }


def _pipeline_loader(store: Store, pipeline: Pipeline, settings: Settings) -> Callable[[], str]:
    def load() -> str:
        # Search never fails on a broken pipeline; compose it as if archived
        soft = replace(pipeline, archived=True)
        try:
            return compose_pipeline(store, soft, settings).text
        except PluqqyError as e:
            logger.warning("could not compose %s for search: %s", pipeline.path, e)
            return ""

    return load


def build_items(store: Store, settings: Settings | None = None) -> list[SearchItem]:
    """Collect active and archived components and pipelines.

    Component bodies are captured while reading; pipeline text is composed
    only when a query needs it. Unreadable files are logged and skipped.
    """
    settings = settings or Settings()
    items: list[SearchItem] = []
    tokens_by_path: dict[str, int] = {}

    for archived in (False, True):
        for entry in store.iter_components(archived=archived):
            if entry.error is not None:
                logger.warning("skipping unreadable component %s: %s", entry.path, entry.error)
                continue
            component = entry.item
            tokens = estimate_tokens(component.body)
            tokens_by_path[component.path] = tokens
            items.append(
                SearchItem(
                    name=component.name,
                    path=component.path,
                    kind=KIND_LABELS[component.kind],
                    tags=normalize_tag_list(component.tags),
                    token_count=tokens,
                    archived=component.archived,
                    modified=component.modified,
                    body=component.body,
                )
            )

    for archived in (False, True):
        for entry in store.iter_pipelines(archived=archived):
            if entry.error is not None:
                logger.warning("skipping unreadable pipeline %s: %s", entry.path, entry.error)
                continue
            pipeline = entry.item
            items.append(
                SearchItem(
                    name=pipeline.name,
                    path=pipeline.path,
                    kind="pipeline",
                    tags=normalize_tag_list(pipeline.tags),
                    token_count=sum(tokens_by_path.get(ref.target, 0) for ref in pipeline.components),
                    archived=pipeline.archived,
                    modified=pipeline.modified,
                    loader=_pipeline_loader(store, pipeline, settings),
                )
            )

    return items
