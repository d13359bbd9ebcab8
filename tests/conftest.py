"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from pluqqy.models import ComponentRef, Pipeline
from pluqqy.store import Store
from pluqqy.store.paths import component_path, kind_from_path, pipeline_path
from pluqqy.tags import TagRegistry


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """An initialised, empty .pluqqy repository."""
    repo = tmp_path / ".pluqqy"
    Store(repo).init()
    return repo


@pytest.fixture
def store(root: Path) -> Store:
    return Store(root)


@pytest.fixture
def registry(store: Store) -> TagRegistry:
    return TagRegistry(store)


@pytest.fixture
def make_component(store: Store):
    """Write a component and return its repository-relative path."""

    def _make(
        kind: str,
        slug: str,
        body: str,
        name: str | None = None,
        tags: list[str] | None = None,
        archived: bool = False,
        extra: dict | None = None,
    ) -> str:
        path = component_path(kind, slug, archived)
        store.write_component(path, body, name=name, tags=tags, extra=extra)
        return path

    return _make


@pytest.fixture
def make_pipeline(store: Store):
    """Write a pipeline referencing components (paths or ComponentRefs)."""

    def _make(
        slug: str,
        refs: list,
        name: str | None = None,
        tags: list[str] | None = None,
        archived: bool = False,
        output_path: str = "",
    ) -> str:
        components = []
        for index, ref in enumerate(refs, start=1):
            if isinstance(ref, ComponentRef):
                components.append(ref)
            else:
                components.append(ComponentRef(type=kind_from_path(ref), path=f"../{ref}", order=index))
        path = pipeline_path(slug, archived)
        store.write_pipeline(
            Pipeline(
                name=name or slug,
                path=path,
                components=components,
                tags=list(tags or []),
                output_path=output_path,
            )
        )
        return path

    return _make
