"""Filesystem-backed store for components and pipelines.

The Store is the only object that touches paths under the repository root.
Every write goes through :func:`write_atomic` (temp file in the target
directory, fsync, ``os.replace``), so an observer of a completed file always
sees its full contents.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import yaml

from ..errors import CollisionError, MalformedError, NotFoundError, PluqqyError, StoreIOError
from ..models import COMPONENT_KINDS, Component, Pipeline, normalize_kind
from .frontmatter import parse_component_text, render_component_text
from .paths import (
    ARCHIVE_DIR,
    COMPONENT_SUFFIX,
    COMPONENTS_DIR,
    MAX_FILE_SIZE,
    PIPELINE_SUFFIX,
    PIPELINES_DIR,
    component_path,
    components_dir,
    display_name_from_filename,
    is_archived_path,
    is_component_path,
    is_pipeline_path,
    kind_from_path,
    normalize_relpath,
    pipeline_path,
    pipelines_dir,
    to_active_path,
    to_archive_path,
)

logger = logging.getLogger(__name__)


def write_atomic(target: Path, data: str | bytes) -> int:
    """Write ``data`` to ``target`` via temp-file-then-rename.

    Parent directories are created. Returns the number of bytes written.

    Raises:
        StoreIOError: If any step fails; the target is left untouched.
    """
    payload = data.encode("utf-8") if isinstance(data, str) else data
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=target.parent)
    except OSError as e:
        raise StoreIOError(f"failed to prepare write of '{target}': {e}", str(target)) from e

    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, target)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise StoreIOError(f"failed to write '{target}': {e}", str(target)) from e

    return len(payload)


def dump_yaml(data: object) -> str:
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False, allow_unicode=True)


@dataclass
class ScanEntry:
    """One file visited by a store sweep; exactly one of item/error is set."""

    path: str
    item: Component | Pipeline | None = None
    error: PluqqyError | None = None


class Store:
    """Read, write, list, archive and delete components and pipelines."""

    def __init__(self, root: Path):
        """
        Args:
            root: Repository root (the ``.pluqqy`` directory)
        """
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"Store(root={str(self.root)!r})"

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def absolute(self, path: str) -> Path:
        """Absolute filesystem path for a repository-relative path."""
        return self.root / normalize_relpath(path)

    def exists(self, path: str) -> bool:
        return self.absolute(path).is_file()

    def file_size(self, path: str) -> int:
        """Size in bytes, or 0 when the file is missing."""
        try:
            return self.absolute(path).stat().st_size
        except OSError:
            return 0

    def component_path(self, kind: str, slug: str, archived: bool = False) -> str:
        return component_path(kind, slug, archived)

    def pipeline_path(self, slug: str, archived: bool = False) -> str:
        return pipeline_path(slug, archived)

    def init(self) -> list[Path]:
        """Create the repository layout. Idempotent; returns directories created."""
        created = []
        dirs = [Path(PIPELINES_DIR), Path(ARCHIVE_DIR) / PIPELINES_DIR]
        for kind in COMPONENT_KINDS:
            dirs.append(Path(COMPONENTS_DIR) / kind)
            dirs.append(Path(ARCHIVE_DIR) / COMPONENTS_DIR / kind)
        for rel in dirs:
            target = self.root / rel
            if not target.is_dir():
                try:
                    target.mkdir(parents=True, exist_ok=True)
                except OSError as e:
                    raise StoreIOError(f"failed to create directory '{target}': {e}", str(target)) from e
                created.append(target)
        if created:
            logger.info("initialised repository layout under %s", self.root)
        return created

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def _list(self, rel_dir: str, suffix: str) -> list[str]:
        directory = self.root / rel_dir
        try:
            entries = sorted(p.name for p in directory.iterdir() if p.is_file() and p.suffix == suffix)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StoreIOError(f"failed to list '{rel_dir}': {e}", rel_dir) from e
        return [name for name in entries if not name.startswith(".")]

    def list_components(self, kind: str) -> list[str]:
        return self._list(components_dir(kind), COMPONENT_SUFFIX)

    def list_archived_components(self, kind: str) -> list[str]:
        return self._list(components_dir(kind, archived=True), COMPONENT_SUFFIX)

    def list_pipelines(self) -> list[str]:
        return self._list(pipelines_dir(), PIPELINE_SUFFIX)

    def list_archived_pipelines(self) -> list[str]:
        return self._list(pipelines_dir(archived=True), PIPELINE_SUFFIX)

    def component_paths(self, archived: bool = False, kind: str | None = None) -> list[str]:
        """Repository-relative paths of every component, kinds in canonical order."""
        kinds = [normalize_kind(kind)] if kind else list(COMPONENT_KINDS)
        paths = []
        for k in kinds:
            names = self.list_archived_components(k) if archived else self.list_components(k)
            paths.extend(f"{components_dir(k, archived)}/{name}" for name in names)
        return paths

    def pipeline_paths(self, archived: bool = False) -> list[str]:
        names = self.list_archived_pipelines() if archived else self.list_pipelines()
        return [f"{pipelines_dir(archived)}/{name}" for name in names]

    def iter_components(self, archived: bool = False) -> Iterator[ScanEntry]:
        for path in self.component_paths(archived):
            try:
                yield ScanEntry(path, item=self.read_component(path))
            except PluqqyError as e:
                yield ScanEntry(path, error=e)

    def iter_pipelines(self, archived: bool = False) -> Iterator[ScanEntry]:
        for path in self.pipeline_paths(archived):
            try:
                yield ScanEntry(path, item=self.read_pipeline(path))
            except PluqqyError as e:
                yield ScanEntry(path, error=e)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def read_text(self, path: str) -> str:
        """Read a UTF-8 file under the root.

        Raises:
            NotFoundError, MalformedError, StoreIOError
        """
        target = self.absolute(path)
        try:
            size = target.stat().st_size
            if not target.is_file():
                raise NotFoundError(f"'{path}' is not a file", path)
            if size > MAX_FILE_SIZE:
                raise MalformedError(f"'{path}' is {size} bytes, larger than the {MAX_FILE_SIZE} byte limit", path)
            raw = target.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"'{path}' not found: file does not exist", path) from e
        except OSError as e:
            raise StoreIOError(f"failed to read '{path}': {e}", path) from e

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedError(f"'{path}' is not valid UTF-8 text", path) from e

    def _mtime(self, path: str) -> float | None:
        try:
            return self.absolute(path).stat().st_mtime
        except OSError:
            return None

    def read_component(self, path: str) -> Component:
        """Load a component file. Archived components use ``archive/...`` paths."""
        path = normalize_relpath(path)
        kind = kind_from_path(path)
        text = self.read_text(path)
        parsed = parse_component_text(text, path)
        return Component(
            path=path,
            kind=kind,
            name=parsed.name or display_name_from_filename(path),
            body=parsed.body,
            tags=parsed.tags,
            archived=is_archived_path(path),
            extra=parsed.extra,
            modified=self._mtime(path),
        )

    def read_pipeline(self, path: str) -> Pipeline:
        path = normalize_relpath(path)
        if not is_pipeline_path(path):
            raise MalformedError(f"'{path}' is not a pipeline path (expected pipelines/<name>.yaml)", path)
        text = self.read_text(path)
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise MalformedError(f"failed to parse YAML in pipeline '{path}': {e}", path) from e
        pipeline = Pipeline.from_dict(data or {}, path, archived=is_archived_path(path))
        pipeline.modified = self._mtime(path)
        return pipeline

    def read_item(self, path: str) -> Component | Pipeline:
        """Read a component or pipeline depending on where ``path`` lives."""
        if is_pipeline_path(path):
            return self.read_pipeline(path)
        return self.read_component(path)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write_text(self, target: Path, text: str) -> int:
        """Atomically write arbitrary text to an absolute path (outputs, registry)."""
        return write_atomic(Path(target), text)

    def write_component(
        self,
        path: str,
        body: str,
        name: str | None = None,
        tags: list[str] | None = None,
        extra: dict | None = None,
    ) -> Component:
        """Write a component file atomically and return the stored value.

        Raises:
            MalformedError: If the path is not a component path or the body is binary.
            StoreIOError: If the write fails.
        """
        path = normalize_relpath(path)
        kind = kind_from_path(path)
        if "\x00" in body:
            raise MalformedError(f"refusing to write binary content to '{path}'", path)
        text = render_component_text(body, name=name, tags=tags, extra=extra)
        if len(text.encode("utf-8")) > MAX_FILE_SIZE:
            raise MalformedError(f"content for '{path}' exceeds the {MAX_FILE_SIZE} byte limit", path)
        write_atomic(self.absolute(path), text)
        logger.debug("wrote component %s", path)
        return Component(
            path=path,
            kind=kind,
            name=name or display_name_from_filename(path),
            body=body,
            tags=list(tags or []),
            archived=is_archived_path(path),
            extra=dict(extra or {}),
            modified=self._mtime(path),
        )

    def update_component_tags(self, path: str, tags: list[str]) -> Component:
        """Replace a component's tags; body and other frontmatter keys are preserved."""
        path = normalize_relpath(path)
        parsed = parse_component_text(self.read_text(path), path)
        return self.write_component(path, parsed.body, name=parsed.name, tags=tags, extra=parsed.extra)

    def write_pipeline(self, pipeline: Pipeline) -> Pipeline:
        path = normalize_relpath(pipeline.path)
        if not is_pipeline_path(path):
            raise MalformedError(f"'{path}' is not a pipeline path (expected pipelines/<name>.yaml)", path)
        pipeline.path = path
        pipeline.archived = is_archived_path(path)
        write_atomic(self.absolute(path), dump_yaml(pipeline.to_dict()))
        pipeline.modified = self._mtime(path)
        logger.debug("wrote pipeline %s", path)
        return pipeline

    def update_pipeline_tags(self, path: str, tags: list[str]) -> Pipeline:
        pipeline = self.read_pipeline(path)
        pipeline.tags = list(tags)
        return self.write_pipeline(pipeline)

    def update_tags(self, path: str, tags: list[str]) -> Component | Pipeline:
        if is_pipeline_path(path):
            return self.update_pipeline_tags(path, tags)
        return self.update_component_tags(path, tags)

    # ------------------------------------------------------------------
    # Archive / unarchive / delete
    # ------------------------------------------------------------------

    def _move(self, source: str, target: str) -> str:
        src = self.absolute(source)
        dst = self.absolute(target)
        if not src.is_file():
            raise NotFoundError(f"'{source}' not found", source)
        if dst.exists():
            raise CollisionError(f"'{target}' already exists", target)
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            os.replace(src, dst)
        except OSError as e:
            raise StoreIOError(f"failed to move '{source}' to '{target}': {e}", source) from e
        logger.info("moved %s -> %s", source, target)
        return target

    def archive(self, path: str) -> str:
        """Move an active component or pipeline into the archive tree; returns the new path."""
        path = normalize_relpath(path)
        if is_archived_path(path):
            raise MalformedError(f"'{path}' is already archived", path)
        if not (is_component_path(path) or is_pipeline_path(path)):
            raise MalformedError(f"'{path}' is neither a component nor a pipeline", path)
        return self._move(path, to_archive_path(path))

    def unarchive(self, path: str) -> str:
        """Move an archived item back into the active tree; returns the new path."""
        path = normalize_relpath(path)
        if not is_archived_path(path):
            path = to_archive_path(path)
        return self._move(path, to_active_path(path))

    def archive_component(self, path: str) -> str:
        kind_from_path(path)
        return self.archive(path)

    def unarchive_component(self, path: str) -> str:
        kind_from_path(path)
        return self.unarchive(path)

    def archive_pipeline(self, path: str) -> str:
        if not is_pipeline_path(path):
            raise MalformedError(f"'{path}' is not a pipeline path", path)
        return self.archive(path)

    def unarchive_pipeline(self, path: str) -> str:
        if not is_pipeline_path(path):
            raise MalformedError(f"'{path}' is not a pipeline path", path)
        return self.unarchive(path)

    def delete(self, path: str) -> int:
        """Remove a component or pipeline file (active or archived). Returns bytes erased."""
        path = normalize_relpath(path)
        target = self.absolute(path)
        try:
            size = target.stat().st_size
            target.unlink()
        except FileNotFoundError as e:
            raise NotFoundError(f"'{path}' not found", path) from e
        except OSError as e:
            raise StoreIOError(f"failed to delete '{path}': {e}", path) from e
        logger.info("deleted %s", path)
        return size

    def delete_component(self, path: str) -> int:
        kind_from_path(path)
        return self.delete(path)

    def delete_pipeline(self, path: str) -> int:
        if not is_pipeline_path(path):
            raise MalformedError(f"'{path}' is not a pipeline path", path)
        return self.delete(path)
