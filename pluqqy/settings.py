"""Load and save ``settings.yaml``.

Missing values are filled from defaults. Sections other than ``output``
(``ui``, ``editor``, ...) are carried through untouched on save.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from .errors import MalformedError, StoreIOError
from .models import Section, Settings, default_sections, normalize_kind
from .store.paths import SETTINGS_FILE
from .store.store import dump_yaml, write_atomic

logger = logging.getLogger(__name__)


def settings_path(root: Path) -> Path:
    return Path(root) / SETTINGS_FILE


def _parse_sections(raw: Any, path: str) -> list[Section]:
    if raw is None:
        return default_sections()
    if not isinstance(raw, list):
        raise MalformedError(f"{path}: output.formatting.sections must be a list", path)

    sections = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise MalformedError(f"{path}: section #{index + 1} must be a mapping with type and heading", path)
        kind = normalize_kind(entry.get("type") or entry.get("kind") or "")
        heading = entry.get("heading")
        sections.append(Section(kind=kind, heading=str(heading) if heading is not None else ""))
    return sections


def settings_from_dict(data: dict[str, Any], path: str = SETTINGS_FILE) -> Settings:
    """Build Settings from a parsed YAML mapping, merging defaults.

    Raises:
        MalformedError: If a known key has the wrong shape.
    """
    if not isinstance(data, dict):
        raise MalformedError(f"{path}: settings must be a YAML mapping", path)

    output = data.get("output") or {}
    if not isinstance(output, dict):
        raise MalformedError(f"{path}: 'output' must be a mapping", path)
    formatting = output.get("formatting") or {}
    if not isinstance(formatting, dict):
        raise MalformedError(f"{path}: 'output.formatting' must be a mapping", path)

    defaults = Settings()
    show_headings = formatting.get("show_headings", defaults.show_headings)
    return Settings(
        export_path=str(output.get("export_path") or defaults.export_path),
        default_filename=str(output.get("default_filename") or defaults.default_filename),
        show_headings=bool(show_headings),
        sections=_parse_sections(formatting.get("sections"), path),
        extra={k: v for k, v in data.items() if k != "output"},
    )


def settings_to_dict(settings: Settings) -> dict[str, Any]:
    data: dict[str, Any] = {
        "output": {
            "export_path": settings.export_path,
            "default_filename": settings.default_filename,
            "formatting": {
                "show_headings": settings.show_headings,
                "sections": [{"type": s.kind, "heading": s.heading} for s in settings.sections],
            },
        }
    }
    data.update(settings.extra)
    return data


def load_settings(root: Path) -> Settings:
    """Read ``<root>/settings.yaml``; a missing file yields the defaults."""
    path = settings_path(root)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("no settings file at %s, using defaults", path)
        return Settings()
    except OSError as e:
        raise StoreIOError(f"failed to read settings '{path}': {e}", str(path)) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise MalformedError(f"invalid YAML in '{path}': {e}", str(path)) from e
    return settings_from_dict(data or {}, str(path))


def save_settings(root: Path, settings: Settings) -> Path:
    path = settings_path(root)
    write_atomic(path, dump_yaml(settings_to_dict(settings)))
    logger.info("saved settings to %s", path)
    return path
