"""Repository layout, slugs and path discipline."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from ..errors import InvalidNameError, MalformedError
from ..models import COMPONENT_KINDS, normalize_kind

PLUQQY_DIR = ".pluqqy"
COMPONENTS_DIR = "components"
PIPELINES_DIR = "pipelines"
ARCHIVE_DIR = "archive"
TAGS_FILE = "tags.yaml"
SETTINGS_FILE = "settings.yaml"

COMPONENT_SUFFIX = ".md"
PIPELINE_SUFFIX = ".yaml"

# Component and pipeline files larger than this are refused (10MB)
MAX_FILE_SIZE = 10 * 1024 * 1024

_NON_SLUG = re.compile(r"[^a-z0-9]+")
_HYPHENS = re.compile(r"-+")


def slugify(name: str) -> str:
    """Convert a display name to a filesystem-safe slug.

    "Hello, World!" -> "hello-world"

    Raises:
        InvalidNameError: If nothing usable remains.
    """
    slug = _NON_SLUG.sub("-", str(name).lower())
    slug = _HYPHENS.sub("-", slug).strip("-")
    if not slug:
        raise InvalidNameError(f"name '{name}' does not contain any letters or digits")
    return slug


def display_name_from_filename(filename: str) -> str:
    """"auth-context.md" -> "Auth Context"."""
    stem = PurePosixPath(filename).stem
    return " ".join(part[:1].upper() + part[1:] for part in stem.split("-") if part)


def normalize_relpath(path: str) -> str:
    """Normalise a repository-relative path to POSIX form.

    Raises:
        MalformedError: On absolute paths or directory traversal.
    """
    raw = str(path).replace("\\", "/").strip()
    if not raw:
        raise MalformedError("empty path")
    pure = PurePosixPath(raw)
    if pure.is_absolute() or ".." in pure.parts:
        raise MalformedError(f"invalid path '{path}': must stay inside the repository", str(path))
    return str(pure)


def is_archived_path(path: str) -> bool:
    parts = PurePosixPath(path).parts
    return bool(parts) and parts[0] == ARCHIVE_DIR


def to_archive_path(path: str) -> str:
    """components/rules/a.md -> archive/components/rules/a.md"""
    path = normalize_relpath(path)
    if is_archived_path(path):
        return path
    return f"{ARCHIVE_DIR}/{path}"


def to_active_path(path: str) -> str:
    """archive/components/rules/a.md -> components/rules/a.md"""
    path = normalize_relpath(path)
    if not is_archived_path(path):
        return path
    return str(PurePosixPath(*PurePosixPath(path).parts[1:]))


def component_path(kind: str, slug: str, archived: bool = False) -> str:
    path = f"{COMPONENTS_DIR}/{normalize_kind(kind)}/{slug}{COMPONENT_SUFFIX}"
    return to_archive_path(path) if archived else path


def pipeline_path(slug: str, archived: bool = False) -> str:
    path = f"{PIPELINES_DIR}/{slug}{PIPELINE_SUFFIX}"
    return to_archive_path(path) if archived else path


def components_dir(kind: str, archived: bool = False) -> str:
    path = f"{COMPONENTS_DIR}/{normalize_kind(kind)}"
    return to_archive_path(path) if archived else path


def pipelines_dir(archived: bool = False) -> str:
    return f"{ARCHIVE_DIR}/{PIPELINES_DIR}" if archived else PIPELINES_DIR


def is_pipeline_path(path: str) -> bool:
    return PurePosixPath(to_active_path(path)).parts[:1] == (PIPELINES_DIR,)


def is_component_path(path: str) -> bool:
    return PurePosixPath(to_active_path(path)).parts[:1] == (COMPONENTS_DIR,)


def kind_from_path(path: str) -> str:
    """Infer the component kind from its directory.

    Raises:
        MalformedError: If the path is not inside a component kind directory.
    """
    parts = PurePosixPath(to_active_path(path)).parts
    if len(parts) == 3 and parts[0] == COMPONENTS_DIR and parts[1] in COMPONENT_KINDS:
        return parts[1]
    raise MalformedError(f"'{path}' is not a component path (expected components/<kind>/<name>.md)", str(path))


def sibling_path(path: str, slug: str) -> str:
    """Same directory and suffix as ``path`` with a new slug."""
    pure = PurePosixPath(normalize_relpath(path))
    return str(pure.with_name(slug + pure.suffix))
