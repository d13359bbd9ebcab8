"""On-disk store: layout, frontmatter, file I/O and reference scans."""

from .paths import (
    PLUQQY_DIR,
    component_path,
    display_name_from_filename,
    normalize_relpath,
    pipeline_path,
    slugify,
)
from .store import ScanEntry, Store, write_atomic

__all__ = [
    "PLUQQY_DIR",
    "ScanEntry",
    "Store",
    "component_path",
    "display_name_from_filename",
    "normalize_relpath",
    "pipeline_path",
    "slugify",
    "write_atomic",
]
