"""
Operation journal for mutating commands.

Every clone, rename, archive, restore, delete and tag change appends one JSON
object per line to ``<root>/operations.log``. The journal records what each
operation wrote and what it erased, so a user can see after the fact which
files a sweep touched.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

OPERATIONS_LOG = "operations.log"


@dataclass
class FileChanges:
    """Files written or erased by one operation."""

    files: int = 0
    bytes: int = 0
    paths: list[str] = field(default_factory=list)

    def add(self, path: str, size: int = 0) -> None:
        self.files += 1
        self.bytes += size
        self.paths.append(path)

    def __bool__(self) -> bool:
        return bool(self.files)


@dataclass
class OperationEntry:
    """A single journal entry."""

    timestamp: str
    operation: str
    erased: FileChanges
    created: FileChanges
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "operation": self.operation,
            "erased": asdict(self.erased),
            "created": asdict(self.created),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OperationEntry":
        return cls(
            timestamp=data["timestamp"],
            operation=data["operation"],
            erased=FileChanges(**data.get("erased", {})),
            created=FileChanges(**data.get("created", {})),
            metadata=data.get("metadata", {}),
        )


def get_log_path(root: Path) -> Path:
    return Path(root) / OPERATIONS_LOG


def log_operation(
    root: Path,
    operation: str,
    erased: FileChanges | None = None,
    created: FileChanges | None = None,
    metadata: dict[str, Any] | None = None,
) -> OperationEntry:
    """
    Append an operation to the journal.

    Args:
        root: Repository root
        operation: Name of the operation (e.g., "rename", "tag-delete")
        erased: Files removed or overwritten
        created: Files written
        metadata: Additional context (source paths, tag names, ...)

    Returns:
        The journal entry. A journal that cannot be written is logged as a
        warning; the operation itself has already completed.
    """
    entry = OperationEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        operation=operation,
        erased=erased or FileChanges(),
        created=created or FileChanges(),
        metadata=metadata or {},
    )

    log_path = get_log_path(root)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict(), default=str) + "\n")
    except OSError as e:
        logger.warning("could not append to operation journal %s: %s", log_path, e)

    return entry


def read_operations(root: Path, last_n: int | None = None) -> list[OperationEntry]:
    """
    Read journal entries, oldest first.

    Args:
        root: Repository root
        last_n: If specified, return only the last N entries
    """
    log_path = get_log_path(root)
    if not log_path.exists():
        return []

    entries = []
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(OperationEntry.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError):
                logger.debug("skipping malformed journal line in %s", log_path)

    if last_n is not None:
        return entries[-last_n:] if last_n > 0 else []
    return entries


def format_entry(entry: OperationEntry) -> str:
    """Format a journal entry for human-readable display."""
    lines = [f"[{entry.timestamp}] {entry.operation}"]

    if entry.erased:
        lines.append(f"  Erased: {entry.erased.files} files ({entry.erased.bytes} bytes)")
        for path in entry.erased.paths:
            lines.append(f"    - {path}")

    if entry.created:
        lines.append(f"  Created: {entry.created.files} files ({entry.created.bytes} bytes)")
        for path in entry.created.paths:
            lines.append(f"    + {path}")

    for key, value in entry.metadata.items():
        lines.append(f"  {key}: {value}")

    return "\n".join(lines)
