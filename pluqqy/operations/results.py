"""
Result types for operation services.

Each operation returns a result carrying human-readable ``messages`` that
describe its side effects, plus the file changes recorded in the journal.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from ..audit_log import FileChanges, log_operation
from ..errors import PluqqyError

# Called as schedule(fn, *args) and returns a Future, like Executor.submit
Scheduler = Callable[..., Future]


@dataclass
class OperationResult:
    """Base class for operation results."""

    messages: list[str] = field(default_factory=list)
    erased: FileChanges = field(default_factory=FileChanges)
    created: FileChanges = field(default_factory=FileChanges)

    def log_to_journal(self, root: Path, operation: str, metadata: dict[str, Any] | None = None) -> None:
        log_operation(root, operation, self.erased, self.created, metadata or {})


@dataclass
class CloneResult(OperationResult):
    path: str = ""
    name: str = ""


@dataclass
class RenameResult(OperationResult):
    old_path: str = ""
    new_path: str = ""
    updated_pipelines: list[str] = field(default_factory=list)


@dataclass
class ArchiveResult(OperationResult):
    old_path: str = ""
    new_path: str = ""
    sweep: Future | None = field(default=None, repr=False)  # orphan sweep, resolves to removed tag names


@dataclass
class DeleteResult(OperationResult):
    path: str = ""
    updated_pipelines: list[str] = field(default_factory=list)
    sweep: Future | None = field(default=None, repr=False)


@dataclass
class TagEditResult(OperationResult):
    path: str = ""
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    sweep: Future | None = field(default=None, repr=False)


@dataclass
class TagDeletionReport(OperationResult):
    tag: str = ""
    files_scanned: int = 0
    files_updated: int = 0
    updated_paths: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)  # path -> error message
    interrupted: bool = False


def run_sweep(fn: Callable[..., Any], *args: Any, schedule: Scheduler | None = None) -> Future:
    """Run ``fn`` on the scheduler, or inline when there is none.

    Either way the outcome is delivered through a Future.
    """
    if schedule is not None:
        return schedule(fn, *args)
    future: Future = Future()
    try:
        future.set_result(fn(*args))
    except PluqqyError as e:
        future.set_exception(e)
    return future
