"""Error types raised by the pluqqy core.

Every error renders as a human-readable message naming the offending path or
name, so callers can surface ``str(exc)`` verbatim.
"""

from __future__ import annotations


class PluqqyError(Exception):
    """Base class for all pluqqy errors."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        return self.message


class NotFoundError(PluqqyError, LookupError):
    """A path does not resolve to a file."""


class MalformedError(PluqqyError, ValueError):
    """Unparseable frontmatter, invalid YAML, unknown kind, or illegal query."""


class InvalidNameError(PluqqyError, ValueError):
    """A name is empty, slugifies to empty, or is reserved."""


class CollisionError(PluqqyError, ValueError):
    """The target slug already exists in the chosen tree."""


class BrokenReferenceError(PluqqyError):
    """A non-archived pipeline references components that cannot be read."""

    def __init__(self, message: str, path: str | None = None, missing: list[str] | None = None):
        super().__init__(message, path)
        self.missing = list(missing or [])


class PartialOperationError(PluqqyError):
    """A multi-file operation completed some but not all of its writes."""

    def __init__(self, message: str, path: str | None = None, stale_paths: list[str] | None = None):
        super().__init__(message, path)
        self.stale_paths = list(stale_paths or [])


class PartialRenameError(PartialOperationError):
    """Rename wrote the new file but some referring pipelines were not rewritten."""


class PartialDeleteError(PartialOperationError):
    """Delete removed the file but some referring pipelines were not rewritten."""


class StoreIOError(PluqqyError):
    """Underlying filesystem failure. Always carries the path."""

    def __init__(self, message: str, path: str):
        super().__init__(message, path)
