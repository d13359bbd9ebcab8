"""Higher-level mutations over the store and tag registry."""

from .archive import archive_item, unarchive_item
from .clone import clone_item, suggest_clone_name
from .delete import delete_item
from .rename import rename_item
from .results import (
    ArchiveResult,
    CloneResult,
    DeleteResult,
    OperationResult,
    RenameResult,
    TagDeletionReport,
    TagEditResult,
)
from .service import OperationService
from .session import EditSession, EditState
from .tag_delete import delete_tag_completely
from .tag_edit import TagEditSession

__all__ = [
    "ArchiveResult",
    "CloneResult",
    "DeleteResult",
    "EditSession",
    "EditState",
    "OperationResult",
    "OperationService",
    "RenameResult",
    "TagDeletionReport",
    "TagEditResult",
    "TagEditSession",
    "archive_item",
    "clone_item",
    "delete_item",
    "delete_tag_completely",
    "rename_item",
    "suggest_clone_name",
    "unarchive_item",
]
