"""State machine shared by clone, rename, tag and content edit flows.

    IDLE --start--> ACTIVE --commit--> IDLE
                    ACTIVE --cancel--> IDLE
                    ACTIVE --exit (clean)--> IDLE
                    ACTIVE --exit (dirty)--> CONFIRM_EXIT
    CONFIRM_EXIT --confirm(yes)--> IDLE      (changes discarded)
    CONFIRM_EXIT --confirm(no)--> ACTIVE
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable


class EditState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    CONFIRM_EXIT = "confirm_exit"


class EditSession:
    """Tracks one edit flow; invalid transitions raise RuntimeError."""

    def __init__(
        self,
        on_commit: Callable[[], Any] | None = None,
        is_dirty: Callable[[], bool] | None = None,
    ):
        self.state = EditState.IDLE
        self._on_commit = on_commit
        self._is_dirty = is_dirty
        self._marked_dirty = False

    @property
    def dirty(self) -> bool:
        if self._is_dirty is not None:
            return self._is_dirty()
        return self._marked_dirty

    def mark_dirty(self) -> None:
        self._require(EditState.ACTIVE, "mark_dirty")
        self._marked_dirty = True

    def _require(self, state: EditState, action: str) -> None:
        if self.state is not state:
            raise RuntimeError(f"cannot {action} while {self.state.value}")

    def start(self) -> None:
        self._require(EditState.IDLE, "start")
        self._marked_dirty = False
        self.state = EditState.ACTIVE

    def commit(self) -> Any:
        """Run the commit callback and return to IDLE.

        If the callback raises, the session stays ACTIVE so the user can retry.
        """
        self._require(EditState.ACTIVE, "commit")
        outcome = self._on_commit() if self._on_commit is not None else None
        self._marked_dirty = False
        self.state = EditState.IDLE
        return outcome

    def cancel(self) -> None:
        self._require(EditState.ACTIVE, "cancel")
        self._marked_dirty = False
        self.state = EditState.IDLE

    def exit(self) -> EditState:
        self._require(EditState.ACTIVE, "exit")
        self.state = EditState.CONFIRM_EXIT if self.dirty else EditState.IDLE
        return self.state

    def confirm(self, discard: bool) -> EditState:
        self._require(EditState.CONFIRM_EXIT, "confirm")
        if discard:
            self._marked_dirty = False
            self.state = EditState.IDLE
        else:
            self.state = EditState.ACTIVE
        return self.state
