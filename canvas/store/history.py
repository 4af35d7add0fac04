"""Undo/redo history over immutable graph snapshots.

Snapshots are never mutated after they are taken, so the stacks hold plain
references and undo/redo only move references between them.
"""

import time
from typing import Callable

from canvas.models.graph import GraphSnapshot

# oldest snapshots are dropped past this depth
MAX_HISTORY = 100

# seconds within which pushes sharing a coalesce key collapse into one step
COALESCE_WINDOW = 1.0


class HistoryManager:
    """Linear undo/redo stacks. A new push discards the redo stack."""

    def __init__(
        self,
        max_depth: int = MAX_HISTORY,
        coalesce_window: float = COALESCE_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_depth = max_depth
        self.coalesce_window = coalesce_window
        self._clock = clock
        self._undo: list[GraphSnapshot] = []
        self._redo: list[GraphSnapshot] = []
        self._last_key: str | None = None
        self._last_push_at: float | None = None

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def push(self, snapshot: GraphSnapshot, coalesce_key: str | None = None) -> bool:
        """Record ``snapshot`` as the state before an edit.

        Returns False when the push was folded into the previous one: same
        non-None ``coalesce_key`` within the coalescing window. The redo stack
        is cleared either way.
        """
        now = self._clock()
        self._redo.clear()

        if (
            coalesce_key is not None
            and coalesce_key == self._last_key
            and self._last_push_at is not None
            and now - self._last_push_at < self.coalesce_window
            and self._undo
        ):
            self._last_push_at = now
            return False

        self._undo.append(snapshot)
        if len(self._undo) > self.max_depth:
            del self._undo[: len(self._undo) - self.max_depth]
        self._last_key = coalesce_key
        self._last_push_at = now
        return True

    def undo(self, current: GraphSnapshot) -> GraphSnapshot | None:
        """Pop the previous state, parking ``current`` on the redo stack."""
        if not self._undo:
            return None
        self._redo.append(current)
        self._break_coalescing()
        return self._undo.pop()

    def redo(self, current: GraphSnapshot) -> GraphSnapshot | None:
        """Pop the next state, parking ``current`` on the undo stack."""
        if not self._redo:
            return None
        self._undo.append(current)
        self._break_coalescing()
        return self._redo.pop()

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
        self._break_coalescing()

    def _break_coalescing(self) -> None:
        self._last_key = None
        self._last_push_at = None
