"""Bounded undo/redo log of step-list snapshots."""

from __future__ import annotations

from flowstudio.editor.steps import clone_steps
from flowstudio.schemas import Step

DEFAULT_MAX_ENTRIES = 50


class HistoryStack:
    """Linear, capped list of deep-copied snapshots with a cursor.

    Recording after an undo discards the redo branch. When the stack is
    full the oldest snapshot is evicted. Undo/redo at a boundary return
    None rather than raising.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: list[list[Step]] = []
        self._index = -1

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def index(self) -> int:
        """Position of the current snapshot (-1 when empty)."""
        return self._index

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def reset(self, steps: list[Step]) -> None:
        """Drop all entries and start again from ``steps``."""
        self._entries = [clone_steps(steps)]
        self._index = 0

    def record(self, steps: list[Step]) -> None:
        """Append a snapshot after the cursor, discarding any redo branch."""
        del self._entries[self._index + 1 :]
        self._entries.append(clone_steps(steps))
        if len(self._entries) > self.max_entries:
            del self._entries[0]
        self._index = len(self._entries) - 1

    def undo(self) -> list[Step] | None:
        """Step the cursor back and return a copy of that snapshot."""
        if not self.can_undo:
            return None
        self._index -= 1
        return clone_steps(self._entries[self._index])

    def redo(self) -> list[Step] | None:
        """Step the cursor forward and return a copy of that snapshot."""
        if not self.can_redo:
            return None
        self._index += 1
        return clone_steps(self._entries[self._index])

    def current(self) -> list[Step] | None:
        """Copy of the snapshot under the cursor."""
        if self._index < 0:
            return None
        return clone_steps(self._entries[self._index])

    def rename_ids(self, mapping: dict[str, str]) -> None:
        """Rewrite step ids in every snapshot (client id -> durable id)."""
        if not mapping:
            return
        self._entries = [
            [
                step.model_copy(update={"id": mapping[step.id]}) if step.id in mapping else step
                for step in entry
            ]
            for entry in self._entries
        ]
