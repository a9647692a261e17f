"""Edit buffer: the working copy of the selected flow's steps.

Every mutation goes through the pure step operations, replaces the step
list, marks the buffer dirty, records a history snapshot and notifies
listeners (the autosave coordinator subscribes here). Which step the user
is looking at is the caller's state, not the buffer's.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from typing import Any

from flowstudio.editor import steps as step_ops
from flowstudio.editor.config_tree import ConfigPath
from flowstudio.editor.history import HistoryStack
from flowstudio.editor.interfaces import TemplateCatalog
from flowstudio.exceptions import (
    ConflictError,
    StepNotFoundError,
    TemplateNotFoundError,
    ValidationError,
)
from flowstudio.schemas import FlowRecord, Step
from flowstudio.storage.entities.flow import FlowStatus

logger = logging.getLogger(__name__)

MutationListener = Callable[[], None]


class EditBuffer:
    """Mutable working copy of one flow's ordered steps.

    Attributes:
        flow: Header of the loaded flow (None until ``load``)
        dirty: True when the steps may differ from what is persisted
        revision: Incremented on every change; lets the save layer tell
            whether a mutation happened after a save was issued
        history: Undo/redo snapshots
    """

    def __init__(
        self,
        *,
        history: HistoryStack | None = None,
        catalog: TemplateCatalog | None = None,
    ) -> None:
        self.flow: FlowRecord | None = None
        self.dirty = False
        self.revision = 0
        self.history = history or HistoryStack()
        self.catalog = catalog
        self._steps: list[Step] = []
        self._index: dict[str, int] = {}
        self._listeners: list[MutationListener] = []
        self.history.reset([])

    # ─── State ────────────────────────────────────────────────────────────

    @property
    def flow_id(self) -> str | None:
        return self.flow.id if self.flow else None

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._index

    def get_steps(self) -> list[Step]:
        """Deep copy of the current steps, safe for the caller to modify."""
        return step_ops.clone_steps(self._steps)

    def get_step(self, step_id: str) -> Step:
        """Deep copy of one step.

        Raises:
            StepNotFoundError: If the id is not in the buffer.
        """
        return self._steps[self._position(step_id)].model_copy(deep=True)

    def subscribe(self, listener: MutationListener) -> None:
        """Call ``listener`` after every change that sets dirty."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: MutationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ─── Loading and save bookkeeping ─────────────────────────────────────

    def load(self, flow: FlowRecord, steps: list[Step]) -> None:
        """Replace the buffer with a freshly loaded flow.

        Clears dirty and resets history to a single entry (the loaded state).
        """
        self.flow = flow
        self._set_steps(step_ops.renumber(step_ops.clone_steps(steps)))
        self.dirty = False
        self.revision += 1
        self.history.reset(self._steps)
        logger.debug("Loaded flow %s with %d steps", flow.id, len(self._steps))

    def mark_clean(self, revision: int) -> bool:
        """Clear dirty if nothing changed since ``revision`` was read.

        Returns:
            True if the buffer is now clean.
        """
        if self.revision == revision:
            self.dirty = False
        return not self.dirty

    def adopt_ids(self, mapping: dict[str, str]) -> None:
        """Rename client-only step ids to the durable ids assigned on save.

        Applied to the live steps and every history snapshot. Does not
        change dirty or revision: the content is the same.
        """
        mapping = {old: new for old, new in mapping.items() if old != new}
        if not mapping:
            return
        self._set_steps(
            [
                step.model_copy(update={"id": mapping[step.id]}) if step.id in mapping else step
                for step in self._steps
            ]
        )
        self.history.rename_ids(mapping)

    # ─── Mutations ────────────────────────────────────────────────────────

    def insert_step(self, template_id: str, at_index: int | None = None) -> Step:
        """Insert a new step seeded from the template catalog.

        Args:
            template_id: Catalog id of the template
            at_index: Position (0..len); appends when None

        Returns:
            The inserted step

        Raises:
            ValidationError: If no catalog is attached or the index is out of range
            TemplateNotFoundError: If the catalog has no such template
        """
        if self.catalog is None:
            raise ValidationError("No template catalog attached to the edit buffer")
        template = self.catalog.lookup(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        step = Step(
            id=step_ops.new_step_id(template.type),
            type=template.type,
            config=copy.deepcopy(template.default_config),
        )
        return self.insert(step, at_index)

    def insert(self, step: Step, at_index: int | None = None) -> Step:
        """Insert a prepared step (no catalog lookup)."""
        self._ensure_editable()
        index = len(self._steps) if at_index is None else at_index
        self._commit(step_ops.insert_at(self._steps, index, step.model_copy(deep=True)))
        return self._steps[index].model_copy(deep=True)

    def remove_step(self, step_id: str) -> None:
        """Delete a step.

        Raises:
            StepNotFoundError: If the id is not in the buffer.
        """
        self._ensure_editable()
        self._position(step_id)
        self._commit(step_ops.remove_by_id(self._steps, step_id))

    def move_step(self, step_id: str, new_index: int) -> bool:
        """Move a step to ``new_index`` (clamped).

        Moving a step onto its own position is a true no-op: the buffer
        stays clean and no history entry is recorded.

        Returns:
            True if the order changed.
        """
        self._ensure_editable()
        current = self._position(step_id)
        target = max(0, min(new_index, len(self._steps) - 1))
        if target == current:
            return False
        self._commit(step_ops.move_by_id(self._steps, step_id, target))
        return True

    def move_step_up(self, step_id: str) -> bool:
        return self.move_step(step_id, self._position(step_id) - 1)

    def move_step_down(self, step_id: str) -> bool:
        return self.move_step(step_id, self._position(step_id) + 1)

    def duplicate_step(self, step_id: str) -> Step:
        """Clone a step right after the original.

        Returns:
            The new clone
        """
        self._ensure_editable()
        index = self._position(step_id)
        self._commit(step_ops.duplicate(self._steps, step_id))
        return self._steps[index + 1].model_copy(deep=True)

    def set_step_config(self, step_id: str, path: str | ConfigPath, value: Any) -> Step:
        """Set one nested config value on a step.

        Returns:
            The updated step
        """
        self._ensure_editable()
        index = self._position(step_id)
        updated = step_ops.set_config_at_path(self._steps[index], path, value)
        new_steps = list(self._steps)
        new_steps[index] = updated
        self._commit(new_steps)
        return updated.model_copy(deep=True)

    def undo(self) -> bool:
        """Restore the previous snapshot; silent no-op at the oldest entry.

        Returns:
            True if a snapshot was restored.
        """
        snapshot = self.history.undo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        return True

    def redo(self) -> bool:
        """Re-apply the next snapshot; silent no-op at the newest entry."""
        snapshot = self.history.redo()
        if snapshot is None:
            return False
        self._restore(snapshot)
        return True

    # ─── Internals ────────────────────────────────────────────────────────

    def _ensure_editable(self) -> None:
        if self.flow is not None and self.flow.status != FlowStatus.DRAFT.value:
            raise ConflictError(
                f"Flow {self.flow.id} is {self.flow.status}; only drafts can be edited",
                flow_id=self.flow.id,
                status=self.flow.status,
            )

    def _position(self, step_id: str) -> int:
        try:
            return self._index[step_id]
        except KeyError:
            raise StepNotFoundError(step_id) from None

    def _set_steps(self, new_steps: list[Step]) -> None:
        self._steps = new_steps
        self._index = {step.id: position for position, step in enumerate(new_steps)}

    def _commit(self, new_steps: list[Step]) -> None:
        self._set_steps(new_steps)
        self.history.record(new_steps)
        self._touch()

    def _restore(self, snapshot: list[Step]) -> None:
        # Restored state may differ from the store; always re-persist
        self._set_steps(snapshot)
        self._touch()

    def _touch(self) -> None:
        self.dirty = True
        self.revision += 1
        for listener in list(self._listeners):
            listener()
