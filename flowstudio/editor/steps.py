"""Pure operations over ordered step lists.

Every function returns a new list (and new Step objects where anything
changed); inputs are never mutated. After each operation the ``order``
values are exactly 0..N-1.
"""

from __future__ import annotations

import copy
from typing import Any
from uuid import uuid4

from flowstudio.editor.config_tree import ConfigPath, set_at_path
from flowstudio.exceptions import StepNotFoundError, ValidationError
from flowstudio.schemas import Step


def new_step_id(step_type: str) -> str:
    """Generate a client-only step id; the store assigns a durable one on save."""
    return f"{step_type}-{uuid4().hex[:12]}"


def clone_steps(steps: list[Step]) -> list[Step]:
    """Deep copy a step list so later edits cannot leak between copies."""
    return [step.model_copy(deep=True) for step in steps]


def renumber(steps: list[Step]) -> list[Step]:
    """Return the list with ``order`` rewritten to 0..N-1."""
    return [
        step if step.order == index else step.model_copy(update={"order": index})
        for index, step in enumerate(steps)
    ]


def index_of(steps: list[Step], step_id: str) -> int:
    """Position of ``step_id`` in ``steps``.

    Raises:
        StepNotFoundError: If no step has that id.
    """
    for index, step in enumerate(steps):
        if step.id == step_id:
            return index
    raise StepNotFoundError(step_id)


def insert_at(steps: list[Step], index: int, step: Step) -> list[Step]:
    """Insert ``step`` at ``index`` (0..len inclusive).

    Raises:
        ValidationError: If the index is out of range or the id is already used.
    """
    if not 0 <= index <= len(steps):
        raise ValidationError(f"Insert index {index} outside [0, {len(steps)}]")
    if any(existing.id == step.id for existing in steps):
        raise ValidationError(f"Step id {step.id!r} already present")
    return renumber([*steps[:index], step, *steps[index:]])


def remove_by_id(steps: list[Step], step_id: str) -> list[Step]:
    """Drop the step with ``step_id``; unknown ids leave the list unchanged."""
    return renumber([step for step in steps if step.id != step_id])


def move_by_id(steps: list[Step], step_id: str, new_index: int) -> list[Step]:
    """Move a step to ``new_index``, clamped to the valid range.

    Backs both drag-reorder and explicit move up/down.

    Raises:
        StepNotFoundError: If no step has that id.
    """
    current = index_of(steps, step_id)
    target = max(0, min(new_index, len(steps) - 1))
    if target == current:
        return list(steps)
    remaining = [*steps[:current], *steps[current + 1 :]]
    return renumber([*remaining[:target], steps[current], *remaining[target:]])


def duplicate(steps: list[Step], step_id: str) -> list[Step]:
    """Insert a deep clone with a fresh id right after the original.

    Raises:
        StepNotFoundError: If no step has that id.
    """
    index = index_of(steps, step_id)
    original = steps[index]
    clone = original.model_copy(
        update={
            "id": new_step_id(original.type),
            "config": copy.deepcopy(original.config),
        },
    )
    return renumber([*steps[: index + 1], clone, *steps[index + 1 :]])


def set_config_at_path(step: Step, path: str | ConfigPath, value: Any) -> Step:
    """Return a new step whose config holds ``value`` at ``path``."""
    return step.model_copy(update={"config": set_at_path(step.config, path, value)})


def steps_equal(left: list[Step], right: list[Step]) -> bool:
    """Structural equality of two step lists (ids, types, order and config)."""
    return [step.model_dump() for step in left] == [step.model_dump() for step in right]
