"""Unit tests for pure step-list operations."""

import pytest

from flowstudio.editor import steps as step_ops
from flowstudio.exceptions import StepNotFoundError, ValidationError
from flowstudio.schemas import Step
from tests.factories import StepFactory, step_list


def _orders(steps: list[Step]) -> list[int]:
    return [step.order for step in steps]


def _ids(steps: list[Step]) -> list[str]:
    return [step.id for step in steps]


class TestInsertAt:
    def test_insert_into_empty_list(self):
        result = step_ops.insert_at([], 0, StepFactory(id="a", order=7))

        assert _ids(result) == ["a"]
        assert _orders(result) == [0]

    def test_insert_in_middle_renumbers(self):
        steps = step_list("welcome", "confirmation")

        result = step_ops.insert_at(steps, 1, StepFactory(id="new", type="first-name"))

        assert _ids(result) == ["s0", "new", "s1"]
        assert _orders(result) == [0, 1, 2]

    def test_input_not_mutated(self):
        steps = step_list("welcome", "confirmation")

        step_ops.insert_at(steps, 0, StepFactory(id="new"))

        assert _ids(steps) == ["s0", "s1"]
        assert _orders(steps) == [0, 1]

    @pytest.mark.parametrize("index", [-1, 3])
    def test_out_of_range_index(self, index):
        with pytest.raises(ValidationError):
            step_ops.insert_at(step_list("welcome", "confirmation"), index, StepFactory(id="new"))

    def test_duplicate_id_rejected(self):
        with pytest.raises(ValidationError):
            step_ops.insert_at(step_list("welcome"), 1, StepFactory(id="s0"))

    @pytest.mark.parametrize("index", [0, 1, 2, 3])
    def test_insert_then_remove_restores_list(self, index):
        steps = step_list("welcome", "first-name", "confirmation")

        inserted = step_ops.insert_at(steps, index, StepFactory(id="tmp"))
        restored = step_ops.remove_by_id(inserted, "tmp")

        assert step_ops.steps_equal(restored, steps)


class TestRemoveById:
    def test_remove_renumbers(self):
        result = step_ops.remove_by_id(step_list("welcome", "first-name", "confirmation"), "s0")

        assert _ids(result) == ["s1", "s2"]
        assert _orders(result) == [0, 1]

    def test_unknown_id_leaves_list_unchanged(self):
        steps = step_list("welcome", "confirmation")

        assert step_ops.steps_equal(step_ops.remove_by_id(steps, "missing"), steps)


class TestMoveById:
    def test_move_to_front(self):
        result = step_ops.move_by_id(step_list("welcome", "confirmation"), "s1", 0)

        assert [step.type for step in result] == ["confirmation", "welcome"]
        assert _orders(result) == [0, 1]

    def test_move_down(self):
        result = step_ops.move_by_id(step_list("a", "b", "c"), "s0", 2)

        assert _ids(result) == ["s1", "s2", "s0"]

    def test_index_clamped(self):
        assert _ids(step_ops.move_by_id(step_list("a", "b", "c"), "s0", 99)) == ["s1", "s2", "s0"]
        assert _ids(step_ops.move_by_id(step_list("a", "b", "c"), "s2", -5)) == ["s2", "s0", "s1"]

    def test_same_index_returns_equal_list(self):
        steps = step_list("a", "b")

        assert step_ops.steps_equal(step_ops.move_by_id(steps, "s1", 1), steps)

    def test_unknown_id(self):
        with pytest.raises(StepNotFoundError):
            step_ops.move_by_id(step_list("a"), "missing", 0)


class TestDuplicate:
    def test_clone_inserted_after_original(self):
        steps = step_list("welcome", "confirmation")

        result = step_ops.duplicate(steps, "s0")

        assert len(result) == len(steps) + 1
        assert result[1].type == "welcome"
        assert result[1].id not in {"s0", "s1"}
        assert result[1].config == result[0].config
        assert _orders(result) == [0, 1, 2]

    def test_clone_config_is_independent(self):
        steps = [StepFactory(id="s0", config={"questionScreen": {"question": "hi?"}})]

        result = step_ops.duplicate(steps, "s0")
        result[1].config["questionScreen"]["question"] = "changed"

        assert result[0].config["questionScreen"]["question"] == "hi?"
        assert steps[0].config["questionScreen"]["question"] == "hi?"

    def test_tracking_event_name_copied(self):
        steps = [StepFactory(id="s0", tracking_event_name="custom_event")]

        assert step_ops.duplicate(steps, "s0")[1].tracking_event_name == "custom_event"

    def test_unknown_id(self):
        with pytest.raises(StepNotFoundError):
            step_ops.duplicate(step_list("a"), "missing")


class TestSetConfigAtPath:
    def test_returns_new_step(self):
        step = StepFactory(id="s0", config={})

        updated = step_ops.set_config_at_path(step, ["questionScreen", "question"], "hi?")

        assert updated.config == {"questionScreen": {"question": "hi?"}}
        assert step.config == {}


def test_new_step_ids_are_unique_and_typed():
    ids = {step_ops.new_step_id("welcome") for _ in range(50)}

    assert len(ids) == 50
    assert all(step_id.startswith("welcome-") for step_id in ids)
