"""Unit tests for traffic assignment across active flows."""

from unittest.mock import AsyncMock

import pytest

from flowstudio.exceptions import TransientError
from flowstudio.services.assignment import (
    ASSIGNMENT_EVENT_TYPE,
    assign_flow,
    select_flow_for_user,
    user_percentile,
)
from flowstudio.services.persistence import PersistenceGateway
from tests.factories import ActiveFlowFactory, StepFactory


def _user_with_percentile(target: int) -> str:
    """A user id whose percentile is ``target`` (code points of 'a' are 97)."""
    for length in range(1, 200):
        for tail in range(0, 26):
            user_id = "a" * length + chr(ord("a") + tail)
            if user_percentile(user_id) == target:
                return user_id
    raise AssertionError(f"no user id for percentile {target}")


class TestUserPercentile:
    def test_range(self):
        for user_id in ["", "a", "user-123", "x" * 500]:
            assert 1 <= user_percentile(user_id) <= 100

    def test_deterministic(self):
        assert user_percentile("user-123") == user_percentile("user-123")

    def test_known_value(self):
        # ord("a") + ord("b") = 195 -> 95 + 1
        assert user_percentile("ab") == 96


class TestSelectFlowForUser:
    def test_no_flows(self):
        assert select_flow_for_user([], "user") is None

    def test_single_flow_gets_everyone(self):
        flow = ActiveFlowFactory(traffic_percentage=10)

        assert select_flow_for_user([flow], _user_with_percentile(99)) is flow

    def test_split_by_traffic(self):
        first = ActiveFlowFactory(traffic_percentage=30)
        second = ActiveFlowFactory(traffic_percentage=70)

        assert select_flow_for_user([first, second], _user_with_percentile(30)) is first
        assert select_flow_for_user([first, second], _user_with_percentile(31)) is second
        assert select_flow_for_user([first, second], _user_with_percentile(100)) is second

    def test_weights_normalised_when_total_is_not_100(self):
        first = ActiveFlowFactory(traffic_percentage=20)
        second = ActiveFlowFactory(traffic_percentage=20)

        assert select_flow_for_user([first, second], _user_with_percentile(50)) is first
        assert select_flow_for_user([first, second], _user_with_percentile(51)) is second

    def test_zero_traffic_counts_as_full(self):
        first = ActiveFlowFactory(traffic_percentage=0)
        second = ActiveFlowFactory(traffic_percentage=100)

        assert select_flow_for_user([first, second], _user_with_percentile(50)) is first
        assert select_flow_for_user([first, second], _user_with_percentile(51)) is second


@pytest.fixture
def gateway():
    return AsyncMock(spec=PersistenceGateway)


class TestAssignFlow:
    async def test_no_active_flows(self, gateway):
        gateway.list_active_flows.return_value = []

        assert await assign_flow(gateway, "user-1") is None
        gateway.load_steps.assert_not_called()

    async def test_single_flow_not_recorded(self, gateway):
        flow = ActiveFlowFactory()
        steps = [StepFactory()]
        gateway.list_active_flows.return_value = [flow]
        gateway.load_steps.return_value = steps

        assert await assign_flow(gateway, "user-1") == (flow, steps)
        gateway.record_event.assert_not_called()

    async def test_ab_assignment_recorded(self, gateway):
        flows = [ActiveFlowFactory(traffic_percentage=50), ActiveFlowFactory(traffic_percentage=50)]
        gateway.list_active_flows.return_value = flows
        gateway.load_steps.return_value = []

        flow, _ = await assign_flow(gateway, "user-1")

        gateway.record_event.assert_awaited_once()
        args, kwargs = gateway.record_event.await_args
        assert args == (ASSIGNMENT_EVENT_TYPE,)
        assert kwargs["user_id"] == "user-1"
        assert kwargs["flow_id"] == flow.id
        assert kwargs["event_data"]["total_active_flows"] == 2

    async def test_event_failure_does_not_block_assignment(self, gateway):
        flows = [ActiveFlowFactory(traffic_percentage=50), ActiveFlowFactory(traffic_percentage=50)]
        gateway.list_active_flows.return_value = flows
        gateway.load_steps.return_value = []
        gateway.record_event.side_effect = TransientError("events down")

        assert await assign_flow(gateway, "user-1") is not None
