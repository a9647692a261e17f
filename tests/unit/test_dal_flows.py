"""Unit tests for flow, step and event repositories with a mocked session."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from flowstudio.dal.events import SYSTEM_USER_ID, AnalyticsEventRepository
from flowstudio.dal.flows import FlowRepository, FlowStepRepository, next_version_number
from flowstudio.storage.entities.analytics_event import AnalyticsEvent
from flowstudio.storage.entities.flow import Flow, FlowStatus
from flowstudio.storage.entities.flow_step import FlowStep
from tests.factories import StepFactory


# ─── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_session():
    """Create mock async session."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    session.add_all = MagicMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    return session


@pytest.fixture
def flow_repo(mock_session):
    return FlowRepository(mock_session)


@pytest.fixture
def step_repo(mock_session):
    return FlowStepRepository(mock_session)


@pytest.fixture
def sample_flow():
    return Flow(
        id=str(uuid4()),
        name="Onboarding",
        description=None,
        status=FlowStatus.DRAFT.value,
        version="1",
        traffic_percentage=100,
    )


def _scalar_result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar.return_value = value
    return result


def _scalars_result(values):
    result = MagicMock()
    result.scalars.return_value.all.return_value = values
    return result


# ─── FlowRepository ──────────────────────────────────────────────────────────


class TestFlowRepositoryGetById:
    async def test_found(self, flow_repo, mock_session, sample_flow):
        mock_session.execute.return_value = _scalar_result(sample_flow)

        assert await flow_repo.get_by_id(sample_flow.id) is sample_flow
        mock_session.execute.assert_awaited_once()

    async def test_not_found(self, flow_repo, mock_session):
        mock_session.execute.return_value = _scalar_result(None)

        assert await flow_repo.get_by_id("missing") is None

    async def test_for_update_locks_row(self, flow_repo, mock_session, sample_flow):
        mock_session.execute.return_value = _scalar_result(sample_flow)

        await flow_repo.get_by_id(sample_flow.id, for_update=True)

        query = mock_session.execute.await_args.args[0]
        assert query._for_update_arg is not None


class TestFlowRepositoryListAll:
    async def test_filters_by_status(self, flow_repo, mock_session, sample_flow):
        mock_session.execute.return_value = _scalars_result([sample_flow])

        flows = await flow_repo.list_all(status=FlowStatus.ACTIVE)

        assert flows == [sample_flow]
        query = mock_session.execute.await_args.args[0]
        assert "flows.status" in str(query)


class TestFlowRepositoryCreate:
    async def test_create_adds_and_flushes(self, flow_repo, mock_session):
        flow = await flow_repo.create(
            "Variant B",
            status=FlowStatus.ACTIVE,
            version="4",
            traffic_percentage=50,
            source_flow_id="draft-1",
        )

        mock_session.add.assert_called_once_with(flow)
        mock_session.flush.assert_awaited_once()
        mock_session.refresh.assert_awaited_once_with(flow)
        assert flow.status == "active"
        assert flow.version == "4"
        assert flow.source_flow_id == "draft-1"
        assert len(flow.id) == 36


class TestFlowRepositoryUpdate:
    async def test_only_patchable_fields_applied(self, flow_repo, sample_flow):
        await flow_repo.update_fields(sample_flow, name="Renamed", status="active", version="9")

        assert sample_flow.name == "Renamed"
        assert sample_flow.status == "draft"
        assert sample_flow.version == "1"

    async def test_set_status(self, flow_repo, sample_flow):
        await flow_repo.set_status(sample_flow, FlowStatus.ARCHIVED)

        assert sample_flow.status == "archived"


class TestFlowRepositoryVersions:
    async def test_max_version_deployed_from(self, flow_repo, mock_session):
        mock_session.execute.return_value = _scalar_result(4)

        assert await flow_repo.max_version_deployed_from("draft-1") == 4

    async def test_none_when_never_deployed(self, flow_repo, mock_session):
        mock_session.execute.return_value = _scalar_result(None)

        assert await flow_repo.max_version_deployed_from("draft-1") is None


class TestNextVersionNumber:
    @pytest.mark.parametrize(
        ("parent", "previous", "expected"),
        [("1", None, 2), ("3", None, 4), ("3", 4, 5), ("3", 2, 4), ("9", 12, 13)],
    )
    def test_next_version(self, parent, previous, expected):
        assert next_version_number(parent, previous) == expected

    def test_non_integer_parent(self):
        with pytest.raises(ValueError):
            next_version_number("v3", None)


# ─── FlowStepRepository ──────────────────────────────────────────────────────


class TestFlowStepRepositoryInsertCopies:
    async def test_copies_get_fresh_ids(self, step_repo, mock_session):
        steps = [
            StepFactory(id="a", type="welcome", order=0, tracking_event_name="custom"),
            StepFactory(id="b", type="confirmation", order=1),
        ]

        rows = await step_repo.insert_copies("active-1", steps)

        mock_session.add_all.assert_called_once_with(rows)
        assert [row.flow_id for row in rows] == ["active-1", "active-1"]
        assert [row.step_order for row in rows] == [0, 1]
        assert [row.screen_type for row in rows] == ["welcome", "confirmation"]
        assert rows[0].tracking_event_name == "custom"
        assert {row.id for row in rows}.isdisjoint({"a", "b"})


class TestFlowStepRepositoryReplaceAll:
    async def test_insert_into_empty_flow_defaults_tracking_name(self, step_repo, mock_session):
        mock_session.execute.return_value = _scalars_result([])

        rows = await step_repo.replace_all("flow-1", [StepFactory(id="client-1", type="welcome")])

        assert len(rows) == 1
        assert rows[0].id != "client-1"
        assert rows[0].tracking_event_name == "onboarding_welcome_viewed"
        mock_session.add.assert_called_once_with(rows[0])

    async def test_existing_row_updated_in_place(self, step_repo, mock_session):
        existing = FlowStep(
            id="row-1",
            flow_id="flow-1",
            step_order=0,
            screen_type="welcome",
            config={"title": "old"},
            tracking_event_name="onboarding_welcome_viewed",
        )
        mock_session.execute.return_value = _scalars_result([existing])
        incoming = [
            StepFactory(id="new", type="first-name", order=0),
            StepFactory(id="row-1", type="welcome", order=1, config={"title": "new"}),
        ]

        rows = await step_repo.replace_all("flow-1", incoming)

        assert rows[1] is existing
        assert existing.step_order == 1
        assert existing.config == {"title": "new"}
        assert rows[0].step_order == 0
        mock_session.add.assert_called_once_with(rows[0])


# ─── AnalyticsEventRepository ────────────────────────────────────────────────


class TestAnalyticsEventRepository:
    async def test_record_defaults_to_system_user(self, mock_session):
        repo = AnalyticsEventRepository(mock_session)

        event = await repo.record("flow_deployed", flow_id="f1", step_id="deployment", event_data={"version": 2})

        assert isinstance(event, AnalyticsEvent)
        assert event.user_id == SYSTEM_USER_ID
        assert event.event_data == {"version": 2}
        mock_session.add.assert_called_once_with(event)
        mock_session.flush.assert_awaited_once()

    async def test_list_for_flow(self, mock_session):
        event = AnalyticsEvent(id="e1", user_id="u", flow_id="f1", event_type="x", event_data={})
        mock_session.execute.return_value = _scalars_result([event])

        assert await AnalyticsEventRepository(mock_session).list_for_flow("f1", event_type="x") == [event]
