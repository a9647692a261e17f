"""Unit tests for persistence gateway transaction handling and validation."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from flowstudio.exceptions import ConflictError, FlowNotFoundError, TransientError, ValidationError
from flowstudio.services.persistence import PersistenceGateway
from flowstudio.storage.entities.flow import Flow
from tests.factories import StepFactory


@pytest.fixture
def mock_session():
    session = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def gateway(mock_session):
    return PersistenceGateway(session_factory=MagicMock(return_value=mock_session))


def _returns(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


class TestTransactions:
    async def test_store_error_becomes_transient(self, gateway, mock_session):
        cause = OperationalError("SELECT 1", {}, Exception("connection refused"))
        mock_session.execute.side_effect = cause

        with pytest.raises(TransientError) as exc_info:
            await gateway.get_flow("flow-1")

        assert exc_info.value.operation == "get_flow"
        assert exc_info.value.__cause__ is cause
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_called()
        mock_session.close.assert_awaited_once()

    async def test_os_error_becomes_transient(self, gateway, mock_session):
        mock_session.execute.side_effect = ConnectionResetError("reset by peer")

        with pytest.raises(TransientError):
            await gateway.list_flows()

    async def test_domain_errors_pass_through_with_rollback(self, gateway, mock_session):
        mock_session.execute.return_value = _returns(None)

        with pytest.raises(FlowNotFoundError):
            await gateway.get_flow("missing")

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_called()

    async def test_success_commits(self, gateway, mock_session):
        mock_session.execute.return_value = _returns(
            Flow(id="flow-1", name="A", status="draft", version="1", traffic_percentage=100)
        )

        record = await gateway.get_flow("flow-1")

        assert record.id == "flow-1"
        mock_session.commit.assert_awaited_once()
        mock_session.close.assert_awaited_once()


class TestReplaceStepsValidation:
    async def test_duplicate_ids_rejected_before_store(self, gateway, mock_session):
        steps = [StepFactory(id="same"), StepFactory(id="same", order=1)]

        with pytest.raises(ValidationError):
            await gateway.replace_steps("flow-1", steps)

        mock_session.execute.assert_not_called()

    async def test_active_flow_conflict_writes_nothing(self, gateway, mock_session):
        mock_session.execute.return_value = _returns(
            Flow(id="flow-1", name="A", status="active", version="2", traffic_percentage=100)
        )

        with pytest.raises(ConflictError) as exc_info:
            await gateway.replace_steps("flow-1", [StepFactory()])

        assert exc_info.value.status == "active"
        assert mock_session.execute.await_count == 1
        mock_session.add.assert_not_called()
        mock_session.commit.assert_not_called()
        mock_session.rollback.assert_awaited_once()


class TestUpdateFlowValidation:
    async def test_unknown_attribute(self, gateway, mock_session):
        with pytest.raises(ValidationError):
            await gateway.update_flow("flow-1", {"status": "active"})
        mock_session.execute.assert_not_called()

    @pytest.mark.parametrize("traffic", [-1, 101])
    async def test_traffic_out_of_range(self, gateway, traffic):
        with pytest.raises(ValidationError):
            await gateway.update_flow("flow-1", {"traffic_percentage": traffic})

    async def test_name_cannot_be_cleared(self, gateway):
        with pytest.raises(ValidationError):
            await gateway.update_flow("flow-1", {"name": None})


class TestCreateVersionValidation:
    async def test_active_flow_conflict_writes_nothing(self, gateway, mock_session):
        mock_session.execute.return_value = _returns(
            Flow(id="flow-1", name="A", status="active", version="2", traffic_percentage=100)
        )

        with pytest.raises(ConflictError):
            await gateway.create_version("flow-1")

        mock_session.add.assert_not_called()
        mock_session.commit.assert_not_called()
        mock_session.rollback.assert_awaited_once()

    async def test_non_integer_version_writes_nothing(self, gateway, mock_session):
        draft = _returns(Flow(id="flow-1", name="A", status="draft", version="v3", traffic_percentage=100))
        mock_session.execute.side_effect = [draft, MagicMock(), MagicMock()]

        with pytest.raises(ValidationError, match="non-integer version"):
            await gateway.create_version("flow-1")

        mock_session.add.assert_not_called()
        mock_session.commit.assert_not_called()

    async def test_locks_the_draft_row(self, gateway, mock_session):
        mock_session.execute.return_value = _returns(None)

        with pytest.raises(FlowNotFoundError):
            await gateway.create_version("flow-1")

        statement = mock_session.execute.await_args_list[0].args[0]
        assert statement._for_update_arg is not None
