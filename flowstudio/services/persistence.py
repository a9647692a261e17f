"""Persistence gateway.

The only component that talks to the store on behalf of the editor and
the deploy engine. Each call runs in its own session and transaction:
commit on success, rollback on any failure. Store and driver failures
surface as ``TransientError``; lifecycle violations as ``ConflictError``.

``replace_steps`` and ``create_version`` calls are serialized per flow
inside a process; calls for different flows run independently.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from flowstudio.dal.events import SYSTEM_USER_ID, AnalyticsEventRepository
from flowstudio.dal.flows import FlowRepository, FlowStepRepository, next_version_number
from flowstudio.exceptions import (
    ConflictError,
    FlowNotFoundError,
    TransientError,
    ValidationError,
)
from flowstudio.schemas import FlowCreate, FlowRecord, FlowUpdate, Step, Template
from flowstudio.services.catalog import StaticTemplateCatalog, builtin_catalog
from flowstudio.settings import get_settings
from flowstudio.storage import get_session_factory
from flowstudio.storage.entities.flow import Flow, FlowStatus

logger = logging.getLogger(__name__)


class PersistenceGateway:
    """Async load/save facade over the flow store.

    Args:
        session_factory: Session factory to use; defaults to the
            application-wide one from ``flowstudio.storage``.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory
        self._flow_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        """Session scoped to one gateway call.

        Commits on success. On failure rolls back and re-raises, wrapping
        store errors in ``TransientError``.
        """
        factory = self._session_factory or get_session_factory()
        session = factory()
        try:
            yield session
            await session.commit()
        except (SQLAlchemyError, OSError) as e:
            await session.rollback()
            logger.warning("Store failure during %s: %s", operation, e)
            raise TransientError(f"{operation} failed: {e}", operation=operation) from e
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    @staticmethod
    async def _require_flow(repo: FlowRepository, flow_id: str, *, for_update: bool = False) -> Flow:
        flow = await repo.get_by_id(flow_id, for_update=for_update)
        if flow is None:
            raise FlowNotFoundError(flow_id)
        return flow

    # ─── Flows ────────────────────────────────────────────────────────────

    async def get_flow(self, flow_id: str) -> FlowRecord:
        """Load a flow header.

        Raises:
            FlowNotFoundError: If the flow does not exist.
        """
        async with self._transaction("get_flow") as session:
            flow = await self._require_flow(FlowRepository(session), flow_id)
            return FlowRecord.from_entity(flow)

    async def list_flows(self, status: FlowStatus | None = None, limit: int = 100) -> list[FlowRecord]:
        """List flows newest first, optionally filtered by status."""
        async with self._transaction("list_flows") as session:
            flows = await FlowRepository(session).list_all(status=status, limit=limit)
            return [FlowRecord.from_entity(flow) for flow in flows]

    async def list_active_flows(self) -> list[FlowRecord]:
        """Active flows newest first."""
        return await self.list_flows(status=FlowStatus.ACTIVE)

    async def create_flow(self, attrs: FlowCreate) -> FlowRecord:
        """Create a new draft flow at version "1" with no steps."""
        traffic = attrs.traffic_percentage
        if traffic is None:
            traffic = get_settings().default_traffic_percentage
        async with self._transaction("create_flow") as session:
            flow = await FlowRepository(session).create(
                attrs.name,
                description=attrs.description,
                status=FlowStatus.DRAFT,
                version="1",
                traffic_percentage=traffic,
            )
            logger.info("Created draft flow %s (%s)", flow.id, flow.name)
            return FlowRecord.from_entity(flow)

    async def update_flow(self, flow_id: str, attrs: FlowUpdate | dict[str, Any]) -> FlowRecord:
        """Patch mutable flow attributes; untouched fields stay as they are.

        Raises:
            FlowNotFoundError: If the flow does not exist.
            ValidationError: If a patched value is invalid or not patchable.
        """
        if isinstance(attrs, dict):
            unknown = set(attrs) - FlowRepository.PATCHABLE_FIELDS
            if unknown:
                raise ValidationError(f"Flow attributes not patchable: {', '.join(sorted(unknown))}")
            try:
                attrs = FlowUpdate(**attrs)
            except ValueError as e:
                raise ValidationError(f"Invalid flow attributes: {e}") from e
        changes = attrs.model_dump(exclude_unset=True)
        for required in ("name", "traffic_percentage"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"Flow {required} cannot be cleared")

        async with self._transaction("update_flow") as session:
            repo = FlowRepository(session)
            flow = await self._require_flow(repo, flow_id)
            flow = await repo.update_fields(flow, **changes)
            return FlowRecord.from_entity(flow)

    async def archive_flow(self, flow_id: str) -> FlowRecord:
        """Move a draft or active flow to the terminal archived status.

        Raises:
            ConflictError: If the flow is already archived.
        """
        async with self._transaction("archive_flow") as session:
            repo = FlowRepository(session)
            flow = await self._require_flow(repo, flow_id, for_update=True)
            if not flow.can_transition_to(FlowStatus.ARCHIVED):
                raise ConflictError(
                    f"Flow {flow_id} is already {flow.status}",
                    flow_id=flow_id,
                    status=flow.status,
                )
            flow = await repo.set_status(flow, FlowStatus.ARCHIVED)
            logger.info("Archived flow %s (v%s)", flow.id, flow.version)
            return FlowRecord.from_entity(flow)

    # ─── Deploy ───────────────────────────────────────────────────────────

    async def create_version(self, source_flow_id: str) -> tuple[FlowRecord, list[Step]]:
        """Insert a new active version of a draft together with copies of its steps.

        The draft row is locked, the version is allocated and the flow row
        and every step copy are written in one transaction, so a failure
        leaves nothing behind and no reader ever sees the new flow without
        its steps. Calls for the same draft are serialized with each other
        and with ``replace_steps``.

        Args:
            source_flow_id: Draft to copy

        Returns:
            The new active flow and its steps under fresh ids

        Raises:
            FlowNotFoundError: If the draft does not exist.
            ConflictError: If the flow is not a draft.
            ValidationError: If the draft's version is not an integer.
            TransientError: On store failure, including a version clash
                with a deploy from another process.
        """
        async with self._flow_locks[source_flow_id]:
            async with self._transaction("create_version") as session:
                flows = FlowRepository(session)
                step_repo = FlowStepRepository(session)
                source = await self._require_flow(flows, source_flow_id, for_update=True)
                if source.status != FlowStatus.DRAFT.value:
                    raise ConflictError(
                        f"Only drafts can be deployed; flow {source_flow_id} is {source.status}",
                        flow_id=source_flow_id,
                        status=source.status,
                    )
                steps = [Step.from_entity(row) for row in await step_repo.list_for_flow(source_flow_id)]
                previous = await flows.max_version_deployed_from(source_flow_id)
                try:
                    version = next_version_number(source.version, previous)
                except ValueError as e:
                    raise ValidationError(
                        f"Flow {source_flow_id} has non-integer version {source.version!r}"
                    ) from e

                new_flow = await flows.create(
                    source.name,
                    description=source.description,
                    status=FlowStatus.ACTIVE,
                    version=str(version),
                    traffic_percentage=source.traffic_percentage,
                    source_flow_id=source.id,
                )
                rows = await step_repo.insert_copies(new_flow.id, steps)
                record = FlowRecord.from_entity(new_flow)
                copies = [Step.from_entity(row) for row in rows]

        logger.debug("Created version %s of flow %s as %s", record.version, source_flow_id, record.id)
        return record, copies

    # ─── Steps ────────────────────────────────────────────────────────────

    async def load_steps(self, flow_id: str) -> list[Step]:
        """The stored steps of a flow in order.

        Raises:
            FlowNotFoundError: If the flow does not exist.
        """
        async with self._transaction("load_steps") as session:
            await self._require_flow(FlowRepository(session), flow_id)
            rows = await FlowStepRepository(session).list_for_flow(flow_id)
            return [Step.from_entity(row) for row in rows]

    async def replace_steps(self, flow_id: str, steps: list[Step]) -> list[Step]:
        """Atomically replace the full step set of a draft flow.

        Steps whose id matches a stored row update it in place; client-only
        ids are inserted under fresh durable ids; stored rows not in
        ``steps`` are deleted. Nothing is written unless the flow is a draft.

        Args:
            flow_id: Target flow
            steps: Ordered step list

        Returns:
            The persisted steps, positionally aligned with ``steps``

        Raises:
            FlowNotFoundError: If the flow does not exist.
            ConflictError: If the flow is not a draft.
            ValidationError: If two steps share an id.
            TransientError: On store failure (no partial write).
        """
        ids = [step.id for step in steps]
        if len(ids) != len(set(ids)):
            raise ValidationError("Duplicate step ids in replacement list")

        async with self._flow_locks[flow_id]:
            async with self._transaction("replace_steps") as session:
                flow = await self._require_flow(FlowRepository(session), flow_id, for_update=True)
                if not flow.is_editable:
                    raise ConflictError(
                        f"Cannot modify {flow.status} flow {flow_id}; deploy a new version instead",
                        flow_id=flow_id,
                        status=flow.status,
                    )
                rows = await FlowStepRepository(session).replace_all(flow_id, steps)
                persisted = [Step.from_entity(row) for row in rows]

        logger.debug("Replaced %d steps on flow %s", len(persisted), flow_id)
        return persisted

    # ─── Templates ────────────────────────────────────────────────────────

    async def list_templates(self) -> StaticTemplateCatalog:
        """Catalog of built-in templates overlaid with the step types in the store.

        For stored types the most recently saved config becomes the default.
        """
        async with self._transaction("list_templates") as session:
            latest = await FlowStepRepository(session).latest_config_per_type()
        stored = StaticTemplateCatalog(
            Template(id=screen_type, type=screen_type, name=screen_type, default_config=config)
            for screen_type, config in latest.items()
        )
        return builtin_catalog().merged_with(stored)

    async def create_from_template(
        self,
        attrs: FlowCreate,
        template_ids: list[str],
        catalog: StaticTemplateCatalog | None = None,
    ) -> tuple[FlowRecord, list[Step]]:
        """Create a draft and seed one step per template id.

        Unknown template ids seed a step of that type with an empty config.
        """
        catalog = catalog or await self.list_templates()
        steps: list[Step] = []
        for position, template_id in enumerate(template_ids):
            template = catalog.lookup(template_id)
            steps.append(
                Step(
                    id=f"{template_id}-{position + 1}",
                    type=template.type if template else template_id,
                    order=position,
                    config=template.default_config if template else {},
                )
            )
        flow = await self.create_flow(attrs)
        persisted = await self.replace_steps(flow.id, steps)
        return flow, persisted

    # ─── Events ───────────────────────────────────────────────────────────

    async def record_event(
        self,
        event_type: str,
        *,
        user_id: str = SYSTEM_USER_ID,
        flow_id: str | None = None,
        step_id: str | None = None,
        event_data: dict[str, Any] | None = None,
    ) -> None:
        """Append an analytics/audit event."""
        async with self._transaction("record_event") as session:
            await AnalyticsEventRepository(session).record(
                event_type,
                user_id=user_id,
                flow_id=flow_id,
                step_id=step_id,
                event_data=event_data,
            )
