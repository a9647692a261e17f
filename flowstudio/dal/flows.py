"""Flow and flow step repositories.

Raw store access for the ``flows`` and ``flow_steps`` tables. Repositories
flush but never commit; transaction boundaries belong to the persistence
gateway.
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from sqlalchemy import Integer, cast, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from flowstudio.schemas import Step
from flowstudio.storage.entities.flow import Flow, FlowStatus
from flowstudio.storage.entities.flow_step import FlowStep, default_tracking_event_name


def next_version_number(parent_version: str, previous: int | None) -> int:
    """Version for the next deploy of a draft.

    One past the draft's own version, or one past the latest version
    already deployed from it, whichever is higher.

    Raises:
        ValueError: If ``parent_version`` is not an integer string.
    """
    return max(int(parent_version), previous or 0) + 1


class FlowRepository:
    """Repository for flow header rows."""

    # Attributes a caller may patch; status and version are lifecycle-owned
    PATCHABLE_FIELDS = frozenset({"name", "description", "traffic_percentage"})

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, flow_id: str, *, for_update: bool = False) -> Flow | None:
        """Get a flow by ID.

        Args:
            flow_id: Flow UUID
            for_update: Lock the row until the transaction ends (PostgreSQL)

        Returns:
            Flow or None
        """
        query = select(Flow).where(Flow.id == flow_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_all(
        self,
        status: FlowStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Flow]:
        """List flows, newest first.

        Args:
            status: Optional status filter
            limit: Max results
            offset: Skip results

        Returns:
            List of flows
        """
        query = select(Flow)
        if status is not None:
            query = query.where(Flow.status == status.value)
        query = query.order_by(Flow.created_at.desc(), Flow.id).limit(limit).offset(offset)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        name: str,
        *,
        description: str | None = None,
        status: FlowStatus = FlowStatus.DRAFT,
        version: str = "1",
        traffic_percentage: int = 100,
        source_flow_id: str | None = None,
    ) -> Flow:
        """Insert a flow row.

        Returns:
            Created flow
        """
        flow = Flow(
            id=str(uuid4()),
            name=name,
            description=description,
            status=status.value,
            version=version,
            traffic_percentage=traffic_percentage,
            source_flow_id=source_flow_id,
        )
        self.session.add(flow)
        await self.session.flush()
        await self.session.refresh(flow)
        return flow

    async def update_fields(self, flow: Flow, **fields: Any) -> Flow:
        """Patch mutable attributes; unknown or lifecycle fields are ignored.

        Args:
            flow: Loaded flow row
            **fields: Attribute values to apply

        Returns:
            Updated flow
        """
        for key, value in fields.items():
            if key in self.PATCHABLE_FIELDS:
                setattr(flow, key, value)
        await self.session.flush()
        await self.session.refresh(flow)
        return flow

    async def set_status(self, flow: Flow, status: FlowStatus) -> Flow:
        """Set the lifecycle status (callers validate the transition)."""
        flow.status = status.value
        await self.session.flush()
        await self.session.refresh(flow)
        return flow

    async def max_version_deployed_from(self, source_flow_id: str) -> int | None:
        """Highest version already deployed from the given draft."""
        result = await self.session.execute(
            select(func.max(cast(Flow.version, Integer))).where(
                Flow.source_flow_id == source_flow_id
            )
        )
        return result.scalar()


class FlowStepRepository:
    """Repository for flow step rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_flow(self, flow_id: str) -> list[FlowStep]:
        """Steps of a flow in ``step_order``."""
        result = await self.session.execute(
            select(FlowStep).where(FlowStep.flow_id == flow_id).order_by(FlowStep.step_order)
        )
        return list(result.scalars().all())

    async def replace_all(self, flow_id: str, steps: list[Step]) -> list[FlowStep]:
        """Make the stored steps of ``flow_id`` exactly ``steps``.

        Rows whose id matches an incoming step are updated in place; incoming
        steps with unrecognised ids are inserted with fresh UUIDs; stored rows
        missing from ``steps`` are deleted. Orders are rewritten to 0..N-1
        from list position.

        Args:
            flow_id: Owning flow
            steps: Desired ordered step list

        Returns:
            Stored rows in the same order as ``steps``
        """
        existing = {row.id: row for row in await self.list_for_flow(flow_id)}
        keep_ids = {step.id for step in steps if step.id in existing}

        stale = [row_id for row_id in existing if row_id not in keep_ids]
        if stale:
            await self.session.execute(delete(FlowStep).where(FlowStep.id.in_(stale)))
        if keep_ids:
            # Park kept rows on negative orders so the (flow_id, step_order)
            # unique constraint holds while positions are rewritten
            for row_id in keep_ids:
                existing[row_id].step_order = -1 - existing[row_id].step_order
            await self.session.flush()

        rows: list[FlowStep] = []
        for position, step in enumerate(steps):
            tracking = step.tracking_event_name or default_tracking_event_name(step.type)
            row = existing.get(step.id) if step.id in keep_ids else None
            if row is not None:
                row.step_order = position
                row.screen_type = step.type
                row.config = step.config
                row.tracking_event_name = tracking
            else:
                row = FlowStep(
                    id=str(uuid4()),
                    flow_id=flow_id,
                    step_order=position,
                    screen_type=step.type,
                    config=step.config,
                    tracking_event_name=tracking,
                )
                self.session.add(row)
            rows.append(row)

        await self.session.flush()
        return rows

    async def insert_copies(self, flow_id: str, steps: list[Step]) -> list[FlowStep]:
        """Insert fresh-id copies of ``steps`` under ``flow_id``.

        Order, type, config and tracking event name are copied verbatim.
        """
        rows = [
            FlowStep(
                id=str(uuid4()),
                flow_id=flow_id,
                step_order=step.order,
                screen_type=step.type,
                config=step.config,
                tracking_event_name=step.tracking_event_name,
            )
            for step in steps
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def latest_config_per_type(self) -> dict[str, dict[str, Any]]:
        """Most recently stored config for each distinct step type."""
        result = await self.session.execute(
            select(FlowStep.screen_type, FlowStep.config).order_by(
                FlowStep.screen_type, FlowStep.updated_at.desc()
            )
        )
        latest: dict[str, dict[str, Any]] = {}
        for screen_type, config in result.all():
            latest.setdefault(screen_type, config or {})
        return latest
