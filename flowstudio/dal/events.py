"""Analytics event repository."""

from __future__ import annotations

from typing import Any
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flowstudio.storage.entities.analytics_event import AnalyticsEvent

SYSTEM_USER_ID = "system"


class AnalyticsEventRepository:
    """Append-only access to ``analytics_events``."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        event_type: str,
        *,
        user_id: str = SYSTEM_USER_ID,
        flow_id: str | None = None,
        step_id: str | None = None,
        event_data: dict[str, Any] | None = None,
    ) -> AnalyticsEvent:
        """Insert one event row.

        Returns:
            The created event
        """
        event = AnalyticsEvent(
            id=str(uuid4()),
            user_id=user_id,
            flow_id=flow_id,
            step_id=step_id,
            event_type=event_type,
            event_data=event_data or {},
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def list_for_flow(self, flow_id: str, event_type: str | None = None) -> list[AnalyticsEvent]:
        """Events recorded against a flow, oldest first."""
        query = select(AnalyticsEvent).where(AnalyticsEvent.flow_id == flow_id)
        if event_type is not None:
            query = query.where(AnalyticsEvent.event_type == event_type)
        result = await self.session.execute(query.order_by(AnalyticsEvent.created_at))
        return list(result.scalars().all())
