"""Assignment of end users to one of the active flows.

When several flows are active they split traffic by their
``traffic_percentage``. Selection is deterministic per user id so a user
keeps seeing the same variant.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from flowstudio.schemas import FlowRecord, Step
from flowstudio.services.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

ASSIGNMENT_EVENT_TYPE = "ab_test_assigned"


def user_percentile(user_id: str) -> int:
    """Bucket a user id into 1..100."""
    return sum(ord(char) for char in user_id) % 100 + 1


def select_flow_for_user(flows: Sequence[FlowRecord], user_id: str) -> FlowRecord | None:
    """Pick the flow a user should see.

    A single active flow always gets all traffic. With several, weights
    come from ``traffic_percentage`` (0 counts as 100) and are normalised
    to a total of 100 when they do not already add up to it.
    """
    if not flows:
        return None
    if len(flows) == 1:
        return flows[0]

    percentile = user_percentile(user_id)
    cumulative = 0.0
    thresholds: list[tuple[FlowRecord, float]] = []
    for flow in flows:
        cumulative += flow.traffic_percentage or 100
        thresholds.append((flow, cumulative))

    total = cumulative
    if total != 100:
        logger.debug("Active traffic totals %s%%; normalising to 100%%", total)
        thresholds = [(flow, weight / total * 100) for flow, weight in thresholds]

    for flow, threshold in thresholds:
        if percentile <= threshold:
            return flow
    return flows[0]


async def assign_flow(gateway: PersistenceGateway, user_id: str) -> tuple[FlowRecord, list[Step]] | None:
    """Choose an active flow for ``user_id`` and load its steps.

    Records an ``ab_test_assigned`` event when more than one flow is active;
    a failure to record it does not block the assignment.

    Returns:
        The flow and its steps, or None when no flow is active
    """
    active = await gateway.list_active_flows()
    flow = select_flow_for_user(active, user_id)
    if flow is None:
        return None

    if len(active) > 1:
        try:
            await gateway.record_event(
                ASSIGNMENT_EVENT_TYPE,
                user_id=user_id,
                flow_id=flow.id,
                event_data={
                    "flow_name": flow.name,
                    "flow_version": flow.version,
                    "total_active_flows": len(active),
                },
            )
        except Exception:
            logger.warning("Failed to record assignment of %s to flow %s", user_id, flow.id, exc_info=True)

    steps = await gateway.load_steps(flow.id)
    return flow, steps
