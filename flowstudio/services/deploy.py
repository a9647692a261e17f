"""Version/deploy engine.

Promotes a draft into a new, frozen, active flow. The draft itself is
never mutated:

1. lock the draft and read its ordered steps;
2. compute the new version;
3. insert the new active flow row;
4. insert fresh-id copies of every step under it;
5. record a best-effort ``flow_deployed`` audit event.

Steps 1 to 4 are one gateway transaction, so a failure anywhere in them
leaves no new flow behind. Sibling active flows are left alone: several
may run side by side as A/B variants.
"""

from __future__ import annotations

import logging

from flowstudio.exceptions import FlowStudioError
from flowstudio.schemas import DeployResult, FlowRecord, Step
from flowstudio.services.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

DEPLOY_EVENT_TYPE = "flow_deployed"
DEPLOY_EVENT_STEP_ID = "deployment"


class DeployEngine:
    """Creates immutable active versions from drafts."""

    def __init__(self, gateway: PersistenceGateway) -> None:
        self.gateway = gateway

    async def deploy(self, flow_id: str) -> DeployResult:
        """Deploy the persisted state of a draft flow.

        Args:
            flow_id: Draft to promote

        Returns:
            The new active flow and its copied steps

        Raises:
            FlowNotFoundError: If the draft does not exist.
            ConflictError: If the flow is not a draft.
            ValidationError: If the draft's version is not an integer.
            TransientError: If the store fails; nothing was written.
        """
        try:
            new_flow, copies = await self.gateway.create_version(flow_id)
        except FlowStudioError as e:
            logger.error("Deploy of flow %s failed, no version created: %s", flow_id, e)
            raise

        logger.info(
            "Deployed flow %s as %s (v%s, %d steps)",
            flow_id,
            new_flow.id,
            new_flow.version,
            len(copies),
        )
        await self._record_deployment(flow_id, new_flow, copies)
        return DeployResult(flow=new_flow, steps=copies, source_flow_id=flow_id)

    async def _record_deployment(self, source_flow_id: str, new_flow: FlowRecord, steps: list[Step]) -> None:
        """Write the audit event; failures are logged and never undo the deploy."""
        try:
            await self.gateway.record_event(
                DEPLOY_EVENT_TYPE,
                flow_id=new_flow.id,
                step_id=DEPLOY_EVENT_STEP_ID,
                event_data={
                    "version": new_flow.version_number,
                    "source_flow_id": source_flow_id,
                    "steps_count": len(steps),
                },
            )
        except Exception:
            logger.warning("Failed to record deployment event for flow %s", new_flow.id, exc_info=True)
