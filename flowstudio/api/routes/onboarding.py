"""End-user flow assignment.

GET /api/v1/onboarding/flow?user_id=  the active flow assigned to a user
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from flowstudio.api.deps import get_gateway
from flowstudio.api.schemas import FlowDetailResponse, FlowResponse, StepPayload
from flowstudio.services.assignment import assign_flow
from flowstudio.services.persistence import PersistenceGateway

router = APIRouter(tags=["Onboarding"])


@router.get("/onboarding/flow", response_model=FlowDetailResponse)
async def get_onboarding_flow(
    user_id: str = Query(..., min_length=1, max_length=200),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> FlowDetailResponse:
    """Return the active flow this user is assigned to, with its steps."""
    assigned = await assign_flow(gateway, user_id)
    if assigned is None:
        raise HTTPException(status_code=404, detail="No active onboarding flow")
    flow, steps = assigned
    return FlowDetailResponse(
        flow=FlowResponse.from_record(flow),
        steps=[StepPayload.from_step(step) for step in steps],
    )
