"""Flow management API.

GET    /api/v1/flows                   list (optional ?status=)
POST   /api/v1/flows                   create a draft, optionally seeded from templates
GET    /api/v1/flows/{id}              flow with its steps
PATCH  /api/v1/flows/{id}              patch name, description, traffic
POST   /api/v1/flows/{id}/archive      archive (terminal)
GET    /api/v1/flows/{id}/steps        ordered steps
PUT    /api/v1/flows/{id}/steps        replace the full step list of a draft
POST   /api/v1/flows/{id}/deploy       promote a draft to a new active version
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from flowstudio.api.deps import get_gateway
from flowstudio.api.schemas import (
    DeployResponse,
    FlowCreateRequest,
    FlowDetailResponse,
    FlowListResponse,
    FlowResponse,
    StepPayload,
    StepsReplaceRequest,
    StepsResponse,
)
from flowstudio.schemas import FlowCreate, FlowUpdate
from flowstudio.services.deploy import DeployEngine
from flowstudio.services.persistence import PersistenceGateway
from flowstudio.storage.entities.flow import FlowStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Flows"])


@router.get("/flows", response_model=FlowListResponse)
async def list_flows(
    status: FlowStatus | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    gateway: PersistenceGateway = Depends(get_gateway),
) -> FlowListResponse:
    """List flows newest first."""
    records = await gateway.list_flows(status=status, limit=limit)
    flows = [FlowResponse.from_record(record) for record in records]
    return FlowListResponse(flows=flows, total=len(flows))


@router.post("/flows", response_model=FlowDetailResponse, status_code=201)
async def create_flow(
    body: FlowCreateRequest,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> FlowDetailResponse:
    """Create a draft at version 1, seeding steps from ``template_ids`` when given."""
    attrs = FlowCreate(
        name=body.name,
        description=body.description,
        traffic_percentage=body.traffic_percentage,
    )
    if body.template_ids:
        record, steps = await gateway.create_from_template(attrs, body.template_ids)
    else:
        record, steps = await gateway.create_flow(attrs), []
    return FlowDetailResponse(
        flow=FlowResponse.from_record(record),
        steps=[StepPayload.from_step(step) for step in steps],
    )


@router.get("/flows/{flow_id}", response_model=FlowDetailResponse)
async def get_flow(
    flow_id: str,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> FlowDetailResponse:
    """Get a flow with its ordered steps."""
    record = await gateway.get_flow(flow_id)
    steps = await gateway.load_steps(flow_id)
    return FlowDetailResponse(
        flow=FlowResponse.from_record(record),
        steps=[StepPayload.from_step(step) for step in steps],
    )


@router.patch("/flows/{flow_id}", response_model=FlowResponse)
async def update_flow(
    flow_id: str,
    body: FlowUpdate,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> FlowResponse:
    """Patch mutable flow attributes; omitted fields are untouched."""
    record = await gateway.update_flow(flow_id, body)
    return FlowResponse.from_record(record)


@router.post("/flows/{flow_id}/archive", response_model=FlowResponse)
async def archive_flow(
    flow_id: str,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> FlowResponse:
    """Archive a draft or active flow."""
    record = await gateway.archive_flow(flow_id)
    return FlowResponse.from_record(record)


@router.get("/flows/{flow_id}/steps", response_model=StepsResponse)
async def get_steps(
    flow_id: str,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> StepsResponse:
    steps = await gateway.load_steps(flow_id)
    return StepsResponse(flow_id=flow_id, steps=[StepPayload.from_step(step) for step in steps])


@router.put("/flows/{flow_id}/steps", response_model=StepsResponse)
async def replace_steps(
    flow_id: str,
    body: StepsReplaceRequest,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> StepsResponse:
    """Replace the full step list of a draft.

    Steps with unknown ids are created under fresh ids; the response is
    positionally aligned with the request.
    """
    persisted = await gateway.replace_steps(flow_id, [payload.to_step() for payload in body.steps])
    return StepsResponse(flow_id=flow_id, steps=[StepPayload.from_step(step) for step in persisted])


@router.post("/flows/{flow_id}/deploy", response_model=DeployResponse, status_code=201)
async def deploy_flow(
    flow_id: str,
    gateway: PersistenceGateway = Depends(get_gateway),
) -> DeployResponse:
    """Deploy the stored state of a draft as a new active version."""
    result = await DeployEngine(gateway).deploy(flow_id)
    return DeployResponse(
        flow=FlowResponse.from_record(result.flow),
        steps=[StepPayload.from_step(step) for step in result.steps],
        source_flow_id=result.source_flow_id,
    )
