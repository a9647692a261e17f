"""Request and response bodies for the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from flowstudio.schemas import FlowRecord, Step, Template


class FlowCreateRequest(BaseModel):
    """Request body for creating a draft flow."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    traffic_percentage: int | None = Field(default=None, ge=0, le=100)
    template_ids: list[str] = Field(
        default_factory=list,
        max_length=100,
        description="Seed one step per template id",
    )


class FlowResponse(BaseModel):
    """A flow header."""

    id: str
    name: str
    description: str | None
    status: str
    version: str
    traffic_percentage: int
    source_flow_id: str | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_record(cls, record: FlowRecord) -> FlowResponse:
        return cls(**record.model_dump())


class FlowListResponse(BaseModel):
    flows: list[FlowResponse]
    total: int


class StepPayload(BaseModel):
    """One step as sent and returned by the API."""

    id: str = Field(..., min_length=1, max_length=100)
    type: str = Field(..., min_length=1, max_length=100)
    order: int = 0
    config: dict[str, Any] = Field(default_factory=dict)
    tracking_event_name: str | None = Field(default=None, max_length=200)

    @classmethod
    def from_step(cls, step: Step) -> StepPayload:
        return cls(**step.model_dump())

    def to_step(self) -> Step:
        return Step(**self.model_dump())


class StepsReplaceRequest(BaseModel):
    """Full ordered step list for a draft."""

    steps: list[StepPayload] = Field(default_factory=list, max_length=200)


class StepsResponse(BaseModel):
    flow_id: str
    steps: list[StepPayload]


class FlowDetailResponse(BaseModel):
    """A flow with its ordered steps."""

    flow: FlowResponse
    steps: list[StepPayload]


class DeployResponse(BaseModel):
    flow: FlowResponse
    steps: list[StepPayload]
    source_flow_id: str


class TemplateResponse(BaseModel):
    id: str
    type: str
    name: str
    default_config: dict[str, Any]

    @classmethod
    def from_template(cls, template: Template) -> TemplateResponse:
        return cls(**template.model_dump())


class TemplateListResponse(BaseModel):
    templates: list[TemplateResponse]
    total: int


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
