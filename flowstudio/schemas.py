"""Shared Pydantic models for flows, steps and templates.

These are the detached, session-free shapes that cross layer boundaries:
repositories hand ORM entities to the gateway, the gateway hands these
models to the editor, the deploy engine and the API.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from flowstudio.storage.entities import Flow, FlowStep


class Step(BaseModel):
    """One configurable unit of a flow as held by the editor.

    Attributes:
        id: Durable UUID once persisted, a client-only id before that
        type: Template identifier (stored as ``screen_type``)
        order: Zero-based position; dense and unique within the list
        config: Opaque nested configuration tree
        tracking_event_name: Analytics event emitted when the step is viewed
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    type: str
    order: int = 0
    config: dict[str, Any] = Field(default_factory=dict)
    tracking_event_name: str | None = None

    @classmethod
    def from_entity(cls, entity: FlowStep) -> Step:
        """Build a step from a persisted row."""
        return cls(
            id=entity.id,
            type=entity.screen_type,
            order=entity.step_order,
            config=entity.config or {},
            tracking_event_name=entity.tracking_event_name,
        )


class FlowRecord(BaseModel):
    """A flow header row, detached from its session."""

    id: str
    name: str
    description: str | None = None
    status: str
    version: str
    traffic_percentage: int
    source_flow_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Flow) -> FlowRecord:
        """Build a record from a persisted row."""
        return cls(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            status=entity.status,
            version=entity.version,
            traffic_percentage=entity.traffic_percentage,
            source_flow_id=entity.source_flow_id,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    @property
    def version_number(self) -> int:
        """The version as an integer (versions are stored as strings)."""
        return int(self.version)


class FlowCreate(BaseModel):
    """Attributes accepted when creating a flow."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    traffic_percentage: int | None = Field(default=None, ge=0, le=100)


class FlowUpdate(BaseModel):
    """Patchable flow attributes. Unset fields are left untouched."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    traffic_percentage: int | None = Field(default=None, ge=0, le=100)


class Template(BaseModel):
    """A step template from the catalog."""

    id: str
    type: str
    name: str
    default_config: dict[str, Any] = Field(default_factory=dict)


class DeployResult(BaseModel):
    """Outcome of a successful deploy."""

    flow: FlowRecord
    steps: list[Step]
    source_flow_id: str
