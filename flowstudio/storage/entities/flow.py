"""Flow entity model.

A named, versioned sequence of onboarding steps. Drafts are editable; a
deploy never mutates a draft but inserts a new ACTIVE row whose steps are
copies of the draft's steps.

Lifecycle: draft --deploy--> (new flow, active); draft/active --archive--> archived
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flowstudio.storage.models import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from flowstudio.storage.entities.flow_step import FlowStep


class FlowStatus(str, Enum):
    """Lifecycle status of a flow."""

    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


# Valid status transitions (deploy creates a new row, it is not a transition)
VALID_FLOW_STATUS_TRANSITIONS: dict[FlowStatus, set[FlowStatus]] = {
    FlowStatus.DRAFT: {FlowStatus.ARCHIVED},
    FlowStatus.ACTIVE: {FlowStatus.ARCHIVED},
    FlowStatus.ARCHIVED: set(),
}


class Flow(Base, UUIDMixin, TimestampMixin):
    """Onboarding flow header row.

    Attributes:
        id: Unique identifier (UUID)
        name: Display name
        description: Optional free text
        status: draft | active | archived
        version: Monotonic integer rendered as a string ("1", "2", ...)
        traffic_percentage: Share of users routed to this flow when several are active
        source_flow_id: Draft this version was deployed from (None for drafts)
    """

    __tablename__ = "flows"
    __table_args__ = (
        CheckConstraint(
            "traffic_percentage >= 0 AND traffic_percentage <= 100",
            name="traffic_percentage_range",
        ),
        # One row per version of a draft; drafts themselves have no source
        UniqueConstraint("source_flow_id", "version", name="uq_flows_source_version"),
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
        doc="Display name",
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        doc="Optional free text description",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=FlowStatus.DRAFT.value,
        index=True,
        doc="Flow status: draft, active, or archived",
    )
    version: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="1",
        doc="Monotonic integer version rendered as a string",
    )
    traffic_percentage: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=100,
        doc="Traffic share (0-100) when several flows are active",
    )
    source_flow_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("flows.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Draft flow this version was deployed from",
    )

    steps: Mapped[list["FlowStep"]] = relationship(
        "FlowStep",
        back_populates="flow",
        cascade="all, delete-orphan",
        order_by="FlowStep.step_order",
        lazy="raise",
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<Flow(name={self.name!r}, v{self.version}, status={self.status!r})>"

    @property
    def is_editable(self) -> bool:
        """Only drafts accept step changes."""
        return self.status == FlowStatus.DRAFT.value

    def can_transition_to(self, new_status: FlowStatus) -> bool:
        """Check whether moving to ``new_status`` is allowed."""
        current = FlowStatus(self.status)
        return new_status in VALID_FLOW_STATUS_TRANSITIONS.get(current, set())
