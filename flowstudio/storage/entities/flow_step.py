"""Flow step entity model.

One configurable screen within a flow. ``step_order`` is dense (0..N-1)
and unique per flow; ``config`` is an opaque JSON tree shaped by
``screen_type``.
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from flowstudio.storage.models import Base, JSONType, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from flowstudio.storage.entities.flow import Flow


def default_tracking_event_name(screen_type: str) -> str:
    """Analytics event emitted when a step of ``screen_type`` is shown."""
    return f"onboarding_{screen_type}_viewed"


class FlowStep(Base, UUIDMixin, TimestampMixin):
    """A single step row of a flow."""

    __tablename__ = "flow_steps"
    __table_args__ = (UniqueConstraint("flow_id", "step_order", name="uq_flow_steps_flow_order"),)

    flow_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("flows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="FK to parent flow",
    )
    step_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Zero-based position within the flow",
    )
    screen_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        doc="Template identifier",
    )
    config: Mapped[dict[str, Any]] = mapped_column(
        "config_json",
        JSONType,
        nullable=False,
        default=dict,
        doc="Nested configuration tree",
    )
    tracking_event_name: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
        doc="Analytics event emitted when the step is viewed",
    )

    flow: Mapped["Flow"] = relationship("Flow", back_populates="steps")

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<FlowStep(flow_id={self.flow_id!r}, order={self.step_order}, type={self.screen_type!r})>"
