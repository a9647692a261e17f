"""Analytics event entity model.

Append-only rows written by the onboarding client and by the deploy
engine's audit trail (``event_type="flow_deployed"``).
"""

from typing import Any

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from flowstudio.storage.models import Base, JSONType, TimestampMixin, UUIDMixin


class AnalyticsEvent(Base, UUIDMixin, TimestampMixin):
    """A single analytics or audit event."""

    __tablename__ = "analytics_events"

    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    flow_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    step_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    event_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
