"""Database entity models.

All SQLAlchemy ORM models for Flow Studio.
"""

from flowstudio.storage.entities.analytics_event import AnalyticsEvent
from flowstudio.storage.entities.flow import (
    VALID_FLOW_STATUS_TRANSITIONS,
    Flow,
    FlowStatus,
)
from flowstudio.storage.entities.flow_step import FlowStep, default_tracking_event_name

__all__ = [
    "AnalyticsEvent",
    "Flow",
    "FlowStatus",
    "FlowStep",
    "VALID_FLOW_STATUS_TRANSITIONS",
    "default_tracking_event_name",
]
