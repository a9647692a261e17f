"""Data access layer.

Repositories take an ``AsyncSession`` and flush; callers own commits.
"""

from flowstudio.dal.events import AnalyticsEventRepository
from flowstudio.dal.flows import FlowRepository, FlowStepRepository

__all__ = [
    "AnalyticsEventRepository",
    "FlowRepository",
    "FlowStepRepository",
]
