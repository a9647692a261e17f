"""Factory Boy factories for test data generation.

These build the detached pydantic models (not ORM rows) so they can be
used in unit tests without a database.
"""

from datetime import datetime, timezone
from uuid import uuid4

import factory
from factory import LazyFunction, Sequence

from flowstudio.schemas import FlowRecord, Step, Template


class FlowRecordFactory(factory.Factory):
    """Factory for flow headers (a draft at version 1 by default)."""

    class Meta:
        model = FlowRecord

    id = LazyFunction(lambda: str(uuid4()))
    name = Sequence(lambda n: f"Onboarding {n}")
    description = None
    status = "draft"
    version = "1"
    traffic_percentage = 100
    source_flow_id = None
    created_at = LazyFunction(lambda: datetime.now(timezone.utc))
    updated_at = LazyFunction(lambda: datetime.now(timezone.utc))


class ActiveFlowFactory(FlowRecordFactory):
    """Factory for deployed flows."""

    status = "active"
    version = "2"
    source_flow_id = LazyFunction(lambda: str(uuid4()))


class StepFactory(factory.Factory):
    """Factory for steps with a small nested config."""

    class Meta:
        model = Step

    id = Sequence(lambda n: f"step-{n}")
    type = "welcome"
    order = 0
    config = LazyFunction(lambda: {"title": "Hello", "button": {"text": "Next"}})
    tracking_event_name = None


class TemplateFactory(factory.Factory):
    """Factory for catalog templates."""

    class Meta:
        model = Template

    id = Sequence(lambda n: f"template-{n}")
    type = factory.SelfAttribute("id")
    name = Sequence(lambda n: f"Template {n}")
    default_config = LazyFunction(dict)


def step_list(*types: str) -> list[Step]:
    """Ordered steps of the given types with ids ``s0``, ``s1``, ..."""
    return [StepFactory(id=f"s{index}", type=step_type, order=index) for index, step_type in enumerate(types)]
