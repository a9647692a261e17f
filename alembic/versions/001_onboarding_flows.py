"""Add onboarding flow tables.

Flows are versioned headers; flow_steps hold the ordered, configurable
screens of each flow; analytics_events is the append-only event and
audit log (deploys write ``flow_deployed`` rows here).

Revision ID: 001_onboarding_flows
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from typing import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_onboarding_flows"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "flows",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, index=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft", index=True),
        sa.Column("version", sa.String(20), nullable=False, server_default="1"),
        sa.Column("traffic_percentage", sa.Integer(), nullable=False, server_default="100"),
        sa.Column(
            "source_flow_id",
            sa.String(36),
            sa.ForeignKey("flows.id", ondelete="SET NULL", name="fk_flows_source_flow_id_flows"),
            nullable=True,
            index=True,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "traffic_percentage >= 0 AND traffic_percentage <= 100",
            name="ck_flows_traffic_percentage_range",
        ),
        sa.UniqueConstraint("source_flow_id", "version", name="uq_flows_source_version"),
    )

    op.create_table(
        "flow_steps",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "flow_id",
            sa.String(36),
            sa.ForeignKey("flows.id", ondelete="CASCADE", name="fk_flow_steps_flow_id_flows"),
            nullable=False,
            index=True,
        ),
        sa.Column("step_order", sa.Integer(), nullable=False),
        sa.Column("screen_type", sa.String(100), nullable=False, index=True),
        sa.Column("config_json", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("tracking_event_name", sa.String(200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("flow_id", "step_order", name="uq_flow_steps_flow_order"),
    )

    op.create_table(
        "analytics_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(100), nullable=False, index=True),
        sa.Column("flow_id", sa.String(36), nullable=True, index=True),
        sa.Column("step_id", sa.String(100), nullable=True),
        sa.Column("event_type", sa.String(100), nullable=False, index=True),
        sa.Column("event_data", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("analytics_events")
    op.drop_table("flow_steps")
    op.drop_table("flows")
