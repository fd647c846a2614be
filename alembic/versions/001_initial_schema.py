"""Initial schema for Solarcrew.

Creates firms, crews, projects, reclamations and the two history tables,
together with the enum types they use. Projects and reclamations carry a
``version`` column for optimistic concurrency.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PROJECT_STATUSES = (
    "planning",
    "equipment_waiting",
    "equipment_arrived",
    "work_scheduled",
    "work_in_progress",
    "work_completed",
    "in_progress",
    "done",
    "invoiced",
    "send_invoice",
    "invoice_sent",
    "paid",
)
RECLAMATION_STATUSES = ("pending", "accepted", "rejected", "in_progress", "completed", "cancelled")
RECLAMATION_ACTIONS = (
    "created", "accepted", "rejected", "reassigned", "started", "completed", "cancelled",
)
CHANGE_TYPES = ("status_change", "invoice", "dates_update", "reclamation", "override")


def _enum(name: str, values: Sequence[str]) -> sa.Enum:
    return sa.Enum(*values, name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    sa.Enum("extended", "simplified", name="status_schema").create(bind, checkfirst=True)
    sa.Enum(*PROJECT_STATUSES, name="project_status").create(bind, checkfirst=True)
    sa.Enum(*RECLAMATION_STATUSES, name="reclamation_status").create(bind, checkfirst=True)
    sa.Enum(*RECLAMATION_ACTIONS, name="reclamation_action").create(bind, checkfirst=True)
    sa.Enum(*CHANGE_TYPES, name="project_change_type").create(bind, checkfirst=True)

    # Firms table
    op.create_table(
        "firms",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column(
            "status_schema",
            _enum("status_schema", ("extended", "simplified")),
            nullable=False,
            server_default="extended",
        ),
        *_timestamps(),
    )

    # Crews table
    op.create_table(
        "crews",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("firm_id", sa.Uuid(), sa.ForeignKey("firms.id"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("idx_crews_firm", "crews", ["firm_id"])

    # Projects table
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("firm_id", sa.Uuid(), sa.ForeignKey("firms.id"), nullable=False),
        sa.Column("crew_id", sa.Uuid(), sa.ForeignKey("crews.id"), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("status_schema", _enum("status_schema", ("extended", "simplified")), nullable=False),
        sa.Column(
            "status",
            _enum("project_status", PROJECT_STATUSES),
            nullable=False,
            server_default="planning",
        ),
        sa.Column("equipment_expected_date", sa.Date(), nullable=True),
        sa.Column("equipment_arrived_date", sa.Date(), nullable=True),
        sa.Column("work_start_date", sa.Date(), nullable=True),
        sa.Column("work_end_date", sa.Date(), nullable=True),
        sa.Column("billing_client_id", sa.Text(), nullable=True),
        sa.Column("invoice_number", sa.Text(), nullable=True),
        sa.Column("invoice_url", sa.Text(), nullable=True),
        sa.Column("active_reclamation_id", sa.Uuid(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("idx_projects_firm_status", "projects", ["firm_id", "status"])

    # Reclamations table
    op.create_table(
        "reclamations",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("firm_id", sa.Uuid(), sa.ForeignKey("firms.id"), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("deadline", sa.Date(), nullable=False),
        sa.Column(
            "status",
            _enum("reclamation_status", RECLAMATION_STATUSES),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("original_crew_id", sa.Uuid(), sa.ForeignKey("crews.id"), nullable=False),
        sa.Column("current_crew_id", sa.Uuid(), sa.ForeignKey("crews.id"), nullable=False),
        sa.Column(
            "project_status_at_creation",
            _enum("project_status", PROJECT_STATUSES),
            nullable=False,
        ),
        sa.Column("created_by", sa.Text(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
    )
    op.create_index("ix_reclamations_project_id", "reclamations", ["project_id"])
    op.create_index("ix_reclamations_firm_id", "reclamations", ["firm_id"])
    op.create_index("ix_reclamations_current_crew_id", "reclamations", ["current_crew_id"])

    # At most one open reclamation per project
    op.create_index(
        "uq_reclamations_open_per_project",
        "reclamations",
        ["project_id"],
        unique=True,
        postgresql_where=sa.text("status NOT IN ('completed', 'cancelled')"),
        sqlite_where=sa.text("status NOT IN ('completed', 'cancelled')"),
    )

    # History tables
    op.create_table(
        "project_history",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("actor_id", sa.Text(), nullable=False),
        sa.Column("change_type", _enum("project_change_type", CHANGE_TYPES), nullable=False),
        sa.Column("field_name", sa.Text(), nullable=True),
        sa.Column("old_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("irregular", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_project_history_project_id", "project_history", ["project_id"])

    op.create_table(
        "reclamation_history",
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column(
            "reclamation_id",
            sa.Uuid(),
            sa.ForeignKey("reclamations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", _enum("reclamation_action", RECLAMATION_ACTIONS), nullable=False),
        sa.Column("actor_id", sa.Text(), nullable=True),
        sa.Column("crew_id", sa.Uuid(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_reclamation_history_reclamation_id", "reclamation_history", ["reclamation_id"]
    )


def downgrade() -> None:
    op.drop_table("reclamation_history")
    op.drop_table("project_history")
    op.drop_table("reclamations")
    op.drop_table("projects")
    op.drop_table("crews")
    op.drop_table("firms")

    # Drop enum types
    bind = op.get_bind()
    for name in (
        "project_change_type",
        "reclamation_action",
        "reclamation_status",
        "project_status",
        "status_schema",
    ):
        sa.Enum(name=name).drop(bind, checkfirst=True)
