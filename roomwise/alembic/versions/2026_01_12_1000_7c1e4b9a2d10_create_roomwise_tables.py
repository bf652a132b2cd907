"""create_roomwise_tables

Revision ID: 7c1e4b9a2d10
Revises:
Create Date: 2026-01-12 10:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = "7c1e4b9a2d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def _job_columns(initial_status: str):
    return [
        sa.Column("status", sa.String(length=20), nullable=False, server_default=initial_status),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("attempt", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema - idempotent (safe to run multiple times)."""
    conn = op.get_bind()
    inspector = inspect(conn)
    existing_tables = inspector.get_table_names()

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=128), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("budget", sa.JSON(), nullable=True),
            sa.Column("style_profile", sa.JSON(), nullable=True),
            sa.Column("constraints", sa.JSON(), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_projects_user_id"), "projects", ["user_id"], unique=False)

    if "rooms" not in existing_tables:
        op.create_table(
            "rooms",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("type", sa.String(length=50), nullable=False),
            sa.Column("photos", sa.JSON(), nullable=False),
            sa.Column("dimensions", sa.JSON(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_rooms_project_id"), "rooms", ["project_id"], unique=False)

    if "analyses" not in existing_tables:
        op.create_table(
            "analyses",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("room_id", sa.String(length=36), nullable=False),
            sa.Column("photo_storage_ids", sa.JSON(), nullable=False),
            sa.Column("results", sa.JSON(), nullable=True),
            *_job_columns("pending"),
            sa.ForeignKeyConstraint(["room_id"], ["rooms.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_analyses_room_id"), "analyses", ["room_id"], unique=False)
        op.create_index(op.f("ix_analyses_status"), "analyses", ["status"], unique=False)
        op.create_index(op.f("ix_analyses_created_at"), "analyses", ["created_at"], unique=False)
        op.create_index("ix_analyses_room_status", "analyses", ["room_id", "status"], unique=False)

    if "recommendations" not in existing_tables:
        op.create_table(
            "recommendations",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("room_id", sa.String(length=36), nullable=False),
            sa.Column("analysis_id", sa.String(length=36), nullable=False),
            sa.Column("tier", sa.String(length=30), nullable=False),
            sa.Column("question", sa.Text(), nullable=True),
            sa.Column("items", sa.JSON(), nullable=False),
            sa.Column("summary", sa.Text(), nullable=True),
            sa.Column("product_search_status", sa.String(length=20), nullable=True),
            *_job_columns("generating"),
            sa.ForeignKeyConstraint(["room_id"], ["rooms.id"]),
            sa.ForeignKeyConstraint(["analysis_id"], ["analyses.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_recommendations_room_id"), "recommendations", ["room_id"], unique=False)
        op.create_index(op.f("ix_recommendations_status"), "recommendations", ["status"], unique=False)
        op.create_index(op.f("ix_recommendations_created_at"), "recommendations", ["created_at"], unique=False)
        op.create_index("ix_recommendations_room_tier", "recommendations", ["room_id", "tier"], unique=False)

    if "visualizations" not in existing_tables:
        op.create_table(
            "visualizations",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("room_id", sa.String(length=36), nullable=False),
            sa.Column("recommendation_id", sa.String(length=36), nullable=True),
            sa.Column("original_photo_id", sa.String(length=200), nullable=False),
            sa.Column("type", sa.String(length=30), nullable=False),
            sa.Column("input", sa.JSON(), nullable=False),
            sa.Column("output", sa.JSON(), nullable=True),
            *_job_columns("queued"),
            sa.ForeignKeyConstraint(["room_id"], ["rooms.id"]),
            sa.ForeignKeyConstraint(["recommendation_id"], ["recommendations.id"]),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_visualizations_room_id"), "visualizations", ["room_id"], unique=False)
        op.create_index(op.f("ix_visualizations_status"), "visualizations", ["status"], unique=False)
        op.create_index(op.f("ix_visualizations_created_at"), "visualizations", ["created_at"], unique=False)

    if "api_usage_events" not in existing_tables:
        op.create_table(
            "api_usage_events",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("provider", sa.String(length=50), nullable=False),
            sa.Column("model", sa.String(length=100), nullable=False),
            sa.Column("operation", sa.String(length=100), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("estimated_cost_usd", sa.Float(), nullable=False, server_default="0"),
            sa.Column("units", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("input_tokens", sa.Integer(), nullable=True),
            sa.Column("output_tokens", sa.Integer(), nullable=True),
            sa.Column("total_tokens", sa.Integer(), nullable=True),
            sa.Column("room_id", sa.String(length=36), nullable=True),
            sa.Column("project_id", sa.String(length=36), nullable=True),
            sa.Column("user_id", sa.String(length=128), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        for column in ("provider", "model", "operation", "room_id", "project_id", "user_id", "created_at"):
            op.create_index(op.f(f"ix_api_usage_events_{column}"), "api_usage_events", [column], unique=False)
        op.create_index("ix_api_usage_events_user_created", "api_usage_events", ["user_id", "created_at"], unique=False)

    if "rate_limits" not in existing_tables:
        op.create_table(
            "rate_limits",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("user_id", sa.String(length=128), nullable=False),
            sa.Column("operation", sa.String(length=50), nullable=False),
            sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("window_start", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", "operation", name="uq_rate_limits_user_operation"),
        )


def downgrade() -> None:
    conn = op.get_bind()
    existing_tables = inspect(conn).get_table_names()
    for table in (
        "rate_limits",
        "api_usage_events",
        "visualizations",
        "recommendations",
        "analyses",
        "rooms",
        "projects",
    ):
        if table in existing_tables:
            op.drop_table(table)
