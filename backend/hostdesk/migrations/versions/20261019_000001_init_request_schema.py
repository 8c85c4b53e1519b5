"""init request schema

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

Tables: service_requests, request_comments, user_profiles, audit_logs.
Status flow: Pending -> In Progress | Rejected -> New Update | Active | Completed.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261019_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "service_requests",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("whatsapp", sa.String(32), nullable=False),
        sa.Column("project_name", sa.String(255), nullable=False),
        sa.Column("project_type", sa.String(64), nullable=False),
        sa.Column("other_project_type_description", sa.Text(), nullable=True),
        sa.Column("subdomain", sa.String(63), nullable=False),
        sa.Column("has_project_files", sa.String(64), nullable=False),
        sa.Column("project_link", sa.Text(), nullable=True),
        sa.Column("new_project_description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default=sa.text("'Pending'")),
        sa.Column("row_version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_viewed_by_client", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "status IN ('Pending','In Progress','New Update','Active','Completed','Rejected')",
            name="chk_service_request_status",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("uq_service_requests_subdomain", "service_requests", ["subdomain"], unique=True)
    op.create_index("idx_service_requests_user", "service_requests", ["user_id"])
    op.create_index("idx_service_requests_created", "service_requests", ["created_at"])

    op.create_table(
        "request_comments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("request_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("author", sa.String(255), nullable=False),
        sa.Column("author_id", sa.String(128), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["request_id"], ["service_requests.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_request_comments_request", "request_comments", ["request_id", "created_at"])

    op.create_table(
        "user_profiles",
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("website", sa.Text(), nullable=True),
        sa.Column("github", sa.Text(), nullable=True),
        sa.Column("twitter", sa.Text(), nullable=True),
        sa.Column("linkedin", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("old_value", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("new_value", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("actor_type", sa.String(50), nullable=False),
        sa.Column("actor_id", sa.String(128), nullable=True),
        sa.Column("ip_address", postgresql.INET(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("idx_audit_logs_entity", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("user_profiles")
    op.drop_index("idx_request_comments_request", table_name="request_comments")
    op.drop_table("request_comments")
    op.drop_index("idx_service_requests_created", table_name="service_requests")
    op.drop_index("idx_service_requests_user", table_name="service_requests")
    op.drop_index("uq_service_requests_subdomain", table_name="service_requests")
    op.drop_table("service_requests")
