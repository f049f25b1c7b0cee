"""review_workflow_core

Create tenants, users, projects and the three engine tables:
workflow_stages, asset_versions (+ feedback_items) and scope_decisions.

Revision ID: 5c1e2a7b9d30
Revises:
Create Date: 2026-10-17 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5c1e2a7b9d30"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "tenants" not in existing_tables:
        op.create_table(
            "tenants",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("slug", sa.String(length=100), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("slug"),
        )

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("full_name", sa.String(length=200), nullable=True),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="editor"),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tenant_id", "email", name="uq_user_tenant_email"),
        )
        op.create_index("ix_users_tenant_id", "users", ["tenant_id"])

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="draft"),
            sa.Column("due_date", sa.Date(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_tenant_id", "projects", ["tenant_id"])

    if "workflow_stages" not in existing_tables:
        op.create_table(
            "workflow_stages",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("stage_name", sa.String(length=40), nullable=False),
            sa.Column("sla_hours", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("owner_user_id", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "stage_name", name="uq_workflow_stage_project_name"),
        )
        op.create_index("ix_workflow_stages_tenant_id", "workflow_stages", ["tenant_id"])
        op.create_index("ix_workflow_stages_project_id", "workflow_stages", ["project_id"])
        op.create_index("ix_workflow_stages_tenant_open", "workflow_stages", ["tenant_id", "completed_at"])

    if "asset_versions" not in existing_tables:
        op.create_table(
            "asset_versions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("version_no", sa.Integer(), nullable=False),
            sa.Column("file_name", sa.String(length=255), nullable=False),
            sa.Column("file_url", sa.String(length=1000), nullable=True),
            sa.Column("file_size", sa.BigInteger(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="DRAFT"),
            sa.Column("approved_by_id", sa.Integer(), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["approved_by_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "version_no", name="uq_asset_version_project_no"),
        )
        op.create_index("ix_asset_versions_tenant_id", "asset_versions", ["tenant_id"])
        op.create_index("ix_asset_versions_project_id", "asset_versions", ["project_id"])

    if "feedback_items" not in existing_tables:
        op.create_table(
            "feedback_items",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("asset_version_id", sa.Integer(), nullable=False),
            sa.Column("text", sa.Text(), nullable=False),
            sa.Column("timecode_sec", sa.Float(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="new"),
            sa.Column("author_user_id", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["asset_version_id"], ["asset_versions.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["author_user_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_feedback_items_tenant_id", "feedback_items", ["tenant_id"])
        op.create_index("ix_feedback_items_asset_version_id", "feedback_items", ["asset_version_id"])

    if "scope_decisions" not in existing_tables:
        op.create_table(
            "scope_decisions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("tenant_id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("feedback_item_id", sa.Integer(), nullable=False),
            sa.Column("ai_label", sa.String(length=20), nullable=False),
            sa.Column("ai_confidence", sa.Float(), nullable=False),
            sa.Column("ai_reasoning", sa.Text(), nullable=True),
            sa.Column("pm_decision", sa.String(length=20), nullable=True),
            sa.Column("pm_reason", sa.Text(), nullable=True),
            sa.Column("change_request_amount", sa.Numeric(12, 2), nullable=True),
            sa.Column("decided_by_id", sa.Integer(), nullable=True),
            sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["feedback_item_id"], ["feedback_items.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["decided_by_id"], ["users.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("feedback_item_id", name="uq_scope_decision_feedback_item"),
        )
        op.create_index("ix_scope_decisions_tenant_id", "scope_decisions", ["tenant_id"])
        op.create_index("ix_scope_decisions_project_id", "scope_decisions", ["project_id"])
        op.create_index("ix_scope_decisions_tenant_project", "scope_decisions", ["tenant_id", "project_id"])


def downgrade():
    existing_tables = set(sa_inspect(op.get_bind()).get_table_names())
    for table in (
        "scope_decisions",
        "feedback_items",
        "asset_versions",
        "workflow_stages",
        "projects",
        "users",
        "tenants",
    ):
        if table in existing_tables:
            op.drop_table(table)
