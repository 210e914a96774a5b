"""create prospect, routing and audit tables

Revision ID: 202610010001
Revises:
Create Date: 2026-10-01 00:01:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610010001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "prospect",
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("id", sa.String(length=320), nullable=False),
        sa.Column("institution_name", sa.Text(), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("product", sa.String(length=32), nullable=False),
        sa.Column("region", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("timezone", sa.String(length=64), nullable=False, server_default=""),
        sa.Column("lms", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("stage", sa.String(length=16), nullable=False, server_default="research"),
        sa.Column("wedges", sa.JSON(), nullable=False),
        sa.Column("why_now", sa.Text(), nullable=False, server_default=""),
        sa.Column("current_tools", sa.JSON(), nullable=False),
        sa.Column("owner_id", sa.String(length=255), nullable=True),
        sa.Column("owner_name", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="new"),
        sa.Column("priority", sa.String(length=1), nullable=False, server_default="B"),
        sa.Column("last_contacted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_step", sa.Text(), nullable=False, server_default=""),
        sa.Column("next_step_due_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("score >= 0 AND score <= 100", name="ck_prospect_score_range"),
        sa.PrimaryKeyConstraint("tenant_id", "id"),
    )
    op.create_index("ix_prospect_owner", "prospect", ["tenant_id", "owner_id"], unique=False)

    op.create_table(
        "prospect_contact",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("prospect_id", sa.String(length=320), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("role", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["tenant_id", "prospect_id"],
            ["prospect.tenant_id", "prospect.id"],
            ondelete="CASCADE",
            name="fk_prospect_contact_parent",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_prospect_contact_parent", "prospect_contact", ["tenant_id", "prospect_id"], unique=False)

    op.create_table(
        "prospect_signal",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("prospect_id", sa.String(length=320), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("source", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["tenant_id", "prospect_id"],
            ["prospect.tenant_id", "prospect.id"],
            ondelete="CASCADE",
            name="fk_prospect_signal_parent",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_prospect_signal_parent", "prospect_signal", ["tenant_id", "prospect_id"], unique=False)

    op.create_table(
        "owner_pool_entry",
        sa.Column("owner_id", sa.String(length=255), nullable=False),
        sa.Column("tenant_roles", sa.JSON(), nullable=False),
        sa.Column("regions", sa.JSON(), nullable=True),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("owner_id"),
    )

    op.create_table(
        "rotation_cursor",
        sa.Column("scope_key", sa.String(length=255), nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("region", sa.String(length=64), nullable=False),
        sa.Column("last_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("scope_key"),
    )
    op.create_index("ix_rotation_cursor_tenant", "rotation_cursor", ["tenant_id"], unique=False)

    op.create_table(
        "audit_record",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("tenant_id", sa.String(length=128), nullable=False),
        sa.Column("prospect_id", sa.String(length=320), nullable=False),
        sa.Column("by", sa.String(length=255), nullable=False),
        sa.Column("correlation_id", sa.String(length=128), nullable=True),
        sa.Column("at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_record_prospect", "audit_record", ["tenant_id", "prospect_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_record_prospect", table_name="audit_record")
    op.drop_table("audit_record")
    op.drop_index("ix_rotation_cursor_tenant", table_name="rotation_cursor")
    op.drop_table("rotation_cursor")
    op.drop_table("owner_pool_entry")
    op.drop_index("ix_prospect_signal_parent", table_name="prospect_signal")
    op.drop_table("prospect_signal")
    op.drop_index("ix_prospect_contact_parent", table_name="prospect_contact")
    op.drop_table("prospect_contact")
    op.drop_index("ix_prospect_owner", table_name="prospect")
    op.drop_table("prospect")
