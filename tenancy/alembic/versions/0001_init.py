"""init schema: leases, notifications, audit_events

Revision ID: 0001_init
Revises:
Create Date: 2025-06-01
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "leases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("contract_start", sa.Date(), nullable=True),
        sa.Column("contract_end", sa.Date(), nullable=True),
        sa.Column("rent_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("deposit_amount", sa.Float(), nullable=False, server_default="0"),
        sa.Column("occupancy_status", sa.String(length=20), nullable=False, server_default="occupied"),
        sa.Column("tenant_response", sa.String(length=40), nullable=True),
        sa.Column("tenant_response_date", sa.Date(), nullable=True),
        sa.Column("auto_renewal_applied", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("tenant_user_id", sa.String(length=80), nullable=True),
        sa.Column("landlord_user_id", sa.String(length=80), nullable=True),
        sa.Column("tenant_name", sa.String(length=160), nullable=True),
        sa.Column("tenant_email", sa.String(length=200), nullable=True),
        sa.Column("tenant_phone", sa.String(length=40), nullable=True),
        sa.Column("termination_status", sa.String(length=40), nullable=True),
        sa.Column("termination_date", sa.Date(), nullable=True),
        sa.Column("termination_reason", sa.Text(), nullable=True),
        sa.Column("termination_requested_at", sa.DateTime(), nullable=True),
        sa.Column("termination_confirmed_at", sa.DateTime(), nullable=True),
        sa.Column("termination_completed_at", sa.DateTime(), nullable=True),
        sa.Column("termination_requested_by", sa.String(length=80), nullable=True),
        sa.Column("termination_deductions_json", sa.Text(), nullable=True),
        sa.Column("termination_return_override", sa.Float(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_leases_contract_end", "leases", ["contract_end"])
    op.create_index("ix_leases_tenant_user_id", "leases", ["tenant_user_id"])
    op.create_index("ix_leases_landlord_user_id", "leases", ["landlord_user_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.String(length=80), nullable=False),
        sa.Column("kind", sa.String(length=60), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("data_json", sa.Text(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_notifications_user_created", "notifications", ["user_id", "created_at"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("actor_user_id", sa.String(length=80), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_events_entity_id", "audit_events", ["entity_id"])


def downgrade():
    op.drop_index("ix_audit_events_entity_id", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_notifications_user_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("ix_leases_landlord_user_id", table_name="leases")
    op.drop_index("ix_leases_tenant_user_id", table_name="leases")
    op.drop_index("ix_leases_contract_end", table_name="leases")
    op.drop_table("leases")
