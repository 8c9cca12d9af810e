"""initial schema

Revision ID: 0001
Revises:
Create Date: 2024-03-01 00:00:00
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "organizations",
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("timezone", sa.Text(), nullable=False, server_default=sa.text("'Pacific/Auckland'")),
        sa.Column("enforce_opening_hours", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_table(
        "staff",
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("booking_version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("id", sa.Integer(), primary_key=True),
    )
    op.create_table(
        "services",
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("duration_min", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("id", sa.Integer(), primary_key=True),
    )
    op.create_table(
        "opening_hours",
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("open_min", sa.Integer(), nullable=False),
        sa.Column("close_min", sa.Integer(), nullable=False),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.UniqueConstraint("org_id", "weekday"),
    )
    op.create_table(
        "customers",
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("phone", sa.Text(), nullable=False),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.Text(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("org_id", "phone"),
    )
    op.create_table(
        "appointments",
        sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("staff_id", sa.Integer(), sa.ForeignKey("staff.id", ondelete="SET NULL")),
        sa.Column("service_id", sa.Integer(), sa.ForeignKey("services.id", ondelete="SET NULL")),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id", ondelete="SET NULL")),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("customer_phone", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("starts_at", sa.DateTime(), nullable=False),
        sa.Column("ends_at", sa.DateTime(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'SCHEDULED'")),
        sa.Column("source", sa.Text(), nullable=False, server_default=sa.text("'manual'")),
        sa.Column("client_token", sa.Text()),
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("notes", sa.Text()),
        sa.Column("cancelled_at", sa.DateTime()),
        sa.Column("cancelled_by", sa.Text()),
        sa.Column("created_at", sa.Text(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.Text(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("org_id", "client_token"),
    )
    op.create_index("ix_appointments_org_staff_start", "appointments", ["org_id", "staff_id", "starts_at"])
    op.create_index("ix_appointments_org_source", "appointments", ["org_id", "source"])


def downgrade():
    op.drop_index("ix_appointments_org_source", table_name="appointments")
    op.drop_index("ix_appointments_org_staff_start", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("customers")
    op.drop_table("opening_hours")
    op.drop_table("services")
    op.drop_table("staff")
    op.drop_table("organizations")
