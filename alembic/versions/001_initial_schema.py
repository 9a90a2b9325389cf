"""Initial schema - tenants, users, quotes, quote_messages, quote_number_sequences, work_orders.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

QUOTE_STATUSES = (
    "Draft",
    "Submitted",
    "Information Requested",
    "Quoted",
    "Under Discussion",
    "Approved",
    "Declined",
    "Expired",
    "Converted",
)


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(50), unique=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", "archived", name="tenantstatus", native_enum=False, length=20),
            nullable=False,
        ),
        sa.Column("primary_contact_email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column(
            "role",
            sa.Enum(
                "platform_admin", "staff", "client_admin", "client",
                name="role", native_enum=False, length=20,
            ),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_unique_constraint("uq_users_tenant_email", "users", ["tenant_id", "email"])

    op.create_table(
        "work_orders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("job_no", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("work_order_type", sa.String(20), nullable=False),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("supplier_name", sa.String(255), nullable=False),
        sa.Column("property_name", sa.String(255), nullable=False),
        sa.Column("property_address", sa.Text(), nullable=True),
        sa.Column("property_phone", sa.String(50), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("po_number", sa.String(100), nullable=True),
        sa.Column("authorized_by", sa.String(255), nullable=True),
        sa.Column("authorized_email", sa.String(255), nullable=True),
        sa.Column("is_urgent", sa.Boolean(), nullable=False),
        sa.Column("created_from_quote_id", sa.Integer(), unique=True, nullable=True),
        sa.Column("quote_number", sa.String(20), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_work_orders_tenant_id", "work_orders", ["tenant_id"])
    op.create_unique_constraint("uq_work_orders_tenant_job_no", "work_orders", ["tenant_id", "job_no"])

    op.create_table(
        "quotes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("quote_number", sa.String(20), unique=True, nullable=False),
        sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*QUOTE_STATUSES, name="quotestatus", native_enum=False, length=32),
            nullable=False,
        ),
        sa.Column("property_name", sa.String(255), nullable=False),
        sa.Column("property_address", sa.Text(), nullable=False),
        sa.Column("property_phone", sa.String(50), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("work_type", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("scope_of_work", sa.Text(), nullable=True),
        sa.Column("contact_person", sa.String(255), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=False),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("is_urgent", sa.Boolean(), nullable=False),
        sa.Column("required_by_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("estimated_cost", sa.Numeric(10, 2), nullable=True),
        sa.Column("estimated_hours", sa.Numeric(8, 2), nullable=True),
        sa.Column("quote_notes", sa.Text(), nullable=True),
        sa.Column("itemized_breakdown", sa.JSON(), nullable=True),
        sa.Column("quote_valid_until", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("submitted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("quoted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("approved_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("declined_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("converted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column(
            "converted_to_work_order_id", sa.Integer(), sa.ForeignKey("work_orders.id"), nullable=True
        ),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_quotes_tenant_id", "quotes", ["tenant_id"])
    op.create_index("ix_quotes_tenant_status", "quotes", ["tenant_id", "status"])

    op.create_table(
        "quote_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("quote_id", sa.Integer(), sa.ForeignKey("quotes.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("message_type", sa.String(32), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_quote_messages_quote_id", "quote_messages", ["quote_id"])

    op.create_table(
        "quote_number_sequences",
        sa.Column("year", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("last_value", sa.Integer(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("quote_number_sequences")
    op.drop_table("quote_messages")
    op.drop_table("quotes")
    op.drop_table("work_orders")
    op.drop_table("users")
    op.drop_table("tenants")
