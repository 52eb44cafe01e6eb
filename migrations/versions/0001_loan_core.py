"""create staff, client, loan, schedule, payment and audit tables

Revision ID: 0001_loan_core
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_loan_core"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _location_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("gps_address", sa.String(100), nullable=True),
        sa.Column("region", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
    )
    op.create_index(f"ix_{name}_client_id", name, ["client_id"])


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role_name", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("fullname", sa.String(255), nullable=False),
        sa.Column("contact", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("landmark", sa.String(255), nullable=True),
        sa.Column("business", sa.String(255), nullable=True),
        sa.Column("dob", sa.String(20), nullable=True),
        sa.Column("marital_status", sa.String(20), nullable=True),
        sa.Column("profile_image", sa.String(1024), nullable=True),
        sa.Column("occupation", sa.String(255), nullable=True),
        sa.Column("id_type", sa.String(50), nullable=True),
        sa.Column("id_number", sa.LargeBinary(), nullable=True),
        sa.Column("id_front_image", sa.String(1024), nullable=True),
        sa.Column("id_back_image", sa.String(1024), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
    )

    op.create_table(
        "client_witnesses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("fullname", sa.String(255), nullable=False),
        sa.Column("contact", sa.String(50), nullable=False),
        sa.Column("marital_status", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("occupation", sa.String(255), nullable=True),
        sa.Column("residence_address", sa.String(255), nullable=True),
        sa.Column("residence_gps", sa.String(100), nullable=True),
        sa.Column("id_type", sa.String(50), nullable=True),
        sa.Column("id_number", sa.LargeBinary(), nullable=True),
        sa.Column("id_front_image", sa.String(1024), nullable=True),
        sa.Column("id_back_image", sa.String(1024), nullable=True),
        sa.Column("profile_pic", sa.String(1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_client_witnesses_client_id", "client_witnesses", ["client_id"])

    _location_table("business_locations")
    _location_table("residences")

    op.create_table(
        "loans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("requested_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("approved_amount", sa.Numeric(18, 2), nullable=True),
        sa.Column("loan_duration", sa.Integer(), nullable=True),
        sa.Column("payment_mode", sa.String(20), nullable=True),
        sa.Column("processing_fee", sa.Numeric(18, 2), nullable=True),
        sa.Column("interest_rate", sa.Numeric(10, 4), nullable=True),
        sa.Column("payment_schedule_start", sa.Date(), nullable=True),
        sa.Column("payment_start_date", sa.Date(), nullable=True),
        sa.Column("payment_end_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="registered"),
        sa.Column("phase", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("registered_by", sa.Integer(), nullable=True),
        sa.Column("captured_by", sa.Integer(), nullable=True),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("disbursed_by", sa.Integer(), nullable=True),
        sa.Column("registration_date", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("capturing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("disbursement_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("disbursement_method", sa.String(30), nullable=True),
        sa.Column("disbursement_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("phase BETWEEN 1 AND 4", name="ck_loan_phase_range"),
        sa.CheckConstraint("requested_amount > 0", name="ck_loan_requested_positive"),
        sa.CheckConstraint("approved_amount IS NULL OR approved_amount > 0", name="ck_loan_approved_positive"),
        sa.CheckConstraint("loan_duration IS NULL OR loan_duration >= 1", name="ck_loan_duration_positive"),
        sa.CheckConstraint(
            "status IN ('registered', 'captured', 'approved', 'disbursed', 'active', 'completed', 'defaulted')",
            name="ck_loan_status",
        ),
        sa.CheckConstraint(
            "payment_mode IS NULL OR payment_mode IN ('weekly', 'monthly')",
            name="ck_loan_payment_mode",
        ),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["registered_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["captured_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["approved_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["disbursed_by"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_loans_client_id", "loans", ["client_id"])
    op.create_index("ix_loans_phase_status", "loans", ["phase", "status"])

    op.create_table(
        "loan_repayments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("loan_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("amount >= 0", name="ck_loan_repayment_amount_nonneg"),
        sa.CheckConstraint("status IN ('pending', 'partial', 'paid')", name="ck_loan_repayment_status"),
        sa.ForeignKeyConstraint(["loan_id"], ["loans.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_loan_repayments_loan_due", "loan_repayments", ["loan_id", "due_date"])

    op.create_table(
        "loan_payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("loan_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("received_by", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_loan_payment_amount_positive"),
        sa.ForeignKeyConstraint(["loan_id"], ["loans.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["received_by"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_loan_payments_loan_date", "loan_payments", ["loan_id", "payment_date"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(255), nullable=False),
        sa.Column("resource_type", sa.String(255), nullable=False),
        sa.Column("resource_id", sa.String(255), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("changes", sa.JSON(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_logs_resource", "audit_logs", ["resource_type", "resource_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_resource", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_loan_payments_loan_date", table_name="loan_payments")
    op.drop_table("loan_payments")
    op.drop_index("ix_loan_repayments_loan_due", table_name="loan_repayments")
    op.drop_table("loan_repayments")
    op.drop_index("ix_loans_phase_status", table_name="loans")
    op.drop_index("ix_loans_client_id", table_name="loans")
    op.drop_table("loans")
    for name in ("residences", "business_locations"):
        op.drop_index(f"ix_{name}_client_id", table_name=name)
        op.drop_table(name)
    op.drop_index("ix_client_witnesses_client_id", table_name="client_witnesses")
    op.drop_table("client_witnesses")
    op.drop_table("clients")
    op.drop_table("users")
