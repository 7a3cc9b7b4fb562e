"""create_bulk_payment_tables

Revision ID: 3b1f0c7a9d24
Revises:
Create Date: 2026-10-19 14:30:12.418905

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1f0c7a9d24'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BIGINT_PK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "bulk_payments",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("reference", sa.String(length=40), nullable=False, unique=True),
        sa.Column("organization_id", sa.String(length=64), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("approved_by", sa.String(length=64), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("recipient_count", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=True),
        sa.Column("updated_by", sa.String(length=64), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_bulk_payment_org_status", "bulk_payments", ["organization_id", "status"]
    )

    op.create_table(
        "bulk_payment_recipients",
        sa.Column("id", BIGINT_PK, primary_key=True, autoincrement=True),
        sa.Column(
            "bulk_payment_id",
            sa.String(length=32),
            sa.ForeignKey("bulk_payments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("recipient_key", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("enc_phone", sa.LargeBinary(), nullable=False),
        sa.Column("phone_hash", sa.LargeBinary(length=32), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("validation_status", sa.String(length=20), nullable=False),
        sa.Column("registered_name", sa.String(length=150), nullable=True),
        sa.Column("validation_message", sa.String(length=255), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_bulk_payment_recipient_phone_hash", "bulk_payment_recipients", ["phone_hash"]
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", BIGINT_PK, primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.String(length=64), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("target_type", sa.String(length=50), nullable=True),
        sa.Column("target_id", sa.String(length=64), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_audit_target", "audit_logs", ["target_type", "target_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_target", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_bulk_payment_recipient_phone_hash", table_name="bulk_payment_recipients")
    op.drop_table("bulk_payment_recipients")
    op.drop_index("ix_bulk_payment_org_status", table_name="bulk_payments")
    op.drop_table("bulk_payments")
