from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    LargeBinary,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bulkpay.core.crypto import decrypt_value
from bulkpay.core.statuses import BulkPaymentStatus
from bulkpay.models.base import AuditMixin, Base, BigIntPK, TimestampMixin


def _new_payment_id() -> str:
    return uuid4().hex


class BulkPayment(TimestampMixin, AuditMixin, Base):
    __tablename__ = "bulk_payments"
    __table_args__ = (
        Index("ix_bulk_payment_org_status", "organization_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_payment_id)
    reference: Mapped[str] = mapped_column(String(40), unique=True, nullable=False)
    organization_id: Mapped[str] = mapped_column(String(64), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=BulkPaymentStatus.PENDING_APPROVAL.value,
    )
    approved_by: Mapped[str | None] = mapped_column(String(64))
    comments: Mapped[str | None] = mapped_column(Text)
    recipient_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    recipients: Mapped[list["BulkPaymentRecipient"]] = relationship(
        back_populates="bulk_payment",
        order_by="BulkPaymentRecipient.position",
        cascade="all, delete-orphan",
    )

    @property
    def is_approved(self) -> bool:
        return self.status == BulkPaymentStatus.APPROVED.value


class BulkPaymentRecipient(TimestampMixin, Base):
    """Frozen copy of a validated recipient row taken at submission time."""

    __tablename__ = "bulk_payment_recipients"
    __table_args__ = (Index("ix_bulk_payment_recipient_phone_hash", "phone_hash"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    bulk_payment_id: Mapped[str] = mapped_column(
        ForeignKey("bulk_payments.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    recipient_key: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    enc_phone: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    phone_hash: Mapped[bytes] = mapped_column(LargeBinary(32), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    validation_status: Mapped[str] = mapped_column(String(20), nullable=False)
    registered_name: Mapped[str | None] = mapped_column(String(150))
    validation_message: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(String(255))

    bulk_payment: Mapped[BulkPayment] = relationship(back_populates="recipients")

    @property
    def phone_number(self) -> str:
        return decrypt_value(self.enc_phone) or ""


class AuditLog(TimestampMixin, Base):
    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_target", "target_type", "target_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    actor_id: Mapped[str | None] = mapped_column(String(64))
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    target_type: Mapped[str | None] = mapped_column(String(50))
    target_id: Mapped[str | None] = mapped_column(String(64))
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    detail: Mapped[str | None] = mapped_column(Text)
