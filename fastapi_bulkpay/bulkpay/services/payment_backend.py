from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from secrets import token_hex
from typing import Iterable, Protocol, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from bulkpay.core.crypto import encrypt_value, hash_phone
from bulkpay.core.exceptions import PaymentNotFoundError, StalePaymentError
from bulkpay.core.statuses import BulkPaymentStatus
from bulkpay.models.domain import BulkPayment, BulkPaymentRecipient
from bulkpay.services.recipient_validator import RecipientSnapshot


@dataclass
class BulkPaymentFilter:
    organization_id: str | None = None
    phone_number: str | None = None
    statuses: set[BulkPaymentStatus] = field(default_factory=set)
    limit: int = 100
    offset: int = 0


class PaymentBackend(Protocol):
    def create_bulk_payment(
        self,
        *,
        organization_id: str,
        total_amount: Decimal,
        currency: str,
        recipients: Sequence[RecipientSnapshot],
        comments: str | None = None,
        actor: str | None = None,
    ) -> BulkPayment: ...

    def update_bulk_payment(
        self,
        payment_id: str,
        *,
        status: BulkPaymentStatus,
        approved_by: str | None = None,
        expected_version: int | None = None,
        expected_status: BulkPaymentStatus | None = None,
        actor: str | None = None,
        action: str | None = None,
    ) -> BulkPayment: ...

    def get_bulk_payment(self, payment_id: str) -> BulkPayment | None: ...

    def list_bulk_payments(self, filters: BulkPaymentFilter | None = None) -> list[BulkPayment]: ...


def _generate_reference() -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"BP{timestamp}{token_hex(4)}"


class SqlPaymentBackend:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create_bulk_payment(
        self,
        *,
        organization_id: str,
        total_amount: Decimal,
        currency: str,
        recipients: Sequence[RecipientSnapshot],
        comments: str | None = None,
        actor: str | None = None,
    ) -> BulkPayment:
        payment = BulkPayment(
            reference=_generate_reference(),
            organization_id=organization_id,
            total_amount=total_amount,
            currency=currency.upper(),
            status=BulkPaymentStatus.PENDING_APPROVAL.value,
            comments=comments,
            recipient_count=len(recipients),
            version=1,
            created_by=actor,
            updated_by=actor,
        )
        payment.recipients = list(_snapshot_rows(recipients))
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)
        return payment

    def update_bulk_payment(
        self,
        payment_id: str,
        *,
        status: BulkPaymentStatus,
        approved_by: str | None = None,
        expected_version: int | None = None,
        expected_status: BulkPaymentStatus | None = None,
        actor: str | None = None,
        action: str | None = None,
    ) -> BulkPayment:
        stmt = update(BulkPayment).where(BulkPayment.id == payment_id)
        if expected_version is not None:
            stmt = stmt.where(BulkPayment.version == expected_version)
        if expected_status is not None:
            stmt = stmt.where(BulkPayment.status == expected_status.value)
        stmt = stmt.values(
            status=status.value,
            approved_by=approved_by,
            version=BulkPayment.version + 1,
            updated_by=actor,
        ).execution_options(synchronize_session=False)

        result = self.db.execute(stmt)
        if result.rowcount == 0:
            self.db.rollback()
            current = self.db.get(BulkPayment, payment_id)
            if current is None:
                raise PaymentNotFoundError(payment_id)
            raise StalePaymentError(payment_id, current.status, action or "update")
        self.db.commit()

        payment = self.db.get(BulkPayment, payment_id)
        self.db.refresh(payment)
        return payment

    def get_bulk_payment(self, payment_id: str) -> BulkPayment | None:
        return self.db.get(BulkPayment, payment_id)

    def list_bulk_payments(self, filters: BulkPaymentFilter | None = None) -> list[BulkPayment]:
        filters = filters or BulkPaymentFilter()
        stmt = select(BulkPayment)
        if filters.organization_id:
            stmt = stmt.where(BulkPayment.organization_id == filters.organization_id)
        if filters.statuses:
            stmt = stmt.where(BulkPayment.status.in_([s.value for s in filters.statuses]))
        if filters.phone_number:
            holders = select(BulkPaymentRecipient.bulk_payment_id).where(
                BulkPaymentRecipient.phone_hash == hash_phone(filters.phone_number)
            )
            stmt = stmt.where(BulkPayment.id.in_(holders))
        stmt = (
            stmt.order_by(BulkPayment.created_at.desc(), BulkPayment.reference.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        return list(self.db.scalars(stmt).all())


def _snapshot_rows(recipients: Iterable[RecipientSnapshot]) -> Iterable[BulkPaymentRecipient]:
    for position, recipient in enumerate(recipients, start=1):
        yield BulkPaymentRecipient(
            position=position,
            recipient_key=recipient.id,
            name=recipient.name,
            enc_phone=encrypt_value(recipient.phone_number),
            phone_hash=hash_phone(recipient.phone_number),
            amount=recipient.amount,
            validation_status=recipient.validation_status.value,
            registered_name=recipient.registered_name,
            validation_message=recipient.validation_message,
            description=recipient.description or None,
        )
