from __future__ import annotations

import logging
from typing import Iterable, Protocol, Sequence, TypeVar

from bulkpay.core.exceptions import InvalidTransitionError, PaymentNotFoundError
from bulkpay.core.statuses import BulkPaymentStatus, TERMINAL_PAYMENT_STATUSES
from bulkpay.models.domain import BulkPayment
from bulkpay.services.payment_backend import PaymentBackend

logger = logging.getLogger(__name__)


class _HasStatus(Protocol):
    status: str


P = TypeVar("P", bound=_HasStatus)


def is_pending(payment: _HasStatus) -> bool:
    return BulkPaymentStatus(payment.status) == BulkPaymentStatus.PENDING_APPROVAL


def is_processed(payment: _HasStatus) -> bool:
    return BulkPaymentStatus(payment.status) in TERMINAL_PAYMENT_STATUSES


def partition_payments(payments: Iterable[P]) -> tuple[list[P], list[P]]:
    """Split into (pending, processed); every payment lands in exactly one list."""
    pending: list[P] = []
    processed: list[P] = []
    for payment in payments:
        (pending if is_pending(payment) else processed).append(payment)
    return pending, processed


class BulkPaymentApprovalWorkflow:
    """PENDING_APPROVAL -> APPROVED | REJECTED. Both outcomes are terminal."""

    def __init__(self, backend: PaymentBackend) -> None:
        self.backend = backend

    def approve(self, payment_id: str, approver_id: str) -> BulkPayment:
        if not approver_id:
            raise ValueError("approver_id is required to approve a bulk payment")
        payment = self._load_pending(payment_id, "approve")
        updated = self.backend.update_bulk_payment(
            payment_id,
            status=BulkPaymentStatus.APPROVED,
            approved_by=approver_id,
            expected_version=payment.version,
            expected_status=BulkPaymentStatus.PENDING_APPROVAL,
            actor=approver_id,
            action="approve",
        )
        logger.info("Bulk payment %s approved by %s", payment_id, approver_id)
        return updated

    def reject(self, payment_id: str, actor_id: str | None = None) -> BulkPayment:
        payment = self._load_pending(payment_id, "reject")
        updated = self.backend.update_bulk_payment(
            payment_id,
            status=BulkPaymentStatus.REJECTED,
            approved_by=None,
            expected_version=payment.version,
            expected_status=BulkPaymentStatus.PENDING_APPROVAL,
            actor=actor_id,
            action="reject",
        )
        logger.info("Bulk payment %s rejected by %s", payment_id, actor_id or "-")
        return updated

    def pending_and_processed(
        self, payments: Sequence[BulkPayment] | None = None
    ) -> tuple[list[BulkPayment], list[BulkPayment]]:
        if payments is None:
            payments = self.backend.list_bulk_payments()
        return partition_payments(payments)

    def _load_pending(self, payment_id: str, action: str) -> BulkPayment:
        payment = self.backend.get_bulk_payment(payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        if not is_pending(payment):
            logger.warning(
                "Rejected %s on bulk payment %s in status %s",
                action,
                payment_id,
                payment.status,
            )
            raise InvalidTransitionError(payment_id, payment.status, action)
        return payment
