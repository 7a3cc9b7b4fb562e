from __future__ import annotations

import logging

from bulkpay.core.config import settings
from bulkpay.core.exceptions import BatchNotReadyError
from bulkpay.models.domain import BulkPayment
from bulkpay.services.payment_backend import PaymentBackend
from bulkpay.services.recipient_validator import MAX_AMOUNT, ZERO, RecipientValidator

logger = logging.getLogger(__name__)


def submit_batch(
    backend: PaymentBackend,
    validator: RecipientValidator,
    *,
    organization_id: str,
    currency: str | None = None,
    comments: str | None = None,
    actor: str | None = None,
) -> BulkPayment:
    """Freeze a ready recipient batch into a PENDING_APPROVAL bulk payment.

    The validator is claimed before the payment is written, so one batch yields
    at most one payment; a failed write releases the claim.
    """
    if not organization_id:
        raise ValueError("organization_id is required")
    if not validator.is_ready():
        not_ready = sum(1 for recipient in validator.recipients if not recipient.is_ready)
        raise BatchNotReadyError(
            f"{not_ready} recipient(s) need a successful validation before submission"
        )

    recipients = validator.snapshot()
    total_amount = sum((recipient.amount for recipient in recipients), ZERO)
    if total_amount > MAX_AMOUNT:
        raise ValueError(f"Batch total {total_amount} exceeds the maximum of {MAX_AMOUNT}")

    validator.claim_submission()
    try:
        payment = backend.create_bulk_payment(
            organization_id=organization_id,
            total_amount=total_amount,
            currency=currency or settings.default_currency,
            recipients=recipients,
            comments=comments or f"Mobile money bulk payment for {len(recipients)} recipients",
            actor=actor,
        )
    except Exception:
        validator.release_submission()
        raise
    logger.info(
        "Bulk payment %s submitted for %s (%s recipients, total %s %s)",
        payment.reference,
        organization_id,
        payment.recipient_count,
        payment.total_amount,
        payment.currency,
    )
    return payment
