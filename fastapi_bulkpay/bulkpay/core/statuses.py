from __future__ import annotations

from enum import Enum


class ValidationStatus(str, Enum):
    UNVALIDATED = "UNVALIDATED"
    VALIDATING = "VALIDATING"
    VALID = "VALID"
    INVALID = "INVALID"


class BulkPaymentStatus(str, Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


TERMINAL_PAYMENT_STATUSES: frozenset[BulkPaymentStatus] = frozenset(
    {BulkPaymentStatus.APPROVED, BulkPaymentStatus.REJECTED}
)
