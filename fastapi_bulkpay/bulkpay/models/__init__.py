from .base import AuditMixin, Base, BigIntPK, TimestampMixin
from .domain import AuditLog, BulkPayment, BulkPaymentRecipient

__all__ = [
    "AuditLog",
    "AuditMixin",
    "Base",
    "BigIntPK",
    "BulkPayment",
    "BulkPaymentRecipient",
    "TimestampMixin",
]
