from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel

from bulkpay.core.statuses import BulkPaymentStatus, ValidationStatus


class BulkPaymentRecipientRead(BaseModel):
    model_config = {"from_attributes": True}

    position: int
    recipient_key: str
    name: str
    phone_number: str
    amount: Decimal
    validation_status: ValidationStatus
    registered_name: str | None = None
    validation_message: str | None = None
    description: str | None = None


class BulkPaymentRead(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    reference: str
    organization_id: str
    total_amount: Decimal
    currency: str
    status: BulkPaymentStatus
    is_approved: bool
    approved_by: str | None = None
    comments: str | None = None
    recipient_count: int
    version: int
    created_by: str | None = None
    created_at: datetime


class BulkPaymentDetail(BulkPaymentRead):
    recipients: List[BulkPaymentRecipientRead] = []


class ApprovalQueue(BaseModel):
    pending: List[BulkPaymentRead]
    processed: List[BulkPaymentRead]
