from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field

from bulkpay.core.statuses import ValidationStatus
from bulkpay.services.draft_store import Draft


class DraftCreate(BaseModel):
    organization_id: str = Field(..., min_length=1, max_length=64)
    currency: str | None = Field(default=None, min_length=3, max_length=3, description="ISO 4217 code")


class RecipientUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=150)
    phone_number: str | None = Field(default=None, max_length=20)
    amount: Decimal | None = None
    description: str | None = Field(default=None, max_length=255)


class RecipientRead(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    name: str
    phone_number: str
    amount: Decimal
    description: str = ""
    validation_status: ValidationStatus
    registered_name: str | None = None
    validation_message: str | None = None
    network: str


class DraftRead(BaseModel):
    id: str
    organization_id: str
    currency: str
    recipients: List[RecipientRead]
    recipient_count: int
    total_amount: Decimal
    ready: bool
    created_by: str | None = None
    created_at: datetime
    touched_at: datetime

    @classmethod
    def from_draft(cls, draft: Draft) -> "DraftRead":
        validator = draft.validator
        recipients = validator.recipients
        return cls(
            id=draft.id,
            organization_id=draft.organization_id,
            currency=draft.currency,
            recipients=[RecipientRead.model_validate(r) for r in recipients],
            recipient_count=len(recipients),
            total_amount=validator.total_amount,
            ready=validator.is_ready(),
            created_by=draft.created_by,
            created_at=draft.created_at,
            touched_at=draft.touched_at,
        )


class RecipientImportSummary(BaseModel):
    imported: int = Field(..., ge=0)
    draft: DraftRead


class DraftSubmit(BaseModel):
    comments: str | None = Field(default=None, max_length=500)
