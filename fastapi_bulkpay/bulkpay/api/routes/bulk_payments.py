from __future__ import annotations

import io
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from bulkpay.api import deps
from bulkpay.core.exceptions import InvalidTransitionError, PaymentNotFoundError
from bulkpay.core.roles import APPROVAL_ROLES, DEFAULT_READ_ROLES
from bulkpay.core.statuses import BulkPaymentStatus, TERMINAL_PAYMENT_STATUSES
from bulkpay.db.session import get_db
from bulkpay.models.domain import BulkPayment
from bulkpay.schemas.bulk_payments import ApprovalQueue, BulkPaymentDetail, BulkPaymentRead
from bulkpay.services.approval_workflow import BulkPaymentApprovalWorkflow, partition_payments
from bulkpay.services.audit_service import log_action
from bulkpay.services.payment_backend import BulkPaymentFilter, SqlPaymentBackend
from bulkpay.services.recipient_csv_service import export_snapshot_csv

router = APIRouter(prefix="/bulk-payments", tags=["bulk-payments"])

VIEW_STATUSES: dict[str, set[BulkPaymentStatus]] = {
    "pending": {BulkPaymentStatus.PENDING_APPROVAL},
    "processed": set(TERMINAL_PAYMENT_STATUSES),
}


def _load_payment(backend: SqlPaymentBackend, payment_id: str) -> BulkPayment:
    payment = backend.get_bulk_payment(payment_id)
    if payment is None:
        raise HTTPException(status_code=404, detail=f"Bulk payment not found: {payment_id}")
    return payment


@router.get("", response_model=list[BulkPaymentRead])
def list_bulk_payments(
    status: BulkPaymentStatus | None = Query(default=None),
    view: Literal["pending", "processed"] | None = Query(default=None),
    organization_id: str | None = Query(default=None),
    phone_number: str | None = Query(default=None, description="Payments that include this recipient"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    backend: SqlPaymentBackend = Depends(deps.get_payment_backend),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_READ_ROLES)),
):
    statuses: set[BulkPaymentStatus] = set()
    if view:
        statuses = set(VIEW_STATUSES[view])
    if status is not None:
        if statuses and status not in statuses:
            return []
        statuses = {status}
    filters = BulkPaymentFilter(
        organization_id=organization_id,
        phone_number=phone_number,
        statuses=statuses,
        limit=limit,
        offset=offset,
    )
    payments = backend.list_bulk_payments(filters)
    return [BulkPaymentRead.model_validate(p) for p in payments]


@router.get("/approvals", response_model=ApprovalQueue)
def get_approval_queue(
    organization_id: str | None = Query(default=None),
    backend: SqlPaymentBackend = Depends(deps.get_payment_backend),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_READ_ROLES)),
):
    """
    Pending approvals alongside recently processed (approved or rejected) payments.
    """
    payments = backend.list_bulk_payments(
        BulkPaymentFilter(organization_id=organization_id, limit=500)
    )
    pending, processed = partition_payments(payments)
    return ApprovalQueue(
        pending=[BulkPaymentRead.model_validate(p) for p in pending],
        processed=[BulkPaymentRead.model_validate(p) for p in processed],
    )


@router.get("/{payment_id}", response_model=BulkPaymentDetail)
def get_bulk_payment(
    payment_id: str,
    backend: SqlPaymentBackend = Depends(deps.get_payment_backend),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_READ_ROLES)),
):
    return BulkPaymentDetail.model_validate(_load_payment(backend, payment_id))


@router.get("/{payment_id}/recipients/export")
def export_bulk_payment_recipients(
    payment_id: str,
    backend: SqlPaymentBackend = Depends(deps.get_payment_backend),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_READ_ROLES)),
):
    payment = _load_payment(backend, payment_id)
    csv_text = export_snapshot_csv(payment.recipients)
    filename = f"bulk-payment-{payment.reference}-recipients.csv"
    stream = io.BytesIO(csv_text.encode("utf-8-sig"))
    return StreamingResponse(
        stream,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/{payment_id}/approve", response_model=BulkPaymentRead)
def approve_bulk_payment(
    payment_id: str,
    db: Session = Depends(get_db),
    backend: SqlPaymentBackend = Depends(deps.get_payment_backend),
    current_actor: deps.Actor = Depends(deps.require_roles(APPROVAL_ROLES)),
):
    workflow = BulkPaymentApprovalWorkflow(backend)
    try:
        payment = workflow.approve(payment_id, current_actor.id)
    except PaymentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTransitionError as exc:
        _log_transition(db, current_actor, "bulk_payment.approve", payment_id, success=False, detail=str(exc))
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    _log_transition(db, current_actor, "bulk_payment.approve", payment_id)
    return BulkPaymentRead.model_validate(payment)


@router.post("/{payment_id}/reject", response_model=BulkPaymentRead)
def reject_bulk_payment(
    payment_id: str,
    db: Session = Depends(get_db),
    backend: SqlPaymentBackend = Depends(deps.get_payment_backend),
    current_actor: deps.Actor = Depends(deps.require_roles(APPROVAL_ROLES)),
):
    workflow = BulkPaymentApprovalWorkflow(backend)
    try:
        payment = workflow.reject(payment_id, current_actor.id)
    except PaymentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTransitionError as exc:
        _log_transition(db, current_actor, "bulk_payment.reject", payment_id, success=False, detail=str(exc))
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    _log_transition(db, current_actor, "bulk_payment.reject", payment_id)
    return BulkPaymentRead.model_validate(payment)


def _log_transition(
    db: Session,
    current_actor: deps.Actor,
    action: str,
    payment_id: str,
    *,
    success: bool = True,
    detail: str | None = None,
) -> None:
    log_action(
        db,
        actor_id=current_actor.id,
        action=action,
        target_type="bulk_payment",
        target_id=payment_id,
        success=success,
        detail=detail,
        commit=True,
    )
