from __future__ import annotations

import io

from fastapi import APIRouter, Depends, HTTPException, Response, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from bulkpay.api import deps
from bulkpay.core.exceptions import BatchNotReadyError, BatchSubmittedError
from bulkpay.core.roles import DEFAULT_READ_ROLES, DEFAULT_WRITE_ROLES
from bulkpay.db.session import get_db
from bulkpay.schemas.bulk_payments import BulkPaymentRead
from bulkpay.schemas.recipients import (
    DraftCreate,
    DraftRead,
    DraftSubmit,
    RecipientImportSummary,
    RecipientUpdate,
)
from bulkpay.services.audit_service import log_action
from bulkpay.services.draft_store import Draft, DraftNotFoundError, DraftStore
from bulkpay.services.payment_backend import SqlPaymentBackend
from bulkpay.services.recipient_csv_service import export_recipients_csv, parse_recipient_csv
from bulkpay.services.submission_service import submit_batch

router = APIRouter(prefix="/drafts", tags=["drafts"])


def _load_draft(store: DraftStore, draft_id: str) -> Draft:
    try:
        return store.get(draft_id)
    except DraftNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


def _ensure_recipient(draft: Draft, recipient_id: str) -> None:
    if draft.validator.get_recipient(recipient_id) is None:
        raise HTTPException(status_code=404, detail=f"Recipient not found: {recipient_id}")


@router.post("", response_model=DraftRead, status_code=status.HTTP_201_CREATED)
async def create_draft(
    payload: DraftCreate,
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_WRITE_ROLES)),
):
    """
    Open a new recipient batch with a single empty row.
    """
    draft = store.create(payload.organization_id, payload.currency, created_by=current_actor.id)
    return DraftRead.from_draft(draft)


@router.get("/{draft_id}", response_model=DraftRead)
async def get_draft(
    draft_id: str,
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_READ_ROLES)),
):
    return DraftRead.from_draft(_load_draft(store, draft_id))


@router.delete("/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_draft(
    draft_id: str,
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_WRITE_ROLES)),
):
    if not store.discard(draft_id):
        raise HTTPException(status_code=404, detail=f"Recipient draft not found: {draft_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{draft_id}/recipients", response_model=DraftRead, status_code=status.HTTP_201_CREATED)
async def add_recipient(
    draft_id: str,
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_WRITE_ROLES)),
):
    draft = _load_draft(store, draft_id)
    draft.validator.add_recipient()
    return DraftRead.from_draft(draft)


@router.patch("/{draft_id}/recipients/{recipient_id}", response_model=DraftRead)
async def update_recipient(
    draft_id: str,
    recipient_id: str,
    payload: RecipientUpdate,
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_WRITE_ROLES)),
):
    """
    Edit one or more fields. Any edit clears the row's previous validation.
    """
    draft = _load_draft(store, draft_id)
    _ensure_recipient(draft, recipient_id)
    for field_name, value in payload.model_dump(exclude_unset=True).items():
        draft.validator.update_recipient(recipient_id, field_name, value)
    return DraftRead.from_draft(draft)


@router.delete("/{draft_id}/recipients/{recipient_id}", response_model=DraftRead)
async def remove_recipient(
    draft_id: str,
    recipient_id: str,
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_WRITE_ROLES)),
):
    """
    Remove a row. The last remaining row is kept.
    """
    draft = _load_draft(store, draft_id)
    _ensure_recipient(draft, recipient_id)
    draft.validator.remove_recipient(recipient_id)
    return DraftRead.from_draft(draft)


@router.post("/{draft_id}/recipients/{recipient_id}/validate", response_model=DraftRead)
async def validate_recipient(
    draft_id: str,
    recipient_id: str,
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_WRITE_ROLES)),
):
    """
    Check the row's name against the network registry.
    """
    draft = _load_draft(store, draft_id)
    _ensure_recipient(draft, recipient_id)
    await draft.validator.validate_recipient(recipient_id)
    return DraftRead.from_draft(draft)


@router.post("/{draft_id}/validate", response_model=DraftRead)
async def validate_all_recipients(
    draft_id: str,
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_WRITE_ROLES)),
):
    """
    Validate every filled-in row that has not been validated since its last edit.
    """
    draft = _load_draft(store, draft_id)
    await draft.validator.validate_all()
    return DraftRead.from_draft(draft)


@router.post("/{draft_id}/recipients/upload", response_model=RecipientImportSummary)
async def upload_recipients(
    draft_id: str,
    file: UploadFile,
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_WRITE_ROLES)),
):
    """
    Append rows from a CSV file (name,phone_number,amount[,description]).
    """
    draft = _load_draft(store, draft_id)
    file_bytes = await file.read()
    try:
        rows = list(parse_recipient_csv(file_bytes))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    imported = draft.validator.add_recipients(rows)
    return RecipientImportSummary(imported=len(imported), draft=DraftRead.from_draft(draft))


@router.get("/{draft_id}/recipients/export")
async def export_recipients(
    draft_id: str,
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_READ_ROLES)),
):
    draft = _load_draft(store, draft_id)
    csv_text = export_recipients_csv(draft.validator.recipients)
    filename = f"draft_{draft.id}_recipients.csv"
    stream = io.BytesIO(csv_text.encode("utf-8-sig"))
    return StreamingResponse(
        stream,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.post("/{draft_id}/submit", response_model=BulkPaymentRead, status_code=status.HTTP_201_CREATED)
def submit_draft(
    draft_id: str,
    payload: DraftSubmit | None = None,
    db: Session = Depends(get_db),
    backend: SqlPaymentBackend = Depends(deps.get_payment_backend),
    store: DraftStore = Depends(deps.get_draft_store),
    current_actor: deps.Actor = Depends(deps.require_roles(DEFAULT_WRITE_ROLES)),
):
    """
    Turn a fully validated batch into a bulk payment awaiting approval.
    """
    try:
        draft = store.take(draft_id)
    except DraftNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    try:
        payment = submit_batch(
            backend,
            draft.validator,
            organization_id=draft.organization_id,
            currency=draft.currency,
            comments=payload.comments if payload else None,
            actor=current_actor.id,
        )
    except BatchSubmittedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except BatchNotReadyError as exc:
        store.restore(draft)
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        store.restore(draft)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception:
        store.restore(draft)
        raise

    log_action(
        db,
        actor_id=current_actor.id,
        action="bulk_payment.submit",
        target_type="bulk_payment",
        target_id=payment.id,
        commit=True,
    )
    return BulkPaymentRead.model_validate(payment)
