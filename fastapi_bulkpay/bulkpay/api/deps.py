from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from bulkpay.core.roles import DEFAULT_READ_ROLES
from bulkpay.db.session import get_db
from bulkpay.services.draft_store import DraftStore, draft_store
from bulkpay.services.payment_backend import SqlPaymentBackend


@dataclass
class Actor:
    """Caller identity as asserted by the upstream gateway."""

    id: str
    roles: set[str]


def get_current_actor(
    x_actor_id: str | None = Header(default=None),
    x_actor_roles: str | None = Header(default=None),
) -> Actor:
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Actor identity is required.",
        )
    roles = {role.strip().upper() for role in (x_actor_roles or "").split(",") if role.strip()}
    return Actor(id=x_actor_id.strip(), roles=roles)


def require_roles(allowed_roles: set[str] | None = None):
    allowed = allowed_roles or DEFAULT_READ_ROLES

    def _dependency(current_actor: Actor = Depends(get_current_actor)) -> Actor:
        if not current_actor.roles.intersection(allowed):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permission denied.")
        return current_actor

    return _dependency


def get_draft_store() -> DraftStore:
    return draft_store


def get_payment_backend(db: Session = Depends(get_db)) -> SqlPaymentBackend:
    return SqlPaymentBackend(db)
