from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from bulkpay.core.config import settings
from bulkpay.services.registry_service import RegistryLookup
from bulkpay.services.recipient_validator import RecipientValidator

logger = logging.getLogger(__name__)


class DraftNotFoundError(LookupError):
    def __init__(self, draft_id: str) -> None:
        super().__init__(f"Recipient draft not found: {draft_id}")
        self.draft_id = draft_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Draft:
    id: str
    organization_id: str
    currency: str
    validator: RecipientValidator
    created_by: str | None = None
    created_at: datetime = field(default_factory=_utcnow)
    touched_at: datetime = field(default_factory=_utcnow)

    def touch(self) -> None:
        self.touched_at = _utcnow()


class DraftStore:
    """In-memory recipient batches that have not been submitted yet."""

    def __init__(self, lookup: RegistryLookup | None = None) -> None:
        self._lookup = lookup
        self._drafts: dict[str, Draft] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._drafts)

    def create(
        self,
        organization_id: str,
        currency: str | None = None,
        created_by: str | None = None,
    ) -> Draft:
        draft = Draft(
            id=uuid4().hex,
            organization_id=organization_id,
            currency=(currency or settings.default_currency).upper(),
            validator=RecipientValidator(self._lookup),
            created_by=created_by,
        )
        draft.validator.subscribe(lambda _validator: draft.touch())
        with self._lock:
            self._drafts[draft.id] = draft
        return draft

    def get(self, draft_id: str) -> Draft:
        with self._lock:
            draft = self._drafts.get(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        draft.touch()
        return draft

    def take(self, draft_id: str) -> Draft:
        """Remove and return a draft; concurrent callers get it at most once."""
        with self._lock:
            draft = self._drafts.pop(draft_id, None)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        return draft

    def restore(self, draft: Draft) -> None:
        draft.touch()
        with self._lock:
            self._drafts[draft.id] = draft

    def discard(self, draft_id: str) -> bool:
        with self._lock:
            return self._drafts.pop(draft_id, None) is not None

    def purge_expired(self, now: datetime | None = None) -> int:
        cutoff = (now or _utcnow()) - timedelta(minutes=settings.draft_ttl_minutes)
        with self._lock:
            expired = [key for key, draft in self._drafts.items() if draft.touched_at < cutoff]
            for key in expired:
                del self._drafts[key]
        if expired:
            logger.info("Purged %s idle recipient drafts", len(expired))
        return len(expired)


draft_store = DraftStore()
