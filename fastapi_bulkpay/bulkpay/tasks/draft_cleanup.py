from __future__ import annotations

import logging

from bulkpay.core.config import settings
from bulkpay.services.draft_store import draft_store

logger = logging.getLogger(__name__)


def run_draft_cleanup_job() -> None:
    if not settings.draft_cleanup_enabled:
        return
    try:
        purged = draft_store.purge_expired()
        logger.debug("Recipient draft cleanup executed (purged=%s)", purged)
    except Exception:  # noqa: BLE001
        logger.exception("Recipient draft cleanup failed")
