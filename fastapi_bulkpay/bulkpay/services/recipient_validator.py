"""
Recipient list for a bulk payment draft and its per-row registry validation.

Every row moves UNVALIDATED -> VALIDATING -> VALID | INVALID. Any edit puts
the row back to UNVALIDATED, and a lookup that finishes after an edit of the
same row is thrown away, so a stale result can never mark edited data VALID.
Rows are independent: lookups for different rows may run concurrently on the
event loop and one row failing never touches another.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Mapping, Optional
from uuid import uuid4

from bulkpay.core.config import settings
from bulkpay.core.exceptions import BatchSubmittedError
from bulkpay.core.phone import detect_network, mask_phone
from bulkpay.core.statuses import ValidationStatus
from bulkpay.services.registry_service import RegistryLookup, RegistryLookupResult, lookup_phone

logger = logging.getLogger(__name__)

MSG_NOT_FOUND = "Phone number not found in network database"
MSG_NAME_MATCH = "Name matches network registration"
MSG_NAME_MISMATCH = "Name mismatch. Registered as: {registered_name}"
MSG_VALIDATION_FAILED = "Validation failed"

EDITABLE_FIELDS = frozenset({"name", "phone_number", "amount", "description"})
ZERO = Decimal("0")
# Amounts are stored as Numeric(14, 2).
CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("999999999999.99")


def to_amount(value: Any) -> Decimal:
    """Coerce user input to a Decimal amount.

    Anything unparseable, finer than a cent or too large to store becomes 0.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return ZERO
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return ZERO
    if not amount.is_finite() or abs(amount) > MAX_AMOUNT:
        return ZERO
    if amount != amount.quantize(CENT):
        return ZERO
    return amount


def names_match(entered_name: str, registered_name: str) -> bool:
    return entered_name.strip().lower() == registered_name.strip().lower()


@dataclass
class Recipient:
    id: str
    name: str = ""
    phone_number: str = ""
    amount: Decimal = ZERO
    description: str = ""
    validation_status: ValidationStatus = ValidationStatus.UNVALIDATED
    registered_name: Optional[str] = None
    validation_message: Optional[str] = None
    revision: int = field(default=0, repr=False, compare=False)

    @property
    def network(self) -> str:
        return detect_network(self.phone_number)

    @property
    def has_required_fields(self) -> bool:
        return bool(self.name.strip() and self.phone_number.strip())

    @property
    def is_ready(self) -> bool:
        return (
            self.has_required_fields
            and self.amount > ZERO
            and self.validation_status == ValidationStatus.VALID
        )

    @property
    def is_blank(self) -> bool:
        return not (self.name or self.phone_number or self.description) and self.amount == ZERO


@dataclass(frozen=True)
class RecipientSnapshot:
    id: str
    name: str
    phone_number: str
    amount: Decimal
    description: str
    validation_status: ValidationStatus
    registered_name: Optional[str]
    validation_message: Optional[str]


ChangeListener = Callable[["RecipientValidator"], None]


class RecipientValidator:
    """Mutable recipient batch; always holds at least one row."""

    def __init__(
        self,
        lookup: RegistryLookup | None = None,
        *,
        lookup_timeout: float | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self._lookup = lookup or lookup_phone
        self._lookup_timeout = (
            settings.registry_lookup_timeout if lookup_timeout is None else lookup_timeout
        )
        self._max_concurrency = max(1, max_concurrency or settings.registry_max_concurrency)
        self._recipients: list[Recipient] = [Recipient(id=uuid4().hex)]
        self._listeners: list[ChangeListener] = []
        self._submitted = False
        self._submit_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._recipients)

    @property
    def recipients(self) -> list[Recipient]:
        return [replace(recipient) for recipient in self._recipients]

    @property
    def total_amount(self) -> Decimal:
        return sum((recipient.amount for recipient in self._recipients), ZERO)

    def get_recipient(self, recipient_id: str) -> Recipient | None:
        recipient = self._find(recipient_id)
        return replace(recipient) if recipient else None

    def is_ready(self) -> bool:
        return bool(self._recipients) and all(r.is_ready for r in self._recipients)

    @property
    def submitted(self) -> bool:
        return self._submitted

    def claim_submission(self) -> None:
        """Mark the batch submitted; a batch can be claimed only once."""
        with self._submit_lock:
            if self._submitted:
                raise BatchSubmittedError("Recipient batch has already been submitted")
            self._submitted = True

    def release_submission(self) -> None:
        with self._submit_lock:
            self._submitted = False

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------ #
    # Edits

    def add_recipient(self) -> Recipient:
        self._ensure_open()
        recipient = Recipient(id=uuid4().hex)
        self._recipients.append(recipient)
        self._notify()
        return replace(recipient)

    def add_recipients(self, rows: Iterable[Mapping[str, Any]]) -> list[Recipient]:
        """Append pre-filled rows (CSV import). A lone untouched row is replaced."""
        self._ensure_open()
        new_rows = [
            Recipient(
                id=uuid4().hex,
                name=str(row.get("name") or ""),
                phone_number=str(row.get("phone_number") or ""),
                amount=to_amount(row.get("amount")),
                description=str(row.get("description") or ""),
            )
            for row in rows
        ]
        if not new_rows:
            return []
        if len(self._recipients) == 1 and self._recipients[0].is_blank:
            self._recipients.clear()
        self._recipients.extend(new_rows)
        self._notify()
        return [replace(recipient) for recipient in new_rows]

    def update_recipient(self, recipient_id: str, field_name: str, value: Any) -> Recipient | None:
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown recipient field: {field_name}")
        self._ensure_open()
        recipient = self._find(recipient_id)
        if recipient is None:
            return None

        if field_name == "amount":
            recipient.amount = to_amount(value)
        else:
            setattr(recipient, field_name, "" if value is None else str(value))
        self._reset_validation(recipient)
        self._notify()
        return replace(recipient)

    def remove_recipient(self, recipient_id: str) -> bool:
        self._ensure_open()
        if len(self._recipients) <= 1:
            return False
        recipient = self._find(recipient_id)
        if recipient is None:
            return False
        self._recipients.remove(recipient)
        recipient.revision += 1
        self._notify()
        return True

    # ------------------------------------------------------------------ #
    # Validation

    async def validate_recipient(self, recipient_id: str) -> Recipient | None:
        self._ensure_open()
        recipient = self._find(recipient_id)
        if recipient is None or not recipient.has_required_fields:
            return None

        recipient.revision += 1
        revision = recipient.revision
        phone_number = recipient.phone_number.strip()
        entered_name = recipient.name
        recipient.validation_status = ValidationStatus.VALIDATING
        recipient.registered_name = None
        recipient.validation_message = None
        self._notify()

        result: RegistryLookupResult | None = None
        try:
            result = await asyncio.wait_for(
                self._lookup(phone_number),
                timeout=self._lookup_timeout or None,
            )
        except asyncio.CancelledError:
            if self._is_current(recipient, revision):
                self._apply_failure(recipient)
            raise
        except asyncio.TimeoutError:
            logger.warning("Registry lookup timed out for %s", mask_phone(phone_number))
        except Exception:  # noqa: BLE001
            logger.warning("Registry lookup failed for %s", mask_phone(phone_number), exc_info=True)

        if not self._is_current(recipient, revision):
            logger.debug("Discarding stale validation result for recipient %s", recipient.id)
            return None

        if result is None:
            self._apply_failure(recipient)
        elif not result.found:
            recipient.validation_status = ValidationStatus.INVALID
            recipient.validation_message = MSG_NOT_FOUND
            self._notify()
        else:
            registered_name = result.registered_name or ""
            recipient.registered_name = registered_name
            if names_match(entered_name, registered_name):
                recipient.validation_status = ValidationStatus.VALID
                recipient.validation_message = MSG_NAME_MATCH
            else:
                recipient.validation_status = ValidationStatus.INVALID
                recipient.validation_message = MSG_NAME_MISMATCH.format(
                    registered_name=registered_name
                )
            self._notify()

        logger.info(
            "Recipient %s validated: %s",
            mask_phone(phone_number),
            recipient.validation_status.value,
        )
        return replace(recipient)

    async def validate_all(self) -> list[Recipient]:
        """Validate every untouched row that has a name and a phone number."""
        self._ensure_open()
        pending_ids = [
            recipient.id
            for recipient in self._recipients
            if recipient.validation_status == ValidationStatus.UNVALIDATED
            and recipient.has_required_fields
        ]
        if not pending_ids:
            return []

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _run(recipient_id: str) -> Recipient | None:
            async with semaphore:
                recipient = self._find(recipient_id)
                if recipient is None or recipient.validation_status != ValidationStatus.UNVALIDATED:
                    return None
                return await self.validate_recipient(recipient_id)

        results = await asyncio.gather(*(_run(recipient_id) for recipient_id in pending_ids))
        return [recipient for recipient in results if recipient is not None]

    def snapshot(self) -> tuple[RecipientSnapshot, ...]:
        return tuple(
            RecipientSnapshot(
                id=recipient.id,
                name=recipient.name.strip(),
                phone_number=recipient.phone_number.strip(),
                amount=recipient.amount,
                description=recipient.description,
                validation_status=recipient.validation_status,
                registered_name=recipient.registered_name,
                validation_message=recipient.validation_message,
            )
            for recipient in self._recipients
        )

    # ------------------------------------------------------------------ #
    # Internal helpers

    def _find(self, recipient_id: str) -> Recipient | None:
        for recipient in self._recipients:
            if recipient.id == recipient_id:
                return recipient
        return None

    def _ensure_open(self) -> None:
        if self._submitted:
            raise BatchSubmittedError("Recipient batch has already been submitted")

    def _is_current(self, recipient: Recipient, revision: int) -> bool:
        return recipient.revision == revision and any(r is recipient for r in self._recipients)

    def _reset_validation(self, recipient: Recipient) -> None:
        recipient.revision += 1
        recipient.validation_status = ValidationStatus.UNVALIDATED
        recipient.registered_name = None
        recipient.validation_message = None

    def _apply_failure(self, recipient: Recipient) -> None:
        recipient.validation_status = ValidationStatus.INVALID
        recipient.registered_name = None
        recipient.validation_message = MSG_VALIDATION_FAILED
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
