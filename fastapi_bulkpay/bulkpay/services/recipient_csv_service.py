from __future__ import annotations

import csv
import io
from typing import Iterable, Iterator

from bulkpay.core.config import settings
from bulkpay.models.domain import BulkPaymentRecipient
from bulkpay.services.recipient_validator import Recipient

REQUIRED_HEADERS = {"name", "phone_number", "amount"}
HEADER_ALIASES = {
    "recipient name": "name",
    "full name": "name",
    "phone": "phone_number",
    "phone number": "phone_number",
    "phonenumber": "phone_number",
}
EXPORT_HEADERS = ["id", "name", "phone_number", "amount", "status", "reason"]


def _canonical_header(header: str) -> str:
    key = header.strip().lower()
    return HEADER_ALIASES.get(key, key)


def parse_recipient_csv(file_bytes: bytes) -> Iterator[dict[str, str]]:
    """Yield {name, phone_number, amount, description} per non-blank CSV row."""
    if not file_bytes:
        raise ValueError("Uploaded file is empty.")
    try:
        text = file_bytes.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ValueError("CSV file must be UTF-8 encoded.") from exc

    reader = csv.reader(io.StringIO(text))
    try:
        raw_headers = next(reader)
    except StopIteration as exc:
        raise ValueError("CSV file has no header row.") from exc
    headers = [_canonical_header(h) for h in raw_headers]
    missing = REQUIRED_HEADERS - set(headers)
    if missing:
        raise ValueError(
            "CSV header must contain name,phone_number,amount columns "
            f"(missing: {','.join(sorted(missing))})."
        )

    row_count = 0
    for values in reader:
        if not any(value.strip() for value in values):
            continue
        row_count += 1
        if row_count > settings.max_upload_rows:
            raise ValueError(f"A single upload supports at most {settings.max_upload_rows:,} rows.")
        row = dict(zip(headers, (value.strip() for value in values)))
        yield {
            "name": row.get("name", ""),
            "phone_number": row.get("phone_number", ""),
            "amount": row.get("amount", ""),
            "description": row.get("description", ""),
        }


def export_recipients_csv(recipients: Iterable[Recipient]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_HEADERS)
    for recipient in recipients:
        writer.writerow(
            [
                recipient.id,
                recipient.name,
                recipient.phone_number,
                recipient.amount,
                recipient.validation_status.value,
                recipient.validation_message or "",
            ]
        )
    return output.getvalue()


def export_snapshot_csv(rows: Iterable[BulkPaymentRecipient]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_HEADERS)
    for row in rows:
        writer.writerow(
            [
                row.recipient_key,
                row.name,
                row.phone_number,
                row.amount,
                row.validation_status,
                row.validation_message or "",
            ]
        )
    return output.getvalue()
