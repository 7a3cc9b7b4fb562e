from __future__ import annotations

import argparse
import asyncio

from bulkpay.core.phone import detect_network
from bulkpay.services import registry_service
from bulkpay.services.recipient_validator import RecipientValidator


async def _check_recipient(name: str, phone_number: str) -> None:
    validator = RecipientValidator()
    recipient_id = validator.recipients[0].id
    validator.update_recipient(recipient_id, "name", name)
    validator.update_recipient(recipient_id, "phone_number", phone_number)
    recipient = await validator.validate_recipient(recipient_id)
    if recipient is None:
        print("Nothing to validate")
        return
    print("Status:", recipient.validation_status.value)
    print("Message:", recipient.validation_message)


def main() -> None:
    parser = argparse.ArgumentParser(description="Network registry connectivity check")
    parser.add_argument("--lookup", metavar="PHONE", help="Look up a phone number in the registry")
    parser.add_argument(
        "--validate",
        nargs=2,
        metavar=("NAME", "PHONE"),
        help="Run a full recipient validation",
    )
    args = parser.parse_args()

    if args.lookup:
        result = asyncio.run(registry_service.lookup_phone(args.lookup))
        print("Network:", detect_network(args.lookup))
        print("Found:", result.found, result.registered_name or "")

    if args.validate:
        name, phone_number = args.validate
        asyncio.run(_check_recipient(name, phone_number))


if __name__ == "__main__":
    main()
