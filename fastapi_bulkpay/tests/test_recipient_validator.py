from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from bulkpay.core.exceptions import BatchSubmittedError
from bulkpay.core.statuses import ValidationStatus
from bulkpay.services.recipient_validator import (
    MSG_NAME_MATCH,
    MSG_NOT_FOUND,
    MSG_VALIDATION_FAILED,
    RecipientValidator,
    to_amount,
)
from bulkpay.services.registry_service import RegistryLookupResult


def fill(validator: RecipientValidator, recipient_id: str, name: str, phone: str, amount="50000") -> None:
    validator.update_recipient(recipient_id, "name", name)
    validator.update_recipient(recipient_id, "phone_number", phone)
    validator.update_recipient(recipient_id, "amount", amount)


def first_id(validator: RecipientValidator) -> str:
    return validator.recipients[0].id


def test_new_batch_has_one_empty_unvalidated_row(fake_registry):
    validator = RecipientValidator(fake_registry)

    assert len(validator) == 1
    recipient = validator.recipients[0]
    assert recipient.name == ""
    assert recipient.phone_number == ""
    assert recipient.amount == Decimal("0")
    assert recipient.validation_status == ValidationStatus.UNVALIDATED
    assert validator.is_ready() is False


def test_add_recipient_appends_in_insertion_order(fake_registry):
    validator = RecipientValidator(fake_registry)
    second = validator.add_recipient()
    third = validator.add_recipient()

    ids = [r.id for r in validator.recipients]
    assert ids[1:] == [second.id, third.id]
    assert len(set(ids)) == 3


@pytest.mark.parametrize("entered", ["John Doe", "john doe", "  JOHN DOE  ", "John doe\t"])
def test_matching_name_is_valid_regardless_of_case_and_whitespace(fake_registry, entered):
    validator = RecipientValidator(fake_registry)
    rid = first_id(validator)
    fill(validator, rid, entered, "256701234567")

    result = asyncio.run(validator.validate_recipient(rid))

    assert result.validation_status == ValidationStatus.VALID
    assert result.validation_message == MSG_NAME_MATCH
    assert result.registered_name == "John Doe"


def test_name_mismatch_is_invalid_and_records_registered_name(fake_registry):
    validator = RecipientValidator(fake_registry)
    rid = first_id(validator)
    fill(validator, rid, "Jane Doe", "256701234567")

    result = asyncio.run(validator.validate_recipient(rid))

    assert result.validation_status == ValidationStatus.INVALID
    assert result.validation_message == "Name mismatch. Registered as: John Doe"
    assert result.registered_name == "John Doe"


@pytest.mark.parametrize("name", ["John Doe", "Anybody", "x"])
def test_unknown_number_is_always_invalid(fake_registry, name):
    validator = RecipientValidator(fake_registry)
    rid = first_id(validator)
    fill(validator, rid, name, "256000000000")

    result = asyncio.run(validator.validate_recipient(rid))

    assert result.validation_status == ValidationStatus.INVALID
    assert result.validation_message == MSG_NOT_FOUND
    assert result.registered_name is None


def test_service_failure_marks_row_invalid_without_retry(fake_registry):
    fake_registry.failing.add("256701234567")
    validator = RecipientValidator(fake_registry)
    rid = first_id(validator)
    fill(validator, rid, "John Doe", "256701234567")

    result = asyncio.run(validator.validate_recipient(rid))

    assert result.validation_status == ValidationStatus.INVALID
    assert result.validation_message == MSG_VALIDATION_FAILED
    assert fake_registry.calls == ["256701234567"]


def test_hanging_lookup_times_out_as_validation_failed():
    async def hanging_lookup(phone_number: str) -> RegistryLookupResult:
        await asyncio.sleep(5)
        return RegistryLookupResult(found=True, registered_name="John Doe")

    validator = RecipientValidator(hanging_lookup, lookup_timeout=0.05)
    rid = first_id(validator)
    fill(validator, rid, "John Doe", "256701234567")

    result = asyncio.run(validator.validate_recipient(rid))

    assert result.validation_status == ValidationStatus.INVALID
    assert result.validation_message == MSG_VALIDATION_FAILED


@pytest.mark.parametrize(
    "name, phone",
    [("", "256701234567"), ("John Doe", ""), ("   ", "256701234567")],
)
def test_validate_requires_name_and_phone(fake_registry, name, phone):
    validator = RecipientValidator(fake_registry)
    rid = first_id(validator)
    fill(validator, rid, name, phone)

    assert asyncio.run(validator.validate_recipient(rid)) is None
    assert validator.get_recipient(rid).validation_status == ValidationStatus.UNVALIDATED
    assert fake_registry.calls == []


def test_validate_unknown_id_is_noop(fake_registry):
    validator = RecipientValidator(fake_registry)
    assert asyncio.run(validator.validate_recipient("missing")) is None


@pytest.mark.parametrize(
    "field_name, value",
    [("name", "John Do"), ("phone_number", "256781234567"), ("amount", "75000")],
)
def test_edit_after_validation_resets_status(fake_registry, field_name, value):
    validator = RecipientValidator(fake_registry)
    rid = first_id(validator)
    fill(validator, rid, "John Doe", "256701234567")
    asyncio.run(validator.validate_recipient(rid))
    assert validator.get_recipient(rid).validation_status == ValidationStatus.VALID

    validator.update_recipient(rid, field_name, value)

    recipient = validator.get_recipient(rid)
    assert recipient.validation_status == ValidationStatus.UNVALIDATED
    assert recipient.registered_name is None
    assert recipient.validation_message is None
    assert validator.is_ready() is False


def test_edit_while_lookup_in_flight_discards_result():
    async def scenario():
        gate = asyncio.Event()

        async def gated_lookup(phone_number: str) -> RegistryLookupResult:
            await gate.wait()
            return RegistryLookupResult(found=True, registered_name="John Doe")

        validator = RecipientValidator(gated_lookup)
        rid = first_id(validator)
        fill(validator, rid, "John Doe", "256701234567")

        task = asyncio.create_task(validator.validate_recipient(rid))
        await asyncio.sleep(0)
        in_flight = validator.get_recipient(rid).validation_status

        validator.update_recipient(rid, "phone_number", "256781234567")
        gate.set()
        result = await task
        return validator, rid, in_flight, result

    validator, rid, in_flight, result = asyncio.run(scenario())

    assert in_flight == ValidationStatus.VALIDATING
    assert result is None
    recipient = validator.get_recipient(rid)
    assert recipient.validation_status == ValidationStatus.UNVALIDATED
    assert recipient.registered_name is None


def test_update_unknown_id_is_silent_noop(fake_registry):
    validator = RecipientValidator(fake_registry)
    before = validator.recipients

    assert validator.update_recipient("missing", "name", "John") is None
    assert validator.recipients == before


def test_update_unknown_field_raises(fake_registry):
    validator = RecipientValidator(fake_registry)
    with pytest.raises(ValueError):
        validator.update_recipient(first_id(validator), "validation_status", "VALID")


def test_remove_last_recipient_is_noop(fake_registry):
    validator = RecipientValidator(fake_registry)

    assert validator.remove_recipient(first_id(validator)) is False
    assert len(validator) == 1


def test_remove_recipient(fake_registry):
    validator = RecipientValidator(fake_registry)
    second = validator.add_recipient()

    assert validator.remove_recipient("missing") is False
    assert validator.remove_recipient(second.id) is True
    assert [r.id for r in validator.recipients] != [second.id]
    assert len(validator) == 1


def test_is_ready_requires_every_row_valid_with_positive_amount(fake_registry):
    validator = RecipientValidator(fake_registry)
    first = first_id(validator)
    second = validator.add_recipient().id
    fill(validator, first, "John Doe", "256701234567")
    fill(validator, second, "Jane Smith", "256781234567")

    asyncio.run(validator.validate_all())
    assert validator.is_ready() is True

    # Zero amount blocks readiness even after a successful validation.
    validator.update_recipient(second, "amount", "0")
    asyncio.run(validator.validate_recipient(second))
    assert validator.get_recipient(second).validation_status == ValidationStatus.VALID
    assert validator.is_ready() is False

    validator.update_recipient(second, "amount", "-10")
    asyncio.run(validator.validate_recipient(second))
    assert validator.is_ready() is False

    validator.update_recipient(second, "amount", "10")
    asyncio.run(validator.validate_recipient(second))
    assert validator.is_ready() is True


def test_one_invalid_row_blocks_readiness_but_not_other_rows(fake_registry):
    validator = RecipientValidator(fake_registry)
    first = first_id(validator)
    second = validator.add_recipient().id
    fill(validator, first, "John Doe", "256701234567")
    fill(validator, second, "Ghost", "256000000000")

    asyncio.run(validator.validate_all())

    assert validator.get_recipient(first).validation_status == ValidationStatus.VALID
    assert validator.get_recipient(second).validation_status == ValidationStatus.INVALID
    assert validator.is_ready() is False


def test_validate_all_skips_validated_and_incomplete_rows(fake_registry):
    validator = RecipientValidator(fake_registry)
    invalid = first_id(validator)
    fill(validator, invalid, "Ghost", "256000000000")
    asyncio.run(validator.validate_recipient(invalid))

    incomplete = validator.add_recipient().id
    validator.update_recipient(incomplete, "name", "No Phone")
    fresh = validator.add_recipient().id
    fill(validator, fresh, "Bob Wilson", "256771234567")
    fake_registry.calls.clear()

    results = asyncio.run(validator.validate_all())

    assert [r.id for r in results] == [fresh]
    assert fake_registry.calls == ["256771234567"]
    assert validator.get_recipient(invalid).validation_status == ValidationStatus.INVALID
    assert validator.get_recipient(incomplete).validation_status == ValidationStatus.UNVALIDATED


def test_validate_all_runs_lookups_concurrently_up_to_limit():
    state = {"active": 0, "peak": 0}

    async def counting_lookup(phone_number: str) -> RegistryLookupResult:
        state["active"] += 1
        state["peak"] = max(state["peak"], state["active"])
        await asyncio.sleep(0.01)
        state["active"] -= 1
        return RegistryLookupResult(found=True, registered_name="Same Name")

    validator = RecipientValidator(counting_lookup, max_concurrency=2)
    ids = [first_id(validator)] + [validator.add_recipient().id for _ in range(4)]
    for index, rid in enumerate(ids):
        fill(validator, rid, "Same Name", f"25670000000{index}")

    results = asyncio.run(validator.validate_all())

    assert len(results) == 5
    assert state["peak"] == 2
    assert validator.is_ready() is True


def test_total_amount_matches_full_recompute_after_edits(fake_registry):
    validator = RecipientValidator(fake_registry)
    a = first_id(validator)
    b = validator.add_recipient().id
    c = validator.add_recipient().id
    validator.update_recipient(a, "amount", "1000")
    validator.update_recipient(b, "amount", "2500.50")
    validator.update_recipient(c, "amount", 300)
    validator.update_recipient(b, "amount", "500")
    validator.remove_recipient(a)
    d = validator.add_recipient().id
    validator.update_recipient(d, "amount", "not a number")

    expected = sum((r.amount for r in validator.recipients), Decimal("0"))
    assert validator.total_amount == expected == Decimal("800")


def test_subscribers_are_notified_until_unsubscribed(fake_registry):
    validator = RecipientValidator(fake_registry)
    seen: list[bool] = []
    unsubscribe = validator.subscribe(lambda v: seen.append(v.is_ready()))

    rid = first_id(validator)
    fill(validator, rid, "John Doe", "256701234567")
    asyncio.run(validator.validate_recipient(rid))
    unsubscribe()
    validator.add_recipient()

    # three edits, VALIDATING, then the result
    assert len(seen) == 5
    assert seen[-1] is True


def test_add_recipients_replaces_untouched_placeholder(fake_registry):
    validator = RecipientValidator(fake_registry)
    added = validator.add_recipients(
        [
            {"name": "John Doe", "phone_number": "256701234567", "amount": "1000"},
            {"name": "Jane Smith", "phone_number": "256781234567", "amount": "2000", "description": "May"},
        ]
    )

    assert len(validator) == 2
    assert [r.id for r in validator.recipients] == [r.id for r in added]
    assert all(r.validation_status == ValidationStatus.UNVALIDATED for r in added)
    assert validator.total_amount == Decimal("3000")


def test_add_recipients_keeps_edited_rows(fake_registry):
    validator = RecipientValidator(fake_registry)
    validator.update_recipient(first_id(validator), "name", "Typed By Hand")

    validator.add_recipients([{"name": "John Doe", "phone_number": "256701234567", "amount": "1"}])

    assert len(validator) == 2


def test_snapshot_is_frozen_copy(fake_registry):
    validator = RecipientValidator(fake_registry)
    rid = first_id(validator)
    fill(validator, rid, " John Doe ", "256701234567")
    snapshot = validator.snapshot()

    validator.update_recipient(rid, "name", "Changed")

    assert snapshot[0].name == "John Doe"
    with pytest.raises(AttributeError):
        snapshot[0].name = "x"  # type: ignore[misc]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1500", Decimal("1500")),
        ("1,500.50", Decimal("1500.50")),
        (250, Decimal("250")),
        (Decimal("10.5"), Decimal("10.5")),
        ("", Decimal("0")),
        (None, Decimal("0")),
        ("abc", Decimal("0")),
        ("NaN", Decimal("0")),
        ("12.50", Decimal("12.50")),
        ("1.500", Decimal("1.5")),
        ("0.004", Decimal("0")),
        ("1.005", Decimal("0")),
        (Decimal("0.001"), Decimal("0")),
        ("999999999999.99", Decimal("999999999999.99")),
        ("1000000000000", Decimal("0")),
    ],
)
def test_to_amount(raw, expected):
    assert to_amount(raw) == expected


def test_sub_cent_amount_keeps_row_not_ready(fake_registry):
    validator = RecipientValidator(fake_registry)
    rid = first_id(validator)
    fill(validator, rid, "John Doe", "256701234567", amount="0.004")

    asyncio.run(validator.validate_recipient(rid))

    recipient = validator.get_recipient(rid)
    assert recipient.validation_status == ValidationStatus.VALID
    assert recipient.amount == Decimal("0")
    assert validator.is_ready() is False


def test_submitted_batch_refuses_edits_and_validation(fake_registry):
    validator = RecipientValidator(fake_registry)
    rid = first_id(validator)
    validator.claim_submission()

    with pytest.raises(BatchSubmittedError):
        validator.update_recipient(rid, "name", "John Doe")
    with pytest.raises(BatchSubmittedError):
        validator.add_recipient()
    with pytest.raises(BatchSubmittedError):
        validator.remove_recipient(rid)
    with pytest.raises(BatchSubmittedError):
        asyncio.run(validator.validate_all())
    with pytest.raises(BatchSubmittedError):
        validator.claim_submission()

    validator.release_submission()
    validator.update_recipient(rid, "name", "John Doe")
    assert validator.get_recipient(rid).name == "John Doe"
