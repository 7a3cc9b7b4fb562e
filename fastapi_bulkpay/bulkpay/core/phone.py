from __future__ import annotations

import re

AIRTEL_PREFIXES = ("070", "075")
MTN_PREFIXES = ("076", "077", "078", "079")


def normalize_phone(phone: str | None) -> str | None:
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    return digits or None


def to_local_number(phone: str | None) -> str | None:
    """256XXXXXXXXX / +256 XXX ... -> 0XXXXXXXXX. Returns None for anything else."""
    digits = normalize_phone(phone)
    if not digits:
        return None
    if digits.startswith("256"):
        return "0" + digits[3:]
    if digits.startswith("0"):
        return digits
    return None


def detect_network(phone: str | None) -> str:
    local = to_local_number(phone)
    if not local:
        return "Unknown"
    if local.startswith(AIRTEL_PREFIXES):
        return "Airtel"
    if local.startswith(MTN_PREFIXES):
        return "MTN"
    return "Unknown"


def mask_phone(phone: str | None) -> str | None:
    if not phone:
        return None
    digits = normalize_phone(phone)
    if not digits or len(digits) < 4:
        return "****"
    prefix = digits[:3]
    suffix = digits[-4:]
    return f"{prefix}-****-{suffix}"
