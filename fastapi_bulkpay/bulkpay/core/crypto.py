from __future__ import annotations

import hashlib
import os
from functools import lru_cache

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from bulkpay.core.config import settings
from bulkpay.core.phone import normalize_phone

NONCE_SIZE = 12


@lru_cache(maxsize=1)
def _get_cipher() -> AESGCM:
    return AESGCM(settings.encryption_key_bytes)


def encrypt_value(value: str | None) -> bytes:
    """AES-GCM with a random nonce prepended to the ciphertext."""
    if value is None:
        return b""
    nonce = os.urandom(NONCE_SIZE)
    return nonce + _get_cipher().encrypt(nonce, value.encode("utf-8"), None)


def decrypt_value(blob: bytes | None) -> str | None:
    if not blob:
        return None
    nonce, data = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    return _get_cipher().decrypt(nonce, data, None).decode("utf-8")


def hash_phone(phone: str | None) -> bytes:
    """Deterministic lookup key; formatting differences hash the same."""
    digits = normalize_phone(phone) or ""
    return hashlib.sha256(digits.encode("utf-8")).digest()
