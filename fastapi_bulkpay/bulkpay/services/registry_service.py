from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from bulkpay.core.config import settings
from bulkpay.core.phone import mask_phone, normalize_phone

logger = logging.getLogger(__name__)

# Demo subscribers served while REGISTRY_MOCK_MODE is on.
MOCK_REGISTRY: Dict[str, str] = {
    "256701234567": "John Doe",
    "256781234567": "Jane Smith",
    "256771234567": "Bob Wilson",
    "256741234567": "Alice Johnson",
    "256761234567": "Mike Brown",
}
REGISTERED_NAME_KEYS = ("registered_name", "registeredName", "name")


class RegistryLookupError(RuntimeError):
    """Network registry call failed (as opposed to a lookup miss)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = False,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable
        self.payload = payload or {}


@dataclass(frozen=True)
class RegistryLookupResult:
    found: bool
    registered_name: Optional[str] = None
    raw_payload: Dict[str, Any] | None = field(default=None, compare=False)


RegistryLookup = Callable[[str], Awaitable[RegistryLookupResult]]


async def lookup_phone(phone_number: str) -> RegistryLookupResult:
    msisdn = normalize_phone(phone_number) or ""
    if settings.registry_mock_mode or not settings.registry_base_url:
        return await _mock_lookup(msisdn)
    return await _remote_lookup(msisdn)


# --------------------------------------------------------------------------- #
# Internal helpers

async def _remote_lookup(msisdn: str) -> RegistryLookupResult:
    url = f"{settings.registry_base_url.rstrip('/')}/registry/lookup"
    headers = {"Accept": "application/json"}
    if settings.registry_api_key:
        headers["Authorization"] = f"Bearer {settings.registry_api_key}"

    try:
        async with httpx.AsyncClient(timeout=settings.registry_timeout) as client:
            response = await client.get(url, params={"msisdn": msisdn}, headers=headers)
    except httpx.HTTPError as exc:
        raise RegistryLookupError(f"Registry lookup request failed: {exc}", retryable=True) from exc

    if response.status_code == 404:
        logger.debug("Registry miss for %s", mask_phone(msisdn))
        return RegistryLookupResult(found=False)
    if response.status_code >= 400:
        raise RegistryLookupError(
            f"Registry lookup HTTP error: {response.status_code}",
            status_code=response.status_code,
            retryable=response.status_code >= 500,
        )

    try:
        payload = response.json()
    except ValueError as exc:
        raise RegistryLookupError("Registry lookup returned a non-JSON body") from exc
    return _parse_lookup_payload(payload)


def _parse_lookup_payload(payload: Any) -> RegistryLookupResult:
    if not isinstance(payload, dict):
        raise RegistryLookupError("Registry lookup returned an unexpected payload")

    # Accept both a bare body and the {success, message, data} envelope.
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    registered_name = _extract_registered_name(data)
    found = data.get("found")
    if found is None:
        found = registered_name is not None

    if not found:
        return RegistryLookupResult(found=False, raw_payload=payload)
    if registered_name is None:
        raise RegistryLookupError("Registry hit without a registered name", payload=payload)
    return RegistryLookupResult(found=True, registered_name=registered_name, raw_payload=payload)


def _extract_registered_name(data: Dict[str, Any]) -> Optional[str]:
    for key in REGISTERED_NAME_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


async def _mock_lookup(msisdn: str) -> RegistryLookupResult:
    if settings.registry_mock_delay_seconds > 0:
        await asyncio.sleep(settings.registry_mock_delay_seconds)
    registered_name = MOCK_REGISTRY.get(msisdn)
    logger.debug(
        "Mock registry lookup %s -> %s",
        mask_phone(msisdn),
        "hit" if registered_name else "miss",
    )
    if registered_name is None:
        return RegistryLookupResult(found=False)
    return RegistryLookupResult(found=True, registered_name=registered_name)
