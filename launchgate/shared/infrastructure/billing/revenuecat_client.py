"""Async REST client for the subscription billing provider."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from launchgate.shared.core.errors import BillingError

logger = logging.getLogger(__name__)


def _parse_expiry(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError) as exc:
        raise BillingError(f"Unreadable expires_date {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class RevenueCatClient:
    """Reads customer info and entitlement state over the REST API."""

    DEFAULT_BASE_URL = "https://api.revenuecat.com/v1"

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    async def get_customer_info(self, app_user_id: str) -> Dict[str, Any]:
        """Fetch the subscriber record for ``app_user_id``.

        Raises:
            BillingError: on transport failure or a non-200 response
        """
        path = f"/subscribers/{quote(app_user_id, safe='')}"
        try:
            resp = await self._client.get(path)
        except httpx.HTTPError as exc:
            raise BillingError(f"Billing request failed: {exc}") from exc

        if resp.status_code != 200:
            raise BillingError(f"Billing API returned {resp.status_code}", status_code=resp.status_code)
        try:
            body = resp.json()
        except ValueError as exc:
            raise BillingError(f"Billing API returned a non-JSON body: {exc}") from exc
        if not isinstance(body, dict):
            raise BillingError("Billing API returned an unexpected payload")
        return body.get("subscriber") or {}

    @staticmethod
    def is_entitlement_active(
        subscriber: Dict[str, Any],
        entitlement_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """Decide whether the subscriber holds an active entitlement.

        With ``entitlement_id`` only that entitlement counts; otherwise any
        active entitlement does. A null expiry is a lifetime grant.

        Raises:
            BillingError: when an expiry date cannot be parsed
        """
        now = now or datetime.now(timezone.utc)
        entitlements: Dict[str, Any] = subscriber.get("entitlements") or {}

        def active(grant: Dict[str, Any]) -> bool:
            expires = _parse_expiry(grant.get("expires_date"))
            return expires is None or expires > now

        if entitlement_id:
            grant = entitlements.get(entitlement_id)
            result = grant is not None and active(grant)
            logger.info(f"entitlement '{entitlement_id}' active={result}")
            return result

        count = sum(1 for grant in entitlements.values() if active(grant))
        logger.info(f"active entitlements count={count}")
        return count > 0

    async def aclose(self) -> None:
        await self._client.aclose()
