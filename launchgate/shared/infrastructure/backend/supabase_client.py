"""Thin async HTTP client for the backend-as-a-service (auth, REST, functions)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from launchgate.shared.core.errors import BackendError

logger = logging.getLogger(__name__)

# Text values of user_profiles.subscription_status that count as premium
PREMIUM_STATUSES = frozenset({"active", "premium", "subscribed"})


class SupabaseClient:
    """Backend client wrapping the auth, REST and edge-function endpoints."""

    PROFILES_TABLE = "user_profiles"
    AUTH_SYNC_FUNCTION = "auth-sync"

    def __init__(
        self,
        url: str,
        anon_key: str,
        access_token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token
        self._client = httpx.AsyncClient(
            base_url=self.url,
            timeout=timeout,
            transport=transport,
            headers={"apikey": anon_key},
        )

    def set_access_token(self, token: Optional[str]) -> None:
        self.access_token = token

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token or self.anon_key}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise BackendError(f"Backend request {method} {path} failed: {exc}") from exc

    @staticmethod
    def _json(resp: httpx.Response, expected: type) -> Any:
        path = resp.request.url.path
        try:
            body = resp.json()
        except ValueError as exc:
            raise BackendError(f"Backend returned a non-JSON body for {path}", status_code=resp.status_code) from exc
        if not isinstance(body, expected):
            raise BackendError(f"Backend returned an unexpected payload for {path}", status_code=resp.status_code)
        return body

    async def get_current_user(self) -> Optional[Dict[str, Any]]:
        """Return the signed-in user, or None when there is no valid session."""
        if not self.access_token:
            return None

        resp = await self._request("GET", "/auth/v1/user")
        if resp.status_code in (401, 403):
            return None
        if resp.status_code != 200:
            raise BackendError(f"Backend auth returned {resp.status_code}", status_code=resp.status_code)
        return self._json(resp, dict)

    async def _select_profile(self, column: str, user_id: str) -> List[Dict[str, Any]]:
        resp = await self._request(
            "GET",
            f"/rest/v1/{self.PROFILES_TABLE}",
            params={"select": column, "id": f"eq.{user_id}", "limit": "1"},
        )
        if resp.status_code != 200:
            raise BackendError(
                f"Selecting {column} from {self.PROFILES_TABLE} returned {resp.status_code}",
                status_code=resp.status_code,
            )
        return self._json(resp, list)

    async def get_user_subscription_status(self, user_id: str) -> bool:
        """Read the premium flag mirrored on the user's profile row.

        Prefers the boolean ``is_premium`` column and falls back to the
        older ``subscription_status`` text column.
        """
        try:
            rows = await self._select_profile("is_premium", user_id)
            if rows and rows[0].get("is_premium") is not None:
                return bool(rows[0]["is_premium"])
        except BackendError as e:
            logger.debug(f"is_premium lookup failed, trying subscription_status: {e}")

        rows = await self._select_profile("subscription_status", user_id)
        status = (rows[0].get("subscription_status") or "").lower() if rows else ""
        return status in PREMIUM_STATUSES

    async def sync_subscription_state_from_client(
        self,
        is_premium: bool,
        subscription_status: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        """Push the client's view of the subscription to the auth-sync function."""
        logger.info(f"auth-sync push: is_premium={is_premium} subscription_status={subscription_status}")
        resp = await self._request(
            "POST",
            f"/functions/v1/{self.AUTH_SYNC_FUNCTION}",
            json={"is_premium": is_premium, "subscription_status": subscription_status},
        )
        if resp.status_code != 200:
            raise BackendError(f"auth-sync returned {resp.status_code}: {resp.text}", status_code=resp.status_code)

        user = self._json(resp, dict).get("user")
        if user is None:
            logger.warning("auth-sync push result: user is nil")
        return user

    async def aclose(self) -> None:
        await self._client.aclose()
