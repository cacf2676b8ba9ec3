"""Subscription Oracle: answers whether the entitlement is active."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

from launchgate.shared.core.errors import (
    BackendError,
    BillingError,
    ErrorReporter,
    SubscriptionSyncError,
)
from launchgate.shared.domain.subscription.profile_sync import ProfileSync
from launchgate.shared.domain.subscription.status import SubscriptionStatus
from launchgate.shared.infrastructure.backend.supabase_client import SupabaseClient
from launchgate.shared.infrastructure.billing.revenuecat_client import RevenueCatClient

logger = logging.getLogger(__name__)


class SubscriptionOracle(ABC):
    @abstractmethod
    async def is_active_cached(self) -> bool:
        """Cheap, possibly stale answer. Never raises."""

    @abstractmethod
    async def sync_authoritative(self) -> bool:
        """Round-trip to the billing provider, mirroring the result to the backend.

        Raises:
            SubscriptionSyncError: when the billing provider cannot be reached
        """


class BillingSubscriptionOracle(SubscriptionOracle):
    """Oracle backed by the billing REST API, mirrored to the backend profile."""

    def __init__(
        self,
        billing: RevenueCatClient,
        backend: SupabaseClient,
        profile_sync: ProfileSync,
        error_reporter: ErrorReporter,
        entitlement_id: Optional[str] = None,
        app_user_id: Optional[str] = None,
    ) -> None:
        self.billing = billing
        self.backend = backend
        self.profile_sync = profile_sync
        self.error_reporter = error_reporter
        self.entitlement_id = entitlement_id
        self.app_user_id = app_user_id
        self.status = SubscriptionStatus.UNKNOWN
        self.last_sync_time: Optional[float] = None

    def link_purchaser(self, identifier: str) -> None:
        """Attribute future billing reads to ``identifier`` (the backend user id)."""
        logger.info("Linking purchaser identity")
        self.app_user_id = identifier
        self.status = SubscriptionStatus.UNKNOWN

    async def _current_user_id(self) -> Optional[str]:
        try:
            user = await self.backend.get_current_user()
        except BackendError as e:
            logger.debug(f"Could not read current backend user: {e}")
            return None
        return user.get("id") if user else None

    async def _read_billing(self, backend_user_id: Optional[str]) -> bool:
        """Read the entitlement for the linked purchaser, or for ``backend_user_id`` if none is linked."""
        if not self.app_user_id:
            if not backend_user_id:
                raise SubscriptionSyncError("No purchaser identity; sign-in required before billing lookup")
            self.app_user_id = backend_user_id

        try:
            subscriber = await self.billing.get_customer_info(self.app_user_id)
            return self.billing.is_entitlement_active(subscriber, self.entitlement_id)
        except BillingError as exc:
            raise SubscriptionSyncError(f"Subscription status unavailable: {exc}") from exc

    async def is_active_cached(self) -> bool:
        if self.status is not SubscriptionStatus.UNKNOWN:
            return self.status.is_active
        try:
            user_id = None if self.app_user_id else await self._current_user_id()
            active = await self._read_billing(user_id)
        except SubscriptionSyncError as e:
            self.error_reporter.report(e, category="IAP", level=logging.WARNING)
            return False
        self.status = SubscriptionStatus.from_bool(active)
        return active

    async def sync_authoritative(self) -> bool:
        user_id = await self._current_user_id()
        active = await self._read_billing(user_id)
        status = SubscriptionStatus.from_bool(active)
        logger.info(f"sync_authoritative: billing says active={active}")

        if user_id:
            try:
                await self.profile_sync.push_subscription_state(active, status.backend_label)
            except BackendError as e:
                # The billing provider stays the source of truth for gating
                self.error_reporter.report(e, category="SubscriptionSync")
        else:
            logger.warning("sync_authoritative: no backend user; skipping backend push")

        self.status = status
        self.last_sync_time = time.time()
        return active
