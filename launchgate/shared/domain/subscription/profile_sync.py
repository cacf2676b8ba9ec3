"""Backend Profile Sync: mirrors the premium flag on the backend profile row."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from launchgate.shared.infrastructure.backend.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


class ProfileSync(ABC):
    @abstractmethod
    async def push_subscription_state(self, is_premium: bool, status: str) -> None:
        """Write the premium flag to the backend. May raise ``BackendError``."""

    @abstractmethod
    async def fetch_premium_flag(self, user_id: str) -> bool:
        """Read the premium flag back from the backend. May raise ``BackendError``."""


class BackendProfileSync(ProfileSync):
    def __init__(self, backend: SupabaseClient) -> None:
        self.backend = backend
        self.last_pushed: Optional[tuple[bool, str]] = None

    async def push_subscription_state(self, is_premium: bool, status: str) -> None:
        user = await self.backend.sync_subscription_state_from_client(
            is_premium=is_premium,
            subscription_status=status,
        )
        self.last_pushed = (is_premium, status)
        if user is not None:
            logger.info(
                f"auth-sync push result: is_premium={user.get('is_premium')} "
                f"status={user.get('subscription_status')}"
            )

    async def fetch_premium_flag(self, user_id: str) -> bool:
        return await self.backend.get_user_subscription_status(user_id)
