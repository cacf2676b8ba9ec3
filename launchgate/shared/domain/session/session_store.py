"""Session Store: credential presence and bounded session restoration."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from launchgate.shared.core.errors import BackendError
from launchgate.shared.infrastructure.backend.supabase_client import SupabaseClient
from launchgate.shared.infrastructure.persistence.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    @abstractmethod
    def has_local_credential(self) -> bool:
        """Whether a prior sign-in was persisted on this device."""

    @abstractmethod
    async def wait_for_restored_session(self, max_wait: float) -> bool:
        """Wait up to ``max_wait`` seconds for a session; never raises."""


class BackendSessionStore(SessionStore):
    """Session store backed by the credential file and the backend auth endpoint."""

    def __init__(
        self,
        credential_store: CredentialStore,
        backend: SupabaseClient,
        poll_interval: float = 0.2,
    ) -> None:
        self.credential_store = credential_store
        self.backend = backend
        self.poll_interval = poll_interval
        self._token_loaded = False

    def has_local_credential(self) -> bool:
        return self.credential_store.exists()

    def _load_persisted_token(self) -> None:
        if self._token_loaded:
            return
        self._token_loaded = True
        credential = self.credential_store.load() or {}
        token = credential.get("access_token")
        if token and not self.backend.access_token:
            self.backend.set_access_token(token)
            logger.debug("Loaded persisted access token into backend client")

    async def _has_session(self) -> bool:
        try:
            return await self.backend.get_current_user() is not None
        except BackendError as e:
            # Not fatal while polling: the restore may still land
            logger.debug(f"Session probe failed: {e}")
            return False

    async def wait_for_restored_session(self, max_wait: float) -> bool:
        self._load_persisted_token()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max_wait

        if await self._has_session():
            return True
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self.poll_interval, remaining))
            if await self._has_session():
                return True

        logger.info(f"No session restored within {max_wait}s")
        return False
