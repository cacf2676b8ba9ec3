"""Service bundle handed to the launch gate, plus shutdown cleanup hooks."""

from __future__ import annotations

import asyncio
import atexit
import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Union

if TYPE_CHECKING:
    from launchgate.shared.core.errors import ErrorReporter
    from launchgate.shared.domain.session.session_store import SessionStore
    from launchgate.shared.domain.subscription.oracle import SubscriptionOracle
    from launchgate.shared.domain.subscription.profile_sync import ProfileSync

logger = logging.getLogger(__name__)

CleanupHandler = Union[Callable[[], None], Callable[[], Awaitable[Any]]]


class GateServices:
    """Collaborators the launch gate depends on, passed in at construction."""

    def __init__(
        self,
        session_store: "SessionStore",
        subscription_oracle: "SubscriptionOracle",
        profile_sync: "ProfileSync",
        error_reporter: "ErrorReporter",
    ) -> None:
        self.session_store = session_store
        self.subscription_oracle = subscription_oracle
        self.profile_sync = profile_sync
        self.error_reporter = error_reporter

    def __repr__(self) -> str:
        return (
            f"GateServices(session_store={type(self.session_store).__name__}, "
            f"subscription_oracle={type(self.subscription_oracle).__name__}, "
            f"profile_sync={type(self.profile_sync).__name__}, "
            f"error_reporter={type(self.error_reporter).__name__})"
        )


# Global cleanup management
_cleanup_registered = False
_cleanup_handlers: List[CleanupHandler] = []


def register_cleanup_handler(handler: CleanupHandler) -> None:
    """Register a handler to run on shutdown.

    Coroutine functions only run from ``run_cleanup_handlers``; plain
    callables also run at interpreter exit if they were never run.
    """
    global _cleanup_registered
    _cleanup_handlers.append(handler)
    if not _cleanup_registered:
        atexit.register(_cleanup_sync_handlers)
        _cleanup_registered = True
        logger.debug("Registered atexit cleanup handler")


async def run_cleanup_handlers() -> None:
    """Run and forget every registered handler."""
    logger.info("Running application cleanup...")
    handlers = list(_cleanup_handlers)
    _cleanup_handlers.clear()
    for handler in handlers:
        try:
            result = handler()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Error in cleanup handler: {e}")
    logger.info("Application cleanup completed")


def _cleanup_sync_handlers() -> None:
    for handler in list(_cleanup_handlers):
        if inspect.iscoroutinefunction(handler):
            continue
        try:
            handler()
        except Exception as e:
            logger.warning(f"Error in cleanup handler: {e}")
    _cleanup_handlers.clear()


def clear_cleanup_handlers() -> None:
    _cleanup_handlers.clear()
