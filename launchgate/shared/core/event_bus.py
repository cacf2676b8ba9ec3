"""In-process pub/sub used to tell the presentation layer what the gate decided."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeAlias

EventPayload: TypeAlias = Dict[str, Any]
EventHandler: TypeAlias = Callable[[EventPayload], Awaitable[None]]

logger = logging.getLogger(__name__)


class EventBus:
    """Notification channel between the launch gate and whoever renders it.

    Handlers are coroutines and run as independent tasks, so a publisher
    never waits on (or fails because of) a slow or broken subscriber.

    Attributes:
        delivered: handler invocations that completed
        failed: handler invocations that raised
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        # Bound to whichever loop first touches the bus
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self._in_flight: set[asyncio.Task] = set()
        self.delivered = 0
        self.failed = 0

    def _guard(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def subscribe(self, topic: str, handler: EventHandler) -> None:
        async with self._guard():
            handlers = self._handlers[topic]
            if handler not in handlers:
                handlers.append(handler)

    async def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        async with self._guard():
            handlers = self._handlers.get(topic)
            if handlers and handler in handlers:
                handlers.remove(handler)

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, ()))

    async def publish(self, topic: str, payload: EventPayload) -> None:
        """Deliver ``payload`` to every handler currently subscribed to ``topic``."""
        async with self._guard():
            targets = list(self._handlers.get(topic, ()))
        self._fan_out(topic, targets, payload)

    def publish_nowait(self, topic: str, payload: EventPayload) -> bool:
        """Schedule delivery of an event from synchronous code.

        Handlers run as tasks on the running loop; the caller never waits
        for them. Returns False when there is no running loop to deliver on.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop; dropping event '{topic}'")
            return False
        self._fan_out(topic, list(self._handlers.get(topic, ())), payload)
        return True

    def _fan_out(self, topic: str, targets: List[EventHandler], payload: EventPayload) -> None:
        if not targets:
            logger.debug(f"'{topic}' has no subscribers")
            return

        logger.debug(f"'{topic}' -> {len(targets)} handler(s)")
        for handler in targets:
            task = asyncio.create_task(self._deliver(topic, handler, payload))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def _deliver(self, topic: str, handler: EventHandler, payload: EventPayload) -> None:
        try:
            await handler(payload)
        except Exception:
            self.failed += 1
            name = getattr(handler, "__qualname__", repr(handler))
            logger.exception(f"Handler {name} failed on '{topic}'")
        else:
            self.delivered += 1

    async def wait_until_idle(self, timeout: float = 5.0) -> bool:
        """Block until no handler task is running.

        Returns:
            False if ``timeout`` seconds passed with handlers still running
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self._in_flight:
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning(f"EventBus still busy with {len(self._in_flight)} handler(s) after {timeout}s")
                return False
            # Handlers may publish again, so keep draining until the set is empty
            await asyncio.wait(list(self._in_flight), timeout=remaining)
        return True

    def clear(self) -> None:
        self._handlers.clear()
