"""Shared fixtures and in-memory collaborators for launch gate tests."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Tuple

import pytest

from launchgate.gate.controllers.launch_gate import LaunchGate
from launchgate.gate.state.app_state import AppState
from launchgate.shared.core.configuration import GateConfig, SystemConfig
from launchgate.shared.core.errors import ErrorReporter
from launchgate.shared.core.event_bus import EventBus
from launchgate.shared.core.service_registry import GateServices
from launchgate.shared.domain.session.session_store import SessionStore
from launchgate.shared.domain.subscription.oracle import SubscriptionOracle
from launchgate.shared.domain.subscription.profile_sync import ProfileSync


class FakeSessionStore(SessionStore):
    def __init__(self, has_credential: bool = False, restores: bool = False, delay: float = 0.0):
        self.has_credential = has_credential
        self.restores = restores
        self.delay = delay
        self.credential_checks = 0
        self.wait_calls: List[float] = []

    def has_local_credential(self) -> bool:
        self.credential_checks += 1
        return self.has_credential

    async def wait_for_restored_session(self, max_wait: float) -> bool:
        self.wait_calls.append(max_wait)
        if self.delay:
            await asyncio.sleep(min(self.delay, max_wait))
        return self.restores


class FakeSubscriptionOracle(SubscriptionOracle):
    def __init__(
        self,
        authoritative: bool = True,
        cached: Optional[bool] = None,
        sync_error: Optional[Exception] = None,
        cached_error: Optional[Exception] = None,
        sync_delay: float = 0.0,
    ):
        self.authoritative = authoritative
        self.cached = authoritative if cached is None else cached
        self.sync_error = sync_error
        self.cached_error = cached_error
        self.sync_delay = sync_delay
        self.sync_calls = 0
        self.cached_calls = 0

    @property
    def total_calls(self) -> int:
        return self.sync_calls + self.cached_calls

    async def is_active_cached(self) -> bool:
        self.cached_calls += 1
        if self.cached_error is not None:
            raise self.cached_error
        return self.cached

    async def sync_authoritative(self) -> bool:
        self.sync_calls += 1
        if self.sync_delay:
            await asyncio.sleep(self.sync_delay)
        if self.sync_error is not None:
            raise self.sync_error
        return self.authoritative


class FakeProfileSync(ProfileSync):
    def __init__(self, error: Optional[Exception] = None, premium: bool = False):
        self.error = error
        self.premium = premium
        self.pushes: List[Tuple[bool, str]] = []

    async def push_subscription_state(self, is_premium: bool, status: str) -> None:
        if self.error is not None:
            raise self.error
        self.pushes.append((is_premium, status))

    async def fetch_premium_flag(self, user_id: str) -> bool:
        return self.premium


class RecordingErrorReporter(ErrorReporter):
    def __init__(self, event_bus: Optional[EventBus] = None):
        super().__init__(event_bus)
        self.reports: List[Tuple[BaseException, str, int]] = []

    def report(self, error: BaseException, category: str = "General", level: int = logging.ERROR) -> None:
        self.reports.append((error, category, level))
        super().report(error, category=category, level=level)

    def categories(self) -> List[str]:
        return [category for _, category, _ in self.reports]


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def session_store() -> FakeSessionStore:
    return FakeSessionStore()


@pytest.fixture
def oracle() -> FakeSubscriptionOracle:
    return FakeSubscriptionOracle()


@pytest.fixture
def profile_sync() -> FakeProfileSync:
    return FakeProfileSync()


@pytest.fixture
def reporter(event_bus) -> RecordingErrorReporter:
    return RecordingErrorReporter(event_bus)


@pytest.fixture
def fast_config() -> SystemConfig:
    return SystemConfig(
        gate=GateConfig(
            min_launch_display=0.0,
            restore_wait_with_credential=0.05,
            restore_wait_no_credential=0.01,
            session_poll_interval=0.01,
        )
    )


@pytest.fixture
def services(session_store, oracle, profile_sync, reporter) -> GateServices:
    return GateServices(
        session_store=session_store,
        subscription_oracle=oracle,
        profile_sync=profile_sync,
        error_reporter=reporter,
    )


@pytest.fixture
def gate(services, event_bus, fast_config) -> LaunchGate:
    return LaunchGate(services, event_bus, fast_config)


@pytest.fixture
def completed_gate(gate) -> LaunchGate:
    """Gate whose initial launch already finished, parked on value screens."""
    gate.state.set_app_state(AppState.VALUE_SCREENS)
    gate.state.set_completed_initial_gate(True)
    return gate
