"""Launch Gate: decides which top-level screen the user sees.

Runs the cold-start sequence (credential → session restore → subscription
decision → minimum splash), admits users to the main tabs, and reconciles
subscription changes when the app comes back to the foreground.

No public operation raises a collaborator failure; those are reported and
degrade to the paywall or the value screens.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Awaitable, Callable, Dict, Iterator, Optional

from launchgate.gate.state.app_state import AppState, GateState
from launchgate.gate.timing import MinimumDisplayTimer
from launchgate.shared.core import events
from launchgate.shared.core.configuration import SystemConfig, validate_configuration
from launchgate.shared.core.errors import ConfigurationError, SubscriptionLapsedError
from launchgate.shared.core.event_bus import EventBus
from launchgate.shared.core.service_registry import GateServices

logger = logging.getLogger(__name__)

NAVIGATION = "Navigation"


class LaunchGate:
    """Single owner of ``AppState``; every screen change goes through here."""

    def __init__(
        self,
        services: GateServices,
        event_bus: EventBus,
        config: Optional[SystemConfig] = None,
    ) -> None:
        self.services = services
        self.bus = event_bus
        self.config = config or SystemConfig()
        self.timing = self.config.gate
        self.state = GateState(event_bus)

        self.configuration_error: Optional[ConfigurationError] = None
        self.last_error: Optional[BaseException] = None

        # Async transitions write AppState one at a time
        self._transition_lock = asyncio.Lock()
        self._inflight: Dict[str, asyncio.Task] = {}
        self._launch_timer: Optional[MinimumDisplayTimer] = None

    # --- Read access for the presentation surface ---

    @property
    def app_state(self) -> AppState:
        return self.state.app_state

    @property
    def is_verifying_subscription(self) -> bool:
        return self.state.is_verifying_subscription

    @property
    def has_completed_initial_gate(self) -> bool:
        return self.state.has_completed_initial_gate

    # --- Plain transitions ---

    def start_value_screens(self) -> None:
        self._transition(AppState.VALUE_SCREENS, "start_value_screens")

    def start_sign_in(self) -> None:
        self._transition(AppState.SIGN_IN, "start_sign_in")

    def start_onboarding(self) -> None:
        self._transition(AppState.ONBOARDING, "start_onboarding")

    def start_survey(self) -> None:
        # Placeholder step: the survey has no gating of its own
        self._transition(AppState.SURVEY, "start_survey")

    def start_paywall(self) -> None:
        self._transition(AppState.PAYWALL, "start_paywall")

    def upgrade_from_tabs(self) -> None:
        """Open the paywall from an upgrade button inside the main tabs."""
        if self.app_state is not AppState.MAIN_TABS:
            logger.debug(f"upgrade_from_tabs called from {self.app_state.value}")
        self._transition(AppState.PAYWALL, "upgrade_from_tabs")

    def _transition(self, target: AppState, operation: str) -> None:
        if self.state.set_app_state(target):
            logger.info(f"{operation}: -> {target.value}")

    # --- Gated transitions ---

    async def run_launch_sequence(self) -> None:
        """Pick the first real screen. Runs at most once per process."""
        if self.has_completed_initial_gate:
            logger.info("run_launch_sequence: already completed; skipping")
            return
        await self._single_flight("run_launch_sequence", self._launch)

    async def start_main_tabs(self, force: bool = False) -> None:
        """Admit the user to the main tabs if subscribed, else show the paywall.

        Args:
            force: skip verification, e.g. right after a successful purchase
        """
        await self._single_flight(f"start_main_tabs:force={force}", lambda: self._admit(force))

    async def route_to_paywall_if_needed(self) -> None:
        """Show the paywall unless the cached status already says subscribed."""
        await self._single_flight("route_to_paywall_if_needed", self._route_to_paywall)

    async def verify_on_resume(self) -> None:
        """Reconcile main tabs / paywall after the app returns to the foreground."""
        if not self._resume_allowed():
            logger.debug("verify_on_resume: initial gate not complete; ignoring")
            return
        await self._single_flight("verify_on_resume", self._reconcile)

    # --- Diagnostics ---

    def validate_configuration(self) -> Optional[ConfigurationError]:
        try:
            validate_configuration(self.config)
        except ConfigurationError as e:
            self.configuration_error = e
            logger.warning(f"Configuration invalid ({e.code}): {e}")
        else:
            self.configuration_error = None
        return self.configuration_error

    def handle_error(self, error: BaseException) -> None:
        """Record an error raised by a screen; never changes AppState."""
        self.last_error = error
        self.services.error_reporter.handle(error)

    # --- Lifecycle ---

    def skip_launch_delay(self) -> None:
        """Release the minimum splash wait if the launch is currently holding."""
        if self._launch_timer is not None:
            self._launch_timer.skip()

    async def shutdown(self) -> None:
        """Cancel in-flight transitions; the launch still leaves a final state behind."""
        self.skip_launch_delay()
        tasks = [task for task in self._inflight.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"LaunchGate shut down in state {self.app_state.value}")

    # --- Internals ---

    async def _single_flight(self, key: str, factory: Callable[[], Awaitable[None]]) -> None:
        """Run ``factory`` as one task; concurrent callers share the same task."""
        task = self._inflight.get(key)
        if task is None or task.done():
            task = asyncio.create_task(factory(), name=f"launchgate.{key}")
            self._inflight[key] = task
            task.add_done_callback(lambda done, k=key: self._forget(k, done))
        else:
            logger.debug(f"{key}: joining in-flight call")
        await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    @contextmanager
    def _verifying(self) -> Iterator[None]:
        self.state.set_verifying_subscription(True)
        try:
            yield
        finally:
            self.state.set_verifying_subscription(False)

    def _resume_allowed(self) -> bool:
        return self.has_completed_initial_gate and self.app_state is not AppState.LAUNCH_LOADING

    def _has_local_credential(self) -> bool:
        try:
            return self.services.session_store.has_local_credential()
        except Exception as e:
            self.services.error_reporter.report(e, category="Auth")
            return False

    async def _wait_for_session(self, budget: float) -> bool:
        try:
            return await self.services.session_store.wait_for_restored_session(budget)
        except Exception as e:
            self.services.error_reporter.report(e, category="Auth")
            return False

    async def _cached_subscription(self, operation: str) -> bool:
        try:
            active = await self.services.subscription_oracle.is_active_cached()
        except Exception as e:
            self.services.error_reporter.report(e, category=NAVIGATION)
            return False
        logger.info(f"{operation}: is_active_cached={active}")
        return active

    async def _check_subscription(self, operation: str) -> bool:
        """Authoritative check, falling back to the cached read on failure."""
        try:
            active = await self.services.subscription_oracle.sync_authoritative()
        except Exception as e:
            self.services.error_reporter.report(e, category=NAVIGATION, level=logging.WARNING)
            logger.warning(f"{operation}: sync_authoritative failed ({e}) - falling back to is_active_cached()")
            return await self._cached_subscription(operation)
        logger.info(f"{operation}: sync_authoritative result={active}")
        return active

    async def _launch(self) -> None:
        try:
            async with self._transition_lock:
                await self._launch_locked()
        except asyncio.CancelledError:
            # Cancelled while queued behind another transition
            if not self.has_completed_initial_gate:
                fallback = AppState.VALUE_SCREENS if self.app_state is AppState.LAUNCH_LOADING else self.app_state
                self._complete_launch(fallback, elapsed=0.0, restored=False)
            raise

    async def _launch_locked(self) -> None:
        if self.has_completed_initial_gate:
            return

        self.state.set_completed_initial_gate(False)
        self.state.set_app_state(AppState.LAUNCH_LOADING)
        self.validate_configuration()
        logger.info("run_launch_sequence: starting launch gate")

        timer = MinimumDisplayTimer(self.timing.min_launch_display)
        self._launch_timer = timer
        timer.start()

        next_state = AppState.VALUE_SCREENS
        restored = False
        try:
            had_credential = self._has_local_credential()
            budget = (
                self.timing.restore_wait_with_credential
                if had_credential
                else self.timing.restore_wait_no_credential
            )
            # Without a credential there is nothing to restore; skip straight to the splash hold
            if had_credential:
                restored = await self._wait_for_session(budget)
            logger.info(
                f"run_launch_sequence: credential={had_credential} "
                f"restored within {budget}s = {restored}"
            )

            if restored:
                with self._verifying():
                    is_subscribed = await self._check_subscription("run_launch_sequence")
                next_state = AppState.MAIN_TABS if is_subscribed else AppState.PAYWALL

            await timer.wait_remaining()
        finally:
            self._launch_timer = None
            self._complete_launch(next_state, timer.elapsed, restored)

    def _complete_launch(self, next_state: AppState, elapsed: float, restored: bool) -> None:
        self.state.set_app_state(next_state)
        self.state.set_completed_initial_gate(True)
        logger.info(f"run_launch_sequence: completed -> {next_state.value}")
        self.bus.publish_nowait(
            events.TOPIC_LAUNCH_COMPLETED,
            events.create_launch_completed_event(next_state.value, elapsed, restored),
        )

    async def _admit(self, force: bool) -> None:
        async with self._transition_lock:
            logger.info(f"start_main_tabs called. force={force}")
            if force:
                self.state.set_app_state(AppState.MAIN_TABS)
                logger.info("start_main_tabs: forcing main_tabs without verification")
                return

            with self._verifying():
                if await self._check_subscription("start_main_tabs"):
                    self.state.set_app_state(AppState.MAIN_TABS)
                    logger.info("start_main_tabs: gating allowed -> main_tabs")
                else:
                    await self._route_by_cached_status("start_main_tabs")

    async def _route_to_paywall(self) -> None:
        async with self._transition_lock:
            with self._verifying():
                await self._route_by_cached_status("route_to_paywall_if_needed")

    async def _route_by_cached_status(self, operation: str) -> None:
        if await self._cached_subscription(operation):
            self.state.set_app_state(AppState.MAIN_TABS)
            logger.info(f"{operation}: user already subscribed -> main_tabs")
        else:
            self.state.set_app_state(AppState.PAYWALL)
            logger.info(f"{operation}: user not subscribed -> paywall")

    async def _reconcile(self) -> None:
        async with self._transition_lock:
            if not self._resume_allowed():
                return

            with self._verifying():
                is_subscribed = await self._check_subscription("verify_on_resume")
                current = self.app_state

                if current is AppState.MAIN_TABS and not is_subscribed:
                    self.state.set_app_state(AppState.PAYWALL)
                    logger.warning("verify_on_resume: subscription expired while in main_tabs -> paywall")
                    lapsed = SubscriptionLapsedError("Subscription expired while app was in background")
                    self.services.error_reporter.report(lapsed, category=NAVIGATION, level=logging.WARNING)
                    self.bus.publish_nowait(
                        events.TOPIC_SUBSCRIPTION_LAPSED,
                        events.create_subscription_lapsed_event(current.value, AppState.PAYWALL.value),
                    )
                elif current is AppState.PAYWALL and is_subscribed:
                    self.state.set_app_state(AppState.MAIN_TABS)
                    logger.info("verify_on_resume: subscribed while on paywall -> main_tabs")
