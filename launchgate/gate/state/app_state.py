"""Launch Gate State.

Holds the routing tag and the two status flags, and announces every change
on the EventBus so a presentation layer can re-render without polling.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Tuple

from launchgate.shared.core import events
from launchgate.shared.core.event_bus import EventBus

logger = logging.getLogger(__name__)


class AppState(str, Enum):
    """Which top-level screen is presented."""
    LAUNCH_LOADING = "launch_loading"
    VALUE_SCREENS = "value_screens"
    SIGN_IN = "sign_in"
    ONBOARDING = "onboarding"
    SURVEY = "survey"
    PAYWALL = "paywall"
    MAIN_TABS = "main_tabs"


StateObserver = Callable[[AppState, AppState], None]


class GateState:
    """Observable state container owned by the launch gate.

    Writes go through ``set_app_state`` and the two flag setters; each
    change is pushed to synchronous observers and published on the bus.

    Attributes:
        transitions: every (previous, current) pair, oldest first
    """

    def __init__(self, event_bus: EventBus) -> None:
        """Initialize gate state.

        Args:
            event_bus: The shared event bus used as the notification channel
        """
        self.bus = event_bus

        self._app_state = AppState.LAUNCH_LOADING
        self._is_verifying_subscription = False
        self._has_completed_initial_gate = False

        self._observers: List[StateObserver] = []
        self.transitions: List[Tuple[AppState, AppState]] = []

    # --- Read access ---

    @property
    def app_state(self) -> AppState:
        return self._app_state

    @property
    def is_verifying_subscription(self) -> bool:
        return self._is_verifying_subscription

    @property
    def has_completed_initial_gate(self) -> bool:
        return self._has_completed_initial_gate

    def snapshot(self) -> Dict[str, Any]:
        return {
            "app_state": self._app_state.value,
            "is_verifying_subscription": self._is_verifying_subscription,
            "has_completed_initial_gate": self._has_completed_initial_gate,
        }

    # --- Observers ---

    def add_observer(self, observer: StateObserver) -> None:
        """Register a synchronous callback invoked with (previous, current)."""
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: StateObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    # --- Writes ---

    def set_app_state(self, new_state: AppState) -> bool:
        """Move to ``new_state``. Returns False when already there."""
        previous = self._app_state
        if previous is new_state:
            return False

        self._app_state = new_state
        self.transitions.append((previous, new_state))
        logger.debug(f"AppState {previous.value} -> {new_state.value}")

        for observer in list(self._observers):
            try:
                observer(previous, new_state)
            except Exception:
                logger.exception(f"AppState observer {observer!r} failed")

        self.bus.publish_nowait(
            events.TOPIC_APP_STATE_CHANGED,
            events.create_app_state_changed_event(previous.value, new_state.value),
        )
        return True

    def set_verifying_subscription(self, value: bool) -> None:
        if self._is_verifying_subscription == value:
            return
        self._is_verifying_subscription = value
        self._publish_status()

    def set_completed_initial_gate(self, value: bool) -> None:
        if self._has_completed_initial_gate == value:
            return
        self._has_completed_initial_gate = value
        self._publish_status()

    def _publish_status(self) -> None:
        self.bus.publish_nowait(
            events.TOPIC_GATE_STATUS,
            events.create_gate_status_event(
                self._is_verifying_subscription,
                self._has_completed_initial_gate,
            ),
        )
