"""Canonical event definitions for the launch gate."""

from __future__ import annotations

import time

from .event_bus import EventPayload

# Routing
TOPIC_APP_STATE_CHANGED = "app.state.changed"
TOPIC_GATE_STATUS = "gate.status"
TOPIC_LAUNCH_COMPLETED = "gate.launch.completed"

# Subscription lifecycle
TOPIC_SUBSCRIPTION_LAPSED = "subscription.lapsed"

# Diagnostics (error banner lives outside the gate)
TOPIC_ERROR_REPORTED = "error.reported"
TOPIC_USER_VISIBLE_ERROR = "error.user_visible"


def create_app_state_changed_event(previous: str, current: str) -> EventPayload:
    """Create an app state transition event."""
    return {
        "previous": previous,
        "current": current,
        "ts": time.time(),
    }


def create_gate_status_event(
    is_verifying_subscription: bool,
    has_completed_initial_gate: bool,
) -> EventPayload:
    return {
        "is_verifying_subscription": is_verifying_subscription,
        "has_completed_initial_gate": has_completed_initial_gate,
    }


def create_launch_completed_event(app_state: str, elapsed: float, session_restored: bool) -> EventPayload:
    """Create the event emitted once the cold-start sequence has picked a screen."""
    return {
        "app_state": app_state,
        "elapsed": elapsed,
        "session_restored": session_restored,
    }


def create_subscription_lapsed_event(previous_state: str, current_state: str) -> EventPayload:
    """Create the event emitted when a resume check finds the entitlement gone."""
    return {
        "previous": previous_state,
        "current": current_state,
        "ts": time.time(),
    }


def create_error_reported_event(
    message: str,
    category: str,
    error_type: str,
    level: str = "error",
) -> EventPayload:
    """Create an error report event.

    Args:
        message: Human-readable error text
        category: Logging category (Navigation, IAP, Auth, ...)
        error_type: Exception class name
        level: Log level name
    """
    return {
        "message": message,
        "category": category,
        "error_type": error_type,
        "level": level,
        "ts": time.time(),
    }


def create_user_visible_error_event(title: str, message: str) -> EventPayload:
    return {
        "title": title,
        "message": message,
    }

