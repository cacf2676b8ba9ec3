"""launchgate package."""

from .shared.core.event_bus import EventBus
from .gate import AppState, GateState, LaunchGate

__all__ = ["AppState", "EventBus", "GateState", "LaunchGate"]
