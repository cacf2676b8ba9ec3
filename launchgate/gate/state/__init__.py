"""Observable routing state for the launch gate.

- AppState: the screen tag the presentation surface renders
- GateState: container that owns it and announces changes on the EventBus
"""

from .app_state import AppState, GateState

__all__ = ["AppState", "GateState"]
