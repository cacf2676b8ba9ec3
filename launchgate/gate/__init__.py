"""Launch gate: routing state, timing, and the controller that drives them."""

from .state import AppState, GateState
from .controllers.launch_gate import LaunchGate
from .timing import MinimumDisplayTimer

__all__ = ["AppState", "GateState", "LaunchGate", "MinimumDisplayTimer"]
