"""Controllers that drive gate state transitions."""
