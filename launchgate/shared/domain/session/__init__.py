"""Session restoration."""
