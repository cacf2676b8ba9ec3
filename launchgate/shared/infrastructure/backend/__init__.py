"""Backend-as-a-service adapter."""
