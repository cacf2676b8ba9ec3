"""Subscription status and backend mirroring."""
