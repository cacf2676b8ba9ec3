"""Subscription Status: tri-state entitlement value shared by the oracle and the backend mirror."""

from __future__ import annotations

from enum import Enum


class SubscriptionStatus(str, Enum):
    """Entitlement state as last observed.

    ``UNKNOWN`` only exists before the first successful read; gate
    decisions are always made on a plain bool.
    """
    ACTIVE = "active"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"

    @classmethod
    def from_bool(cls, is_active: bool) -> "SubscriptionStatus":
        return cls.ACTIVE if is_active else cls.INACTIVE

    @property
    def is_active(self) -> bool:
        return self is SubscriptionStatus.ACTIVE

    @property
    def backend_label(self) -> str:
        """Value written to the backend's subscription_status column."""
        return "active" if self.is_active else "free"
