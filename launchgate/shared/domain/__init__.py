"""
Shared Domain Module
====================

Collaborators the launch gate consults: session restoration, subscription
status, and the backend profile mirror.
"""

# Session
from launchgate.shared.domain.session.session_store import SessionStore, BackendSessionStore

# Subscription
from launchgate.shared.domain.subscription.status import SubscriptionStatus
from launchgate.shared.domain.subscription.oracle import SubscriptionOracle, BillingSubscriptionOracle
from launchgate.shared.domain.subscription.profile_sync import ProfileSync, BackendProfileSync

__all__ = [
    # Session
    "SessionStore",
    "BackendSessionStore",
    # Subscription
    "SubscriptionStatus",
    "SubscriptionOracle",
    "BillingSubscriptionOracle",
    "ProfileSync",
    "BackendProfileSync",
]
