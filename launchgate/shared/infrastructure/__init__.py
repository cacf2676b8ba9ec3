"""
Shared Infrastructure Module
=============================

Technical adapters for external systems (backend, billing, on-device storage).
"""

# Backend
from launchgate.shared.infrastructure.backend.supabase_client import SupabaseClient

# Billing
from launchgate.shared.infrastructure.billing.revenuecat_client import RevenueCatClient

# Persistence
from launchgate.shared.infrastructure.persistence.credential_store import CredentialStore

__all__ = [
    "SupabaseClient",
    "RevenueCatClient",
    "CredentialStore",
]
