import logging

import pytest

from launchgate.shared.core.errors import (
    BackendError,
    BillingError,
    SubscriptionSyncError,
)
from launchgate.shared.domain.subscription.oracle import BillingSubscriptionOracle
from launchgate.shared.domain.subscription.status import SubscriptionStatus
from launchgate.shared.infrastructure.billing.revenuecat_client import RevenueCatClient


class FakeBilling:
    def __init__(self, active=True, error=None, subscriber=None):
        self.active = active
        self.error = error
        self.subscriber = subscriber
        self.lookups = []

    async def get_customer_info(self, app_user_id):
        self.lookups.append(app_user_id)
        if self.error is not None:
            raise self.error
        if self.subscriber is not None:
            return self.subscriber
        expires = None if self.active else "2000-01-01T00:00:00Z"
        return {"entitlements": {"pro": {"expires_date": expires}}}

    is_entitlement_active = staticmethod(RevenueCatClient.is_entitlement_active)


class FakeBackend:
    def __init__(self, user_id="u1", error=None):
        self.user_id = user_id
        self.error = error
        self.calls = 0

    async def get_current_user(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return {"id": self.user_id} if self.user_id else None


@pytest.fixture
def make_oracle(profile_sync, reporter):
    def factory(billing=None, backend=None, **kwargs):
        return BillingSubscriptionOracle(
            billing=billing or FakeBilling(),
            backend=backend or FakeBackend(),
            profile_sync=profile_sync,
            error_reporter=reporter,
            **kwargs,
        )

    return factory


async def test_sync_pushes_result_to_backend(make_oracle, profile_sync):
    oracle = make_oracle(entitlement_id="pro")

    assert await oracle.sync_authoritative() is True

    assert profile_sync.pushes == [(True, "active")]
    assert oracle.status is SubscriptionStatus.ACTIVE
    assert oracle.last_sync_time is not None


async def test_inactive_pushes_free_label(make_oracle, profile_sync):
    oracle = make_oracle(billing=FakeBilling(active=False))

    assert await oracle.sync_authoritative() is False
    assert profile_sync.pushes == [(False, "free")]


async def test_push_failure_is_reported_and_billing_wins(make_oracle, profile_sync, reporter):
    profile_sync.error = BackendError("auth-sync 500")
    oracle = make_oracle()

    assert await oracle.sync_authoritative() is True
    assert reporter.categories() == ["SubscriptionSync"]


async def test_billing_failure_raises_sync_error(make_oracle):
    oracle = make_oracle(billing=FakeBilling(error=BillingError("down", status_code=503)))

    with pytest.raises(SubscriptionSyncError):
        await oracle.sync_authoritative()
    assert oracle.status is SubscriptionStatus.UNKNOWN


async def test_no_identity_raises_sync_error(make_oracle):
    billing = FakeBilling()
    oracle = make_oracle(billing=billing, backend=FakeBackend(user_id=None))

    with pytest.raises(SubscriptionSyncError):
        await oracle.sync_authoritative()
    assert billing.lookups == []


async def test_linked_purchaser_without_backend_user_skips_push(make_oracle, profile_sync):
    billing = FakeBilling()
    oracle = make_oracle(billing=billing, backend=FakeBackend(user_id=None))
    oracle.link_purchaser("anon-42")

    assert await oracle.sync_authoritative() is True
    assert billing.lookups == ["anon-42"]
    assert profile_sync.pushes == []


async def test_cached_reuses_last_sync(make_oracle):
    billing = FakeBilling()
    oracle = make_oracle(billing=billing)
    await oracle.sync_authoritative()
    billing.active = False

    assert await oracle.is_active_cached() is True
    assert len(billing.lookups) == 1


async def test_cached_reads_billing_when_unknown(make_oracle):
    oracle = make_oracle(billing=FakeBilling(active=False))

    assert await oracle.is_active_cached() is False
    assert oracle.status is SubscriptionStatus.INACTIVE


async def test_cached_failure_is_reported_and_inactive(make_oracle, reporter):
    oracle = make_oracle(billing=FakeBilling(error=BillingError("down")))

    assert await oracle.is_active_cached() is False
    assert reporter.reports[0][1:] == ("IAP", logging.WARNING)


async def test_backend_outage_reads_as_no_identity(make_oracle):
    oracle = make_oracle(backend=FakeBackend(error=BackendError("offline")))

    with pytest.raises(SubscriptionSyncError):
        await oracle.sync_authoritative()


async def test_link_purchaser_resets_status(make_oracle):
    oracle = make_oracle()
    await oracle.sync_authoritative()

    oracle.link_purchaser("u2")

    assert oracle.status is SubscriptionStatus.UNKNOWN
    assert oracle.app_user_id == "u2"


async def test_sync_reads_backend_user_once(make_oracle, profile_sync):
    backend = FakeBackend()
    oracle = make_oracle(backend=backend)

    await oracle.sync_authoritative()

    assert backend.calls == 1
    assert profile_sync.pushes == [(True, "active")]


async def test_cached_with_unreadable_expiry_is_reported_and_inactive(make_oracle, reporter):
    billing = FakeBilling(subscriber={"entitlements": {"pro": {"expires_date": "not-a-date"}}})
    oracle = make_oracle(billing=billing)

    assert await oracle.is_active_cached() is False
    assert reporter.categories() == ["IAP"]
    assert oracle.status is SubscriptionStatus.UNKNOWN


async def test_sync_with_unreadable_expiry_raises_sync_error(make_oracle):
    oracle = make_oracle(billing=FakeBilling(subscriber={"entitlements": {"pro": {"expires_date": 12}}}))

    with pytest.raises(SubscriptionSyncError):
        await oracle.sync_authoritative()
