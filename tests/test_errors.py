import logging

import pytest

from launchgate.shared.core import events
from launchgate.shared.core.errors import (
    MAX_RECOVERY_ATTEMPTS,
    ErrorReporter,
    UserVisibleError,
)


@pytest.mark.parametrize(
    "message, category",
    [
        ("Network connection lost", "Network"),
        ("request timeout", "Network"),
        ("Supabase query failed", "Database"),
        ("purchase was cancelled", "IAP"),
        ("RevenueCat entitlement missing", "IAP"),
        ("login required", "Auth"),
        ("Paywall failed to load", "Paywall"),
        ("coordinator out of sync", "Navigation"),
        ("something odd", "General"),
    ],
)
def test_categorize(message, category):
    assert ErrorReporter().categorize(RuntimeError(message)) == category


def test_report_logs_to_category_logger(caplog):
    reporter = ErrorReporter()

    with caplog.at_level(logging.WARNING, logger="launchgate.errors"):
        reporter.report(RuntimeError("billing down"), category="IAP", level=logging.WARNING)

    record = caplog.records[-1]
    assert record.name == "launchgate.errors.iap"
    assert record.levelno == logging.WARNING
    assert "billing down" in record.getMessage()


def test_db_alias_and_unknown_category_fall_back():
    reporter = ErrorReporter()

    assert reporter.logger_for("Db").name == "launchgate.errors.database"
    assert reporter.logger_for("Mystery").name == "launchgate.errors.general"


async def test_report_publishes_error_event(event_bus):
    received = []

    async def handler(payload):
        received.append(payload)

    await event_bus.subscribe(events.TOPIC_ERROR_REPORTED, handler)
    ErrorReporter(event_bus).report(ValueError("bad"), category="Auth")
    await event_bus.wait_until_idle()

    assert len(received) == 1
    assert received[0]["category"] == "Auth"
    assert received[0]["error_type"] == "ValueError"
    assert received[0]["level"] == "error"


async def test_handle_presents_banner_for_user_facing_categories(event_bus):
    banners = []

    async def handler(payload):
        banners.append(payload)

    await event_bus.subscribe(events.TOPIC_USER_VISIBLE_ERROR, handler)
    reporter = ErrorReporter(event_bus)

    assert reporter.handle(RuntimeError("network unreachable")) == "Network"
    await event_bus.wait_until_idle()

    assert reporter.user_visible_error == UserVisibleError("Something went wrong", "network unreachable")
    assert len(banners) == 1


def test_handle_keeps_quiet_for_internal_categories():
    reporter = ErrorReporter()

    assert reporter.handle(RuntimeError("coordinator confused")) == "Navigation"
    assert reporter.user_visible_error is None


def test_dismiss_user_error():
    reporter = ErrorReporter()
    reporter.present_user_error("Oops", "try again")
    reporter.dismiss_user_error()

    assert reporter.user_visible_error is None


def test_should_retry_stops_at_limit():
    reporter = ErrorReporter()

    assert reporter.should_retry(0)
    assert reporter.should_retry(MAX_RECOVERY_ATTEMPTS - 1)
    assert not reporter.should_retry(MAX_RECOVERY_ATTEMPTS)
