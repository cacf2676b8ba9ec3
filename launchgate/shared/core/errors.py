"""Error types and the error-reporting collaborator.

Nothing in the launch gate raises these to the presentation surface; they
travel between collaborators and end up in ``ErrorReporter.report``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Optional

from . import events

if TYPE_CHECKING:
    from .event_bus import EventBus

logger = logging.getLogger(__name__)


class LaunchGateError(Exception):
    """Base class for launchgate errors."""


class ConfigurationError(LaunchGateError):
    """Required configuration is missing or malformed."""

    def __init__(self, code: str, message: str, recovery_suggestion: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.recovery_suggestion = recovery_suggestion


class BackendError(LaunchGateError):
    """The backend (auth / database / functions) request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BillingError(LaunchGateError):
    """The billing provider request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SubscriptionSyncError(LaunchGateError):
    """Authoritative subscription status could not be obtained."""


class SubscriptionLapsedError(LaunchGateError):
    """Entitlement expired while the app was in the background."""


class UserVisibleError:
    """Title/message pair for the diagnostics banner."""

    def __init__(self, title: str, message: str) -> None:
        self.title = title
        self.message = message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UserVisibleError):
            return NotImplemented
        return (self.title, self.message) == (other.title, other.message)

    def __repr__(self) -> str:
        return f"UserVisibleError(title={self.title!r}, message={self.message!r})"


# Keyword → category, checked in order
_CATEGORY_KEYWORDS = (
    ("Network", ("network", "connection", "internet", "timeout")),
    ("Database", ("database", "supabase", "db")),
    ("IAP", ("iap", "purchase", "subscription", "revenuecat", "entitlement")),
    ("Auth", ("auth", "signin", "login", "credential", "session")),
    ("Paywall", ("paywall",)),
    ("Navigation", ("navigate", "coordinator", "gate")),
)

# Categories whose failures are worth a banner
_USER_FACING_CATEGORIES = {"Network", "IAP", "Auth"}

MAX_RECOVERY_ATTEMPTS = 3


class ErrorReporter:
    """Logs collaborator failures per category and forwards them to the bus.

    ``report`` never blocks and never raises: the bus notification is
    scheduled, not awaited.
    """

    CATEGORIES = (
        "Network",
        "Database",
        "IAP",
        "Auth",
        "Paywall",
        "Navigation",
        "SubscriptionSync",
        "General",
    )

    def __init__(self, event_bus: Optional[EventBus] = None) -> None:
        self.event_bus = event_bus
        self.user_visible_error: Optional[UserVisibleError] = None
        self._loggers: Dict[str, logging.Logger] = {
            category: logging.getLogger(f"launchgate.errors.{category.lower()}")
            for category in self.CATEGORIES
        }

    def logger_for(self, category: str) -> logging.Logger:
        if category == "Db":
            category = "Database"
        return self._loggers.get(category, self._loggers["General"])

    def report(self, error: BaseException, category: str = "General", level: int = logging.ERROR) -> None:
        """Record a collaborator failure."""
        self.logger_for(category).log(level, f"Error occurred ({category}): {error}")
        if self.event_bus is not None:
            self.event_bus.publish_nowait(
                events.TOPIC_ERROR_REPORTED,
                events.create_error_reported_event(
                    message=str(error),
                    category=category,
                    error_type=type(error).__name__,
                    level=logging.getLevelName(level).lower(),
                ),
            )

    def categorize(self, error: BaseException) -> str:
        description = str(error).lower()
        for category, keywords in _CATEGORY_KEYWORDS:
            if any(keyword in description for keyword in keywords):
                return category
        return "General"

    def user_friendly_message(self, error: BaseException) -> str:
        return str(error) or type(error).__name__

    def handle(self, error: BaseException) -> str:
        """Report an uncategorized error, raising a banner for user-facing categories."""
        category = self.categorize(error)
        self.report(error, category=category)
        if category in _USER_FACING_CATEGORIES:
            self.present_user_error("Something went wrong", self.user_friendly_message(error))
        return category

    def present_user_error(self, title: str, message: str) -> None:
        self.user_visible_error = UserVisibleError(title, message)
        if self.event_bus is not None:
            self.event_bus.publish_nowait(
                events.TOPIC_USER_VISIBLE_ERROR,
                events.create_user_visible_error_event(title, message),
            )

    def dismiss_user_error(self) -> None:
        self.user_visible_error = None

    def should_retry(self, attempt: int) -> bool:
        return attempt < MAX_RECOVERY_ATTEMPTS
