"""
Shared Core Module
==================

Event system, configuration, error reporting, and the service bundle.
"""

# Event System
from .event_bus import EventBus, EventPayload
from . import events

# Errors
from .errors import (
    LaunchGateError,
    ConfigurationError,
    BackendError,
    BillingError,
    SubscriptionSyncError,
    SubscriptionLapsedError,
    ErrorReporter,
    UserVisibleError,
)

# Service Bundle
from .service_registry import (
    GateServices,
    register_cleanup_handler,
    run_cleanup_handlers,
)

# Configuration
from .configuration import (
    ConfigManager,
    SystemConfig,
    GateConfig,
    get_config_manager,
    get_config,
    validate_configuration,
    ValidationLevel,
)

__all__ = [
    # Event System
    "EventBus",
    "EventPayload",
    "events",
    # Errors
    "LaunchGateError",
    "ConfigurationError",
    "BackendError",
    "BillingError",
    "SubscriptionSyncError",
    "SubscriptionLapsedError",
    "ErrorReporter",
    "UserVisibleError",
    # Service Bundle
    "GateServices",
    "register_cleanup_handler",
    "run_cleanup_handlers",
    # Configuration
    "ConfigManager",
    "SystemConfig",
    "GateConfig",
    "get_config_manager",
    "get_config",
    "validate_configuration",
    "ValidationLevel",
]
