"""launchgate - entry point: wire production collaborators and run the cold-start gate."""

from __future__ import annotations

import asyncio
import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from launchgate.gate import AppState, LaunchGate
from launchgate.shared.core import events
from launchgate.shared.core.configuration import LoggingConfig, SystemConfig, get_config_manager
from launchgate.shared.core.errors import ErrorReporter
from launchgate.shared.core.event_bus import EventBus, EventPayload
from launchgate.shared.core.service_registry import (
    GateServices,
    register_cleanup_handler,
    run_cleanup_handlers,
)
from launchgate.shared.domain.session.session_store import BackendSessionStore
from launchgate.shared.domain.subscription.oracle import BillingSubscriptionOracle
from launchgate.shared.domain.subscription.profile_sync import BackendProfileSync
from launchgate.shared.infrastructure.backend.supabase_client import SupabaseClient
from launchgate.shared.infrastructure.billing.revenuecat_client import RevenueCatClient
from launchgate.shared.infrastructure.persistence.credential_store import CredentialStore

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(config: LoggingConfig, project_root: Path) -> Path:
    """Rotating file log at the configured level, console at WARNING and above.

    Returns:
        Path of the log file
    """
    logs_dir = project_root / config.log_dir
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file_path = logs_dir / "launchgate.log"
    file_log_level = LOG_LEVELS.get(config.level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(file_log_level)
    root_logger.handlers.clear()

    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(file_log_level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    ))
    root_logger.addHandler(console_handler)

    # Suppress verbose third-party library logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger.info(f"Logging configured: file={log_file_path}, console=WARNING+")
    return log_file_path


def build_services(config: SystemConfig, event_bus: EventBus, project_root: Path) -> GateServices:
    """Create the production collaborators and register their HTTP clients for cleanup."""
    error_reporter = ErrorReporter(event_bus)

    backend = SupabaseClient(
        url=config.backend.url,
        anon_key=config.backend.anon_key,
        timeout=config.backend.request_timeout,
    )
    billing = RevenueCatClient(
        api_key=config.billing.api_key,
        base_url=config.billing.base_url,
        timeout=config.billing.request_timeout,
    )
    register_cleanup_handler(backend.aclose)
    register_cleanup_handler(billing.aclose)

    credential_path = Path(config.storage.credential_path)
    if not credential_path.is_absolute():
        credential_path = project_root / credential_path

    profile_sync = BackendProfileSync(backend)
    return GateServices(
        session_store=BackendSessionStore(
            CredentialStore(credential_path),
            backend,
            poll_interval=config.gate.session_poll_interval,
        ),
        subscription_oracle=BillingSubscriptionOracle(
            billing=billing,
            backend=backend,
            profile_sync=profile_sync,
            error_reporter=error_reporter,
            entitlement_id=config.billing.entitlement_id,
        ),
        profile_sync=profile_sync,
        error_reporter=error_reporter,
    )


async def main_async(project_root: Optional[Path] = None) -> AppState:
    """Run the launch sequence once and return the screen it picked."""
    project_root = (project_root or Path.cwd()).resolve()
    load_dotenv(dotenv_path=project_root / ".env")

    config = get_config_manager(project_root).get_config()
    configure_logging(config.logging, project_root)

    event_bus = EventBus()

    async def _log_transition(payload: EventPayload) -> None:
        logger.info(f"AppState changed: {payload['previous']} -> {payload['current']}")

    await event_bus.subscribe(events.TOPIC_APP_STATE_CHANGED, _log_transition)

    gate = LaunchGate(build_services(config, event_bus, project_root), event_bus, config)
    try:
        await gate.run_launch_sequence()
        if gate.configuration_error is not None:
            logger.warning(f"Configuration problem: {gate.configuration_error.recovery_suggestion}")
        await event_bus.wait_until_idle()
        return gate.app_state
    finally:
        await gate.shutdown()
        await run_cleanup_handlers()


def run() -> None:
    state = asyncio.run(main_async())
    print(state.value)


if __name__ == "__main__":
    run()
