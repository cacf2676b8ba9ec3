"""
Configuration Management for launchgate

Centralized settings with a 4-tier precedence hierarchy:
environment → project → user → system defaults.
"""

import copy
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class ValidationLevel(Enum):
    """Configuration validation strictness levels"""
    STRICT = "strict"      # Fail fast on validation errors
    LENIENT = "lenient"    # Log warnings, use defaults


class GateConfig(BaseModel):
    """Launch gate timing"""
    model_config = ConfigDict(extra='forbid')

    min_launch_display: float = Field(default=0.7, ge=0.0, le=10.0, description="Minimum splash duration (seconds)")
    restore_wait_with_credential: float = Field(default=1.2, ge=0.0, le=30.0, description="Session restore budget when a credential is persisted")
    restore_wait_no_credential: float = Field(default=0.15, ge=0.0, le=30.0, description="Session restore budget without a credential")
    session_poll_interval: float = Field(default=0.2, gt=0.0, le=5.0, description="Session restore poll interval (seconds)")


class BackendConfig(BaseModel):
    """Backend-as-a-service connection"""
    model_config = ConfigDict(extra='forbid')

    url: str = Field(default="", description="Backend project URL")
    anon_key: str = Field(default="", description="Public anonymous API key")
    request_timeout: float = Field(default=10.0, ge=0.5, le=120.0, description="HTTP timeout (seconds)")


class BillingConfig(BaseModel):
    """Subscription billing provider"""
    model_config = ConfigDict(extra='forbid')

    api_key: str = Field(default="", description="Public billing API key")
    entitlement_id: Optional[str] = Field(default=None, description="Entitlement that unlocks the app; any active entitlement if unset")
    base_url: str = Field(default="https://api.revenuecat.com/v1", description="Billing REST base URL")
    request_timeout: float = Field(default=10.0, ge=0.5, le=120.0, description="HTTP timeout (seconds)")


class StorageConfig(BaseModel):
    """On-device persistence"""
    model_config = ConfigDict(extra='forbid')

    credential_path: str = Field(default="data/credential.json", description="Persisted sign-in credential")


class LoggingConfig(BaseModel):
    """Log output"""
    model_config = ConfigDict(extra='forbid')

    level: str = Field(default="INFO", description="File log level")
    log_dir: str = Field(default="data/logs", description="Log directory")
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024, description="Rotate after this many bytes")
    backup_count: int = Field(default=5, ge=0, le=50, description="Rotated files to keep")


class SystemConfig(BaseModel):
    """Complete system configuration"""
    model_config = ConfigDict(extra='forbid')

    gate: GateConfig = Field(default_factory=GateConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    billing: BillingConfig = Field(default_factory=BillingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    schema_version: int = Field(default=1, description="Configuration schema version")


# env var → (section, key, type)
ENV_OVERRIDES: Dict[str, tuple] = {
    'SUPABASE_URL': ('backend', 'url', str),
    'SUPABASE_ANON_KEY': ('backend', 'anon_key', str),
    'REVENUECAT_API_KEY': ('billing', 'api_key', str),
    'REVENUECAT_ENTITLEMENT_ID': ('billing', 'entitlement_id', str),
    'MIN_LAUNCH_DISPLAY': ('gate', 'min_launch_display', float),
    'RESTORE_WAIT_WITH_CREDENTIAL': ('gate', 'restore_wait_with_credential', float),
    'RESTORE_WAIT_NO_CREDENTIAL': ('gate', 'restore_wait_no_credential', float),
    'CREDENTIAL_PATH': ('storage', 'credential_path', str),
    'LOG_LEVEL': ('logging', 'level', str),
}


# Lowest precedence first; environment overrides are applied last
LAYERS = ("defaults", "user", "project")


def deep_merge(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    """Merge ``updates`` into ``base`` in place, recursing into nested sections."""
    for key, value in updates.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            deep_merge(current, value)
        else:
            base[key] = value
    return base


class ConfigManager:
    """Resolves the effective configuration from YAML layers and the environment.

    Each layer lives at ``<config_dir>/<layer>.yaml`` and is read once until
    ``reload_config``. A malformed defaults file falls back to the built-in
    defaults rather than poisoning every other layer.
    """

    def __init__(self, project_root: Optional[Path] = None, config_dir: Optional[Path] = None):
        self.project_root = project_root or Path.cwd()
        self.config_dir = config_dir or self.project_root / "config"
        self._layers: Dict[str, Dict[str, Any]] = {}

    def layer_path(self, layer: str) -> Path:
        return self.config_dir / f"{layer}.yaml"

    def _read_layer(self, layer: str) -> Dict[str, Any]:
        if layer not in self._layers:
            path = self.layer_path(layer)
            data: Any = {}
            if path.exists():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    logger.warning(f"Ignoring unreadable config layer {path}: {e}")
            if not isinstance(data, dict):
                logger.warning(f"Ignoring config layer {path}: expected a mapping")
                data = {}
            self._layers[layer] = data
        return self._layers[layer]

    def _defaults(self) -> Dict[str, Any]:
        try:
            return SystemConfig(**self._read_layer("defaults")).model_dump()
        except ValidationError as e:
            logger.warning(f"{self.layer_path('defaults')} is invalid, using built-in defaults: {e}")
            return SystemConfig().model_dump()

    @staticmethod
    def env_overrides() -> Dict[str, Any]:
        """Collect the sections set through environment variables."""
        overrides: Dict[str, Any] = {}
        for env_key, (section, config_key, cast) in ENV_OVERRIDES.items():
            raw = os.getenv(env_key)
            if not raw:
                continue
            try:
                overrides.setdefault(section, {})[config_key] = cast(raw)
            except ValueError:
                logger.warning(f"Ignoring {env_key}={raw!r}: not a valid {cast.__name__}")
        return overrides

    def merged(self) -> Dict[str, Any]:
        merged = self._defaults()
        for layer in LAYERS[1:]:
            deep_merge(merged, copy.deepcopy(self._read_layer(layer)))
        return deep_merge(merged, self.env_overrides())

    def get_config(self, validation_level: ValidationLevel = ValidationLevel.STRICT) -> SystemConfig:
        """Build the effective configuration.

        Raises:
            ValueError: under STRICT validation when the merged layers are invalid
        """
        try:
            return SystemConfig(**self.merged())
        except ValidationError as e:
            if validation_level is ValidationLevel.STRICT:
                raise ValueError(f"Configuration validation failed: {e}") from e
            logger.warning(f"Configuration invalid, falling back to defaults: {e}")
            return SystemConfig()

    def save_project_config(self, config_updates: Dict[str, Any]) -> bool:
        """Merge ``config_updates`` into project.yaml. Returns False if it could not be written."""
        path = self.layer_path("project")
        self._layers.pop("project", None)
        updated = deep_merge(dict(self._read_layer("project")), config_updates)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(updated, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error(f"Could not write {path}: {e}")
            return False
        finally:
            self._layers.pop("project", None)
        return True

    def reload_config(self) -> None:
        self._layers.clear()


# Global instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(project_root: Optional[Path] = None) -> ConfigManager:
    """Get global configuration manager instance"""
    global _config_manager
    if _config_manager is None or project_root is not None:
        _config_manager = ConfigManager(project_root)
    return _config_manager


def get_config(validation_level: ValidationLevel = ValidationLevel.STRICT) -> SystemConfig:
    """Get current system configuration"""
    return get_config_manager().get_config(validation_level)


def validate_configuration(config: SystemConfig) -> None:
    """Check the credentials the production collaborators need.

    Raises:
        ConfigurationError: describing the first problem found
    """
    url = config.backend.url
    if not url:
        raise ConfigurationError(
            "missing_backend_url",
            "Backend URL is not configured. Set SUPABASE_URL environment variable.",
            "Ensure SUPABASE_URL and SUPABASE_ANON_KEY are set in environment variables.",
        )
    if not url.startswith("https://"):
        raise ConfigurationError(
            "invalid_backend_url",
            "Backend URL must use HTTPS protocol.",
            "Update SUPABASE_URL to use HTTPS protocol.",
        )

    anon_key = config.backend.anon_key
    if not anon_key:
        raise ConfigurationError(
            "missing_backend_key",
            "Backend anonymous key is not configured. Set SUPABASE_ANON_KEY environment variable.",
            "Ensure SUPABASE_URL and SUPABASE_ANON_KEY are set in environment variables.",
        )
    # JWT-shaped keys are well over 50 characters
    if len(anon_key) <= 50:
        raise ConfigurationError(
            "invalid_backend_key",
            "Backend anonymous key is invalid.",
            "Verify SUPABASE_ANON_KEY is correct in environment variables.",
        )

    billing_key = config.billing.api_key
    if not billing_key:
        raise ConfigurationError(
            "missing_billing_key",
            "Billing API key is not configured. Set REVENUECAT_API_KEY environment variable.",
            "Set REVENUECAT_API_KEY environment variable with your public billing key.",
        )
    if not billing_key.startswith("appl_"):
        raise ConfigurationError(
            "invalid_billing_key",
            "Billing API key must be a public key (starting with 'appl_').",
            "Use a public billing API key (prefixed with 'appl_').",
        )
