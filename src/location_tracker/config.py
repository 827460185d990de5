"""
Configuration management for the Live Location Tracker.

Configuration is assembled from dataclass defaults, an optional JSON config
file and LOCATION_TRACKER_* environment variables, in that order of
precedence (environment wins).
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
import logging

ENV_PREFIX = "LOCATION_TRACKER_"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(ENV_PREFIX + name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logging.warning(f"Ignoring non-integer {ENV_PREFIX}{name}={value!r}")
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(ENV_PREFIX + name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        logging.warning(f"Ignoring non-numeric {ENV_PREFIX}{name}={value!r}")
        return default


@dataclass
class RegistryConfig:
    """Location registry and eviction sweep configuration."""

    inactivity_timeout_secs: float = 180.0
    # Trackers still flagged as tracking get this many inactivity timeouts
    abandonment_multiplier: int = 5
    sweep_interval_secs: float = 10.0


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    auto_reload: bool = False
    max_request_bytes: int = 16 * 1024


@dataclass
class AppConfig:
    """Main application configuration."""

    app_name: str = "Live Location Tracker"
    description: str = "Near-real-time registry of active location trackers"

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True
    log_dir: str = "logs"

    cors_origins: List[str] = field(
        default_factory=lambda: [
            "http://127.0.0.1:8000",
            "http://localhost:8000",
        ]
    )


@dataclass
class LocationTrackerConfig:
    """Complete configuration for the Live Location Tracker."""

    app: AppConfig
    server: ServerConfig
    registry: RegistryConfig

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocationTrackerConfig":
        """Create from dictionary."""
        return cls(
            app=AppConfig(**data.get("app", {})),
            server=ServerConfig(**data.get("server", {})),
            registry=RegistryConfig(**data.get("registry", {})),
        )


class ConfigManager:
    """Manages configuration loading and environment overrides."""

    def __init__(self):
        self.config_file: Optional[Path] = None
        self.config: Optional[LocationTrackerConfig] = None

    def get_config_file_path(self) -> Optional[Path]:
        """Get the path of the JSON config file, if one is configured."""
        path = os.getenv(ENV_PREFIX + "CONFIG_FILE")
        return Path(path) if path else None

    def apply_environment(self, config: LocationTrackerConfig) -> LocationTrackerConfig:
        """Apply LOCATION_TRACKER_* environment overrides in place."""
        debug = _env_bool("DEBUG", config.server.debug)

        config.server.debug = debug
        config.server.host = os.getenv(ENV_PREFIX + "HOST", config.server.host)
        config.server.port = _env_int("PORT", config.server.port)
        config.server.max_request_bytes = _env_int(
            "MAX_REQUEST_BYTES", config.server.max_request_bytes
        )

        config.app.log_level = "DEBUG" if debug else os.getenv(
            ENV_PREFIX + "LOG_LEVEL", config.app.log_level
        )
        config.app.log_to_file = _env_bool("LOG_TO_FILE", config.app.log_to_file)
        config.app.log_dir = os.getenv(ENV_PREFIX + "LOG_DIR", config.app.log_dir)

        origins = os.getenv(ENV_PREFIX + "CORS_ORIGINS")
        if origins:
            config.app.cors_origins = [o.strip() for o in origins.split(",") if o.strip()]

        config.registry.inactivity_timeout_secs = _env_float(
            "INACTIVITY_TIMEOUT_SECS", config.registry.inactivity_timeout_secs
        )
        config.registry.abandonment_multiplier = _env_int(
            "ABANDONMENT_MULTIPLIER", config.registry.abandonment_multiplier
        )
        config.registry.sweep_interval_secs = _env_float(
            "SWEEP_INTERVAL_SECS", config.registry.sweep_interval_secs
        )
        return config

    def load_config(self) -> LocationTrackerConfig:
        """Load configuration from file (if any) and the environment."""
        self.config_file = self.get_config_file_path()
        data: Dict[str, Any] = {}

        if self.config_file is not None:
            if self.config_file.exists():
                try:
                    with open(self.config_file, "r", encoding="utf-8") as f:
                        data = json.load(f)
                    logging.info(f"Loaded configuration from {self.config_file}")
                except (OSError, ValueError) as e:
                    logging.warning(f"Failed to load config from {self.config_file}: {e}")
                    data = {}
            else:
                logging.warning(f"Config file {self.config_file} does not exist, using defaults")

        self.config = self.apply_environment(LocationTrackerConfig.from_dict(data))
        return self.config

    def validate_config(self) -> List[str]:
        """Validate configuration and return a list of problems."""
        if self.config is None:
            self.load_config()

        issues = []
        registry = self.config.registry

        if registry.inactivity_timeout_secs <= 0:
            issues.append("Inactivity timeout must be positive")
        if registry.abandonment_multiplier < 1:
            issues.append("Abandonment multiplier must be at least 1")
        if registry.sweep_interval_secs <= 0:
            issues.append("Sweep interval must be positive")
        if not 0 < self.config.server.port < 65536:
            issues.append(f"Invalid server port: {self.config.server.port}")

        return issues


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> LocationTrackerConfig:
    """Get the current configuration."""
    return config_manager.load_config()
