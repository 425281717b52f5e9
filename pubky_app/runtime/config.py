"""
Runtime configuration for pubky.app record handling.

Configuration Sources (in order of precedence):
    1. Environment variables (PUBKY_APP_*)
    2. Runtime overrides
    3. Project config file (./pubky-app.yaml, ./config/pubky-app.yaml)
    4. User config file (~/.pubky-app/config.yaml)
    5. Default values

Content length limits are not configurable: they are part of the identity
contract and must be identical on every machine that derives identifiers.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import yaml

T = TypeVar("T")

logger = logging.getLogger(__name__)

# 2024-01-01T00:00:00Z in microseconds. No pubky.app record predates it.
DEFAULT_MIN_TIMESTAMP_MICROS = 1_704_067_200_000_000


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """Configuration validation error."""
    pass


@dataclass
class ConfigValue(Generic[T]):
    """
    A single configuration value with metadata.

    Supports default values, environment variable binding
    and validation.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    _value: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        """Get the current value.

        Raises:
            ConfigValidationError: if the bound environment variable holds
                a value that cannot be coerced or fails validation.
        """
        if self.env_var and self.env_var in os.environ:
            raw = os.environ[self.env_var]
            try:
                value = self._coerce(raw)
            except ValueError as e:
                raise ConfigValidationError(f"Invalid value for {self.env_var}: {raw!r}") from e
            if self.validator and not self.validator(value):
                raise ConfigValidationError(f"Invalid value for {self.env_var}: {raw!r}")
            return value

        return self._value if self._value is not None else self.default

    def set(self, value: T) -> None:
        """Set the value with validation."""
        if self.validator and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value!r}")
        self._value = value

    def _coerce(self, value: str) -> T:
        """Coerce string value to target type."""
        target_type = type(self.default)

        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")  # type: ignore
        elif target_type == int:
            return int(value)  # type: ignore
        else:
            return value  # type: ignore


@dataclass
class PathsConfig:
    """Canonical path layout on the homeserver."""
    scheme: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="pubky",
        env_var="PUBKY_APP_SCHEME",
        description="URI scheme of canonical record paths",
        validator=lambda x: isinstance(x, str) and x.isascii() and x.isalnum(),
    ))
    namespace: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="pubky.app",
        env_var="PUBKY_APP_NAMESPACE",
        description="Application namespace under /pub/",
        validator=lambda x: isinstance(x, str) and bool(x) and "/" not in x,
    ))


@dataclass
class IdentifierConfig:
    """Acceptance window for time-ordered identifiers."""
    min_timestamp_micros: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=DEFAULT_MIN_TIMESTAMP_MICROS,
        env_var="PUBKY_APP_MIN_TIMESTAMP",
        description="Earliest accepted timestamp id (microseconds since epoch)",
        validator=lambda x: isinstance(x, int) and x >= 0,
    ))
    max_future_skew_seconds: ConfigValue[int] = field(default_factory=lambda: ConfigValue(
        default=2 * 60 * 60,
        env_var="PUBKY_APP_MAX_FUTURE_SKEW",
        description="How far ahead of the local clock a timestamp id may be",
        validator=lambda x: isinstance(x, int) and x >= 0,
    ))


@dataclass
class ObservabilityConfig:
    """Configuration for logging."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="PUBKY_APP_LOG_LEVEL",
        description="Log level (debug, info, warning, error)",
        validator=lambda x: x in ("debug", "info", "warning", "error", "critical"),
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="json",
        env_var="PUBKY_APP_LOG_FORMAT",
        description="Log format (json, text)",
        validator=lambda x: x in ("json", "text"),
    ))


@dataclass
class AppConfig:
    """
    Root configuration.

    Aggregates all section configurations and provides
    serialization helpers.
    """
    paths: PathsConfig = field(default_factory=PathsConfig)
    ids: IdentifierConfig = field(default_factory=IdentifierConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        def extract_values(obj: Any) -> Any:
            if isinstance(obj, ConfigValue):
                return obj.get()
            elif hasattr(obj, "__dataclass_fields__"):
                return {k: extract_values(getattr(obj, k)) for k in obj.__dataclass_fields__}
            return obj

        return extract_values(self)

    def to_yaml(self) -> str:
        """Convert to YAML string."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=True)


class ConfigManager:
    """
    Configuration manager with file loading and environment binding.

    Thread-safe singleton that manages configuration lifecycle.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config = AppConfig()
        self._config_paths: List[Path] = []
        self._initialized = True

    @property
    def config(self) -> AppConfig:
        """Get the current configuration."""
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed configuration file {path}: {e}") from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration file must contain a mapping: {path}")

        self._apply_dict(data)
        self._config_paths.append(path)

    def load_defaults(self) -> List[Path]:
        """Load default configuration files if they exist.

        Later files win, so project files override the user file.
        """
        default_paths = [
            Path.home() / ".pubky-app" / "config.yaml",
            Path("config/pubky-app.yaml"),
            Path("pubky-app.yaml"),
        ]

        loaded: List[Path] = []
        for path in default_paths:
            if path.exists():
                try:
                    self.load_from_file(path)
                except ConfigError as e:
                    logger.warning("Ignoring unreadable config file %s: %s", path, e)
                    continue
                loaded.append(path)
        return loaded

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary values to configuration."""
        def apply_to_config(config_obj: Any, values: Dict[str, Any], prefix: str) -> None:
            for key, value in values.items():
                if not hasattr(config_obj, key):
                    raise ConfigError(f"Unknown config key: {prefix}{key}")
                attr = getattr(config_obj, key)
                if isinstance(attr, ConfigValue):
                    attr.set(value)
                elif hasattr(attr, "__dataclass_fields__") and isinstance(value, dict):
                    apply_to_config(attr, value, f"{prefix}{key}.")
                else:
                    raise ConfigError(f"Invalid config section: {prefix}{key}")

        apply_to_config(self._config, data, "")

    def _resolve(self, path: str) -> ConfigValue:
        obj: Any = self._config
        for part in path.split("."):
            if not hasattr(obj, part):
                raise ConfigError(f"Invalid config path: {path}")
            obj = getattr(obj, part)
        if not isinstance(obj, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        return obj

    def set(self, path: str, value: Any) -> None:
        """
        Set a configuration value by path.

        Example: config.set("paths.namespace", "pubky.app")
        """
        self._resolve(path).set(value)

    def get(self, path: str) -> Any:
        """
        Get a configuration value by path.

        Example: config.get("ids.max_future_skew_seconds")
        """
        return self._resolve(path).get()

    def validate(self) -> List[str]:
        """
        Validate all configuration values.

        Returns list of validation errors.
        """
        errors: List[str] = []

        def validate_config(obj: Any, path: str = "") -> None:
            if isinstance(obj, ConfigValue):
                try:
                    value = obj.get()
                    if obj.validator and not obj.validator(value):
                        errors.append(f"{path}: validation failed for value {value!r}")
                except ConfigError as e:
                    errors.append(f"{path}: {e}")
            elif hasattr(obj, "__dataclass_fields__"):
                for field_name in obj.__dataclass_fields__:
                    field_path = f"{path}.{field_name}" if path else field_name
                    validate_config(getattr(obj, field_name), field_path)

        validate_config(self._config)
        return errors

    def reset(self) -> None:
        """Restore defaults and forget loaded files."""
        self._config = AppConfig()
        self._config_paths = []


def get_config() -> AppConfig:
    """Get the current configuration."""
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    """Get the configuration manager instance."""
    return ConfigManager()
