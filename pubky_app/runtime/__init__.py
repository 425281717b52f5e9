"""Runtime support: configuration and structured logging."""

from pubky_app.runtime.config import (
    AppConfig,
    ConfigError,
    ConfigManager,
    ConfigValue,
    get_config,
    get_config_manager,
)
from pubky_app.runtime.observability import (
    ContentLogger,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    timed_operation,
)

__all__ = [
    "AppConfig",
    "ConfigError",
    "ConfigManager",
    "ConfigValue",
    "get_config",
    "get_config_manager",
    "ContentLogger",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
    "timed_operation",
]
