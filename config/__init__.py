"""Configuration module for warpack."""

from typing import Optional

from .logger import create_task_logger, get_session_logger, setup_session_logging
from .models import LogLevel
from .settings import Config, WarSettings


def setup_logging(config: Config):
    """Setup logging configuration using the session-based system."""
    return setup_session_logging(config)


# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
        setup_logging(_config)
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
    setup_logging(config)


# Convenience exports
__all__ = [
    "Config",
    "LogLevel",
    "WarSettings",
    "get_config",
    "set_config",
    "setup_logging",
    "create_task_logger",
    "get_session_logger",
]
