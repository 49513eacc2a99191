"""Utility modules for configuration, logging, errors and validation."""

from .config import AppConfig, get_config, load_config, reset_config
from .logger import (
    get_logger,
    log_execution_time,
    log_exception,
)
from .validators import (
    validate_token,
    validate_user_id,
    validate_dimension,
)

__all__ = [
    # Configuration
    "AppConfig",
    "get_config",
    "load_config",
    "reset_config",
    # Logging
    "get_logger",
    "log_execution_time",
    "log_exception",
    # Validation
    "validate_token",
    "validate_user_id",
    "validate_dimension",
]
