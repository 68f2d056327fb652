"""Core module exports."""

from phpthrows.core.errors import (
    ConfigError,
    ErrorCode,
    InputError,
    InternalError,
    PhpThrowsError,
)
from phpthrows.core.logging import (
    configure_logging,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "InputError",
    "InternalError",
    "PhpThrowsError",
    # Logging
    "configure_logging",
    "get_run_id",
    "set_run_id",
]
