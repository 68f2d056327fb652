"""Config module exports."""

from phpthrows.config.loader import load_config
from phpthrows.config.models import (
    AnalysisConfig,
    CacheConfig,
    LoggingConfig,
    LogOutputConfig,
    PhpThrowsConfig,
)

__all__ = [
    "load_config",
    "AnalysisConfig",
    "CacheConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "PhpThrowsConfig",
]
