"""phpthrows error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Input
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_INVALID_PATTERN = 2003

    # Input (3xxx)
    INPUT_PATH_NOT_FOUND = 3001

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class PhpThrowsError(Exception):
    """Base error with structured context for CLI error payloads."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(PhpThrowsError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def invalid_pattern(cls, pattern: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_PATTERN,
            message=f"Invalid exclude pattern '{pattern}': {reason}",
            details={"pattern": pattern, "reason": reason},
        )


class InputError(PhpThrowsError):
    """Fatal errors caused by the analysis request itself."""

    @classmethod
    def path_not_found(cls, path: str) -> "InputError":
        return cls(
            code=ErrorCode.INPUT_PATH_NOT_FOUND,
            message=f"Path does not exist: {path}",
            details={"path": path},
        )


class InternalError(PhpThrowsError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
