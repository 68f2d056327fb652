"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (PHPTHROWS__SECTION__KEY)
3. Project YAML (<project root>/.phpthrows.yaml)
4. Global YAML (~/.config/phpthrows/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    PHPTHROWS__<SECTION>__<KEY>=<VALUE>

Examples:
    PHPTHROWS__LOGGING__LEVEL=DEBUG
    PHPTHROWS__ANALYSIS__PROJECT_SCAN=false
    PHPTHROWS__CACHE__ENABLED=false
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        PHPTHROWS__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. Logs go to stderr so stdout stays machine-readable.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class AnalysisConfig(BaseModel):
    """Exception-flow analysis configuration.

    Env vars:
        PHPTHROWS__ANALYSIS__PROJECT_SCAN: Scan the surrounding project for a single file
        PHPTHROWS__ANALYSIS__CHECK_BUILTIN_FUNCTIONS: Check calls to known throwing builtins
        PHPTHROWS__ANALYSIS__MAX_MANIFEST_DEPTH: Parent directories searched for composer.json
    """

    project_scan: bool = Field(
        default=True,
        description="When analyzing a single file, collect method signatures from the whole "
        "project (found through composer.json) so cross-file calls resolve.",
    )
    exclude_patterns: list[str] = Field(
        default_factory=list,
        description="Regex patterns excluding paths. Empty means the built-in defaults.",
    )
    check_builtin_functions: bool = Field(
        default=True,
        description="Report exceptions raised by known runtime functions (json_decode, ...).",
    )
    max_manifest_depth: int = Field(
        default=10,
        description="How many parent directories to search for composer.json.",
    )

    @field_validator("max_manifest_depth")
    @classmethod
    def validate_depth(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_manifest_depth must be >= 0, got {v}")
        return v


class CacheConfig(BaseModel):
    """Method-throws cache configuration.

    Env vars:
        PHPTHROWS__CACHE__ENABLED: Persist per-file method tables between runs
        PHPTHROWS__CACHE__FILE_NAME: Cache file name inside the project root
    """

    enabled: bool = True
    file_name: str = Field(
        default=".phpthrows-cache.json",
        description="Cache file created in the project root.",
    )

    @field_validator("file_name")
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"Cache file name must be a bare file name, got {v!r}")
        return v


class PhpThrowsConfig(BaseModel):
    """Root configuration."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
