"""Result models for exception-flow analysis.

The dict shapes produced by ``to_dict`` are the CLI's JSON contract.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class DiagnosticType(StrEnum):
    UNDECLARED_THROW = "undeclared_throw"
    UNDECLARED_THROW_FROM_CALL = "undeclared_throw_from_call"
    UNNECESSARY_THROWS = "unnecessary_throws"
    PARSE_ERROR = "parse_error"


@dataclass
class Diagnostic:
    """One disagreement between documented and actual exceptions."""

    line: int
    type: DiagnosticType
    message: str
    exception: str | None = None
    function: str | None = None
    called_method: str | None = None
    called_class: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"line": self.line, "type": self.type.value}
        for key in ("exception", "function", "called_method", "called_class"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        result["message"] = self.message
        return result


@dataclass
class FileReport:
    file: str
    errors: list[Diagnostic] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "errors": [e.to_dict() for e in self.errors]}


@dataclass
class Summary:
    total_files: int = 0
    files_with_errors: int = 0
    total_errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total_files": self.total_files,
            "files_with_errors": self.files_with_errors,
            "total_errors": self.total_errors,
        }


@dataclass
class CacheStats:
    total_files: int = 0
    cache_size_bytes: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"total_files": self.total_files, "cache_size_bytes": self.cache_size_bytes}


@dataclass
class PerformanceStats:
    """Counters owned by one analyze() invocation."""

    cache_hits: int = 0
    cache_misses: int = 0
    files_scanned: int = 0
    analysis_time_ms: float = 0.0
    cache_stats: CacheStats | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "files_scanned": self.files_scanned,
            "analysis_time_ms": self.analysis_time_ms,
        }
        if self.cache_stats is not None:
            result["cache_stats"] = self.cache_stats.to_dict()
        return result


@dataclass
class AnalysisResult:
    """Full result of one analyze() call."""

    files: list[FileReport] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)
    performance: PerformanceStats = field(default_factory=PerformanceStats)

    def add_file(self, path: str, errors: list[Diagnostic]) -> None:
        """Count one analyzed file, keeping it in ``files`` only when it has errors."""
        self.summary.total_files += 1
        if not errors:
            return
        self.files.append(FileReport(file=path, errors=errors))
        self.summary.files_with_errors += 1
        self.summary.total_errors += len(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": [f.to_dict() for f in self.files],
            "summary": self.summary.to_dict(),
            "performance": self.performance.to_dict(),
        }
