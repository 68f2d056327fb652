"""Exception-flow analysis.

The analyzer itself lives in ``phpthrows.analysis.analyzer``; it is not
re-exported here because the cache layer imports the result models.
"""

from phpthrows.analysis.models import (
    AnalysisResult,
    CacheStats,
    Diagnostic,
    DiagnosticType,
    FileReport,
    PerformanceStats,
    Summary,
)

__all__ = [
    "AnalysisResult",
    "CacheStats",
    "Diagnostic",
    "DiagnosticType",
    "FileReport",
    "PerformanceStats",
    "Summary",
]
