"""Two-pass project analyzer.

Pass 1 builds the project-wide method-throws table from every collected
file (cache hits included) and flattens trait methods into their consumers.
Pass 2 re-visits only the requested files with the complete table and
collects their diagnostics. All state lives in one ``_Run`` per ``analyze``
call.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from phpthrows.analysis.discovery import collect_files, collect_project_files, find_project_root
from phpthrows.analysis.models import (
    AnalysisResult,
    Diagnostic,
    DiagnosticType,
    PerformanceStats,
)
from phpthrows.analysis.signatures import GlobalSignatureTable, UnitSignatures
from phpthrows.analysis.visitor import ThrowsVisitor
from phpthrows.cache.manager import CacheManager
from phpthrows.config.models import PhpThrowsConfig
from phpthrows.core.errors import InputError
from phpthrows.core.excludes import ExcludeFilter
from phpthrows.core.logging import set_run_id
from phpthrows.parsing.php import ParsedUnit, PhpParseError, PhpParser

log = structlog.get_logger(__name__)


@dataclass
class _Run:
    """Mutable state owned by a single analyze() invocation."""

    # file key (resolved path) -> path as reported
    requested: dict[str, str] = field(default_factory=dict)
    collected: list[str] = field(default_factory=list)
    cache: CacheManager | None = None
    table: GlobalSignatureTable = field(default_factory=GlobalSignatureTable)
    perf: PerformanceStats = field(default_factory=PerformanceStats)
    # pass-1 parse results of requested files, reused by pass 2
    parsed: dict[str, ParsedUnit | PhpParseError] = field(default_factory=dict)


def _file_key(path: Path) -> str:
    return str(path.resolve())


class Analyzer:
    """
    Checks @throws documentation against the exceptions functions can raise.

    Usage::

        analyzer = Analyzer()
        result = analyzer.analyze("src/")
        print(result.summary.total_errors)
    """

    def __init__(self, config: PhpThrowsConfig | None = None, parser: PhpParser | None = None) -> None:
        self.config = config or PhpThrowsConfig()
        self._parser = parser or PhpParser()

    def analyze(
        self,
        path: Path | str,
        use_project_wide_analysis: bool | None = None,
        exclude_patterns: Sequence[str] | None = None,
    ) -> AnalysisResult:
        """Analyze a file or directory.

        Args:
            path: PHP file or directory to report on.
            use_project_wide_analysis: For a single file, also index the
                enclosing composer project. Defaults to ``analysis.project_scan``.
            exclude_patterns: Regexes replacing the configured exclude list.

        Raises:
            InputError: If ``path`` is neither a file nor a directory.
            ConfigError: If an exclude pattern is not a valid regex.
        """
        set_run_id()
        started = time.perf_counter()

        analysis_config = self.config.analysis
        if use_project_wide_analysis is None:
            use_project_wide_analysis = analysis_config.project_scan
        patterns = list(exclude_patterns or ()) or list(analysis_config.exclude_patterns)
        exclude = ExcludeFilter(patterns)

        log.info(
            "analysis_started",
            path=str(path),
            project_scan=use_project_wide_analysis,
            exclude_patterns=list(exclude.patterns),
        )

        run = self._plan(Path(path), use_project_wide_analysis, exclude)
        self._collect_signatures(run)
        self._persist(run)
        result = AnalysisResult(performance=run.perf)
        self._report(run, result)

        run.perf.analysis_time_ms = round((time.perf_counter() - started) * 1000, 3)
        if run.cache is not None:
            run.perf.cache_stats = run.cache.get_stats()

        log.info(
            "analysis_complete",
            total_files=result.summary.total_files,
            files_with_errors=result.summary.files_with_errors,
            total_errors=result.summary.total_errors,
            cache_hits=run.perf.cache_hits,
            cache_misses=run.perf.cache_misses,
            analysis_time_ms=run.perf.analysis_time_ms,
        )
        return result

    def _open_cache(self, project_root: Path) -> CacheManager | None:
        if not self.config.cache.enabled:
            return None
        cache = CacheManager(project_root, self.config.cache.file_name)
        cache.load()
        return cache

    def _plan(self, target: Path, project_scan: bool, exclude: ExcludeFilter) -> _Run:
        """Decide which files are reported on and which only feed the method table."""
        run = _Run()

        if target.is_file():
            if exclude.is_excluded(target):
                return run
            run.requested[_file_key(target)] = str(target)
            extra: list[Path] = []
            if project_scan:
                root = find_project_root(target, self.config.analysis.max_manifest_depth)
                if root is not None:
                    log.info("project_root_detected", root=str(root))
                    run.cache = self._open_cache(root)
                    extra = collect_project_files(root, exclude)
        elif target.is_dir():
            for file_path in collect_files(target, exclude):
                run.requested.setdefault(_file_key(file_path), str(file_path))
            run.cache = self._open_cache(target)
            extra = []
        else:
            raise InputError.path_not_found(str(target))

        keys = set(run.requested)
        keys.update(_file_key(p) for p in extra)
        run.collected = sorted(keys)
        return run

    def _collect_signatures(self, run: _Run) -> None:
        """Pass 1: merge every collected file's signatures into the global table."""
        check_builtins = self.config.analysis.check_builtin_functions

        for key in run.collected:
            run.perf.files_scanned += 1

            if run.cache is not None:
                cached = run.cache.get_method_throws(key)
                if cached.found:
                    run.perf.cache_hits += 1
                    run.table.merge(UnitSignatures(cached.method_throws, cached.trait_uses))
                    continue
                run.perf.cache_misses += 1

            try:
                unit = self._parser.parse_file(key)
            except PhpParseError as e:
                log.debug("pass1_parse_failed", path=key, line=e.line, reason=e.message)
                if key in run.requested:
                    run.parsed[key] = e
                continue
            if key in run.requested:
                run.parsed[key] = unit

            visitor = ThrowsVisitor(key, check_builtins=check_builtins)
            visitor.walk(unit.root_node)
            signatures = visitor.signatures
            run.table.merge(signatures)
            if run.cache is not None:
                run.cache.set_method_throws(key, signatures.method_throws, signatures.trait_uses)

        run.table.flatten_traits()
        log.debug(
            "pass1_complete",
            files=len(run.collected),
            signatures=len(run.table.method_throws),
        )

    def _persist(self, run: _Run) -> None:
        if run.cache is None:
            return
        run.cache.set_global_method_throws(run.table.method_throws)
        try:
            run.cache.save()
        except OSError as e:
            log.warning("cache_save_failed", path=str(run.cache.cache_path), reason=str(e))

    def _report(self, run: _Run, result: AnalysisResult) -> None:
        """Pass 2: diagnose requested files against the complete table."""
        check_builtins = self.config.analysis.check_builtin_functions

        for key in sorted(run.requested, key=lambda k: run.requested[k]):
            display = run.requested[key]
            parsed = run.parsed.pop(key, None)
            if parsed is None:
                try:
                    parsed = self._parser.parse_file(key)
                except PhpParseError as e:
                    parsed = e

            if isinstance(parsed, PhpParseError):
                result.add_file(display, [_parse_error_diagnostic(parsed)])
                continue

            visitor = ThrowsVisitor(
                display, run.table.method_throws, check_builtins=check_builtins
            )
            result.add_file(display, visitor.visit(parsed))


def _parse_error_diagnostic(error: PhpParseError) -> Diagnostic:
    return Diagnostic(
        line=error.line,
        type=DiagnosticType.PARSE_ERROR,
        message=f"Parse error: {error.message}",
    )
