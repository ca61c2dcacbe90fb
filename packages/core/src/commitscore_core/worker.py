"""Periodic commit scanning with a bounded worker pool.

One task per commit; files within a commit, and segments within a file, are
processed sequentially by the analyzer so a single model instance is never
flooded. Cancellation is a threading.Event checked between commits, files and
segments.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from commitscore_core.analyzer import CodeAnalyzer, CommitReport
from commitscore_core.errors import AnalysisCancelled

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    reports: list[CommitReport] = field(default_factory=list)
    already_analyzed: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)  # commit id -> reason
    cancelled: bool = False


class CommitScanner:
    def __init__(
        self,
        analyzer: CodeAnalyzer,
        source,
        max_workers: int = 2,
        scan_interval: float = 3600,
        lookback_hours: float = 24,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.analyzer = analyzer
        self.source = source
        self.max_workers = max_workers
        self.scan_interval = scan_interval
        self.lookback_hours = lookback_hours

    def _analyze(self, commit_id: str, cancel: threading.Event | None) -> CommitReport | None:
        if cancel is not None and cancel.is_set():
            return None
        return self.analyzer.analyze_commit(commit_id, cancel)

    def scan_once(self, since: datetime | None = None, cancel: threading.Event | None = None) -> ScanResult:
        """Analyze every commit since `since` (default: the lookback window) that has no stored result."""
        since = since or datetime.now(timezone.utc) - timedelta(hours=self.lookback_hours)
        result = ScanResult()

        commits = self.source.list_commits(since)
        pending = []
        for commit in commits:
            if self.analyzer.store.get_commit_analysis(commit.id) is not None:
                result.already_analyzed.append(commit.id)
            else:
                pending.append(commit.id)
        logger.info(
            "Found %d commit(s) since %s, %d to analyze", len(commits), since.isoformat(), len(pending)
        )
        if not pending:
            return result

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self._analyze, commit_id, cancel): commit_id for commit_id in pending}
            for future in as_completed(futures):
                commit_id = futures[future]
                try:
                    report = future.result()
                except AnalysisCancelled:
                    result.cancelled = True
                    continue
                except Exception as e:
                    logger.error("Failed to analyze commit %s: %s", commit_id[:8], e)
                    result.errors[commit_id] = str(e)
                    continue
                if report is None:
                    result.cancelled = True
                else:
                    result.reports.append(report)

        if cancel is not None and cancel.is_set():
            result.cancelled = True
            logger.info("Scan cancelled after %d commit(s)", len(result.reports))
        return result

    def run_forever(self, cancel: threading.Event, on_scan=None) -> None:
        """Scan every scan_interval seconds until `cancel` is set."""
        while not cancel.is_set():
            try:
                result = self.scan_once(cancel=cancel)
            except Exception as e:
                logger.error("Scan failed: %s", e)
            else:
                if on_scan is not None:
                    on_scan(result)
            if cancel.wait(self.scan_interval):
                break
        logger.info("Scanner stopped")
