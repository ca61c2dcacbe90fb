"""Core commit analysis orchestration.

For each changed file of a commit:
    validate path → idempotency lookup → fetch + validate content
    → segment → (compose → generate → extract → repair) per segment
    → aggregate segments → record (first writer wins)

Each file's outcome is isolated: any failure other than cancellation becomes a
FileOutcome and the commit loop moves on to the next file.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from commitscore_core.aggregation import aggregate_commit, aggregate_scores, dedupe_recommendations
from commitscore_core.errors import (
    AggregationFailure,
    AnalysisCancelled,
    AnalysisError,
    TransportFailure,
    ValidationFailure,
)
from commitscore_core.extraction import extract_payload
from commitscore_core.guard import IdempotencyGuard
from commitscore_core.models import ChangedFile, CommitAnalysis, CommitInfo, FileAnalysis, FileFailure
from commitscore_core.prompts import PromptComposer, PromptContext
from commitscore_core.providers.anthropic import AnthropicClient
from commitscore_core.providers.base import BaseModelClient, SamplingOptions
from commitscore_core.providers.ollama import OllamaClient
from commitscore_core.providers.openai import OpenAIClient
from commitscore_core.repair import ResponseRepairer
from commitscore_core.segmenter import SourceSegmenter
from commitscore_core.utils.files import validate_content, validate_path
from commitscore_core.utils.languages import detect_language

if TYPE_CHECKING:
    from commitscore_store.base import BaseStore
    from commitscore_store.cache import BaseCache

logger = logging.getLogger(__name__)


@dataclass
class AnalyzerSettings:
    max_segment_chars: int = 2500
    max_prompt_chars: int = 12000
    max_file_chars: int = 100000
    max_repair_attempts: int = 3
    model_retries: int = 2
    max_files_per_commit: int = 20
    cache_ttl: float = 3600
    exclude: list[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: dict) -> AnalyzerSettings:
        defaults = cls()
        return cls(
            max_segment_chars=int(config.get("max_segment_chars", defaults.max_segment_chars)),
            max_prompt_chars=int(config.get("max_prompt_chars", defaults.max_prompt_chars)),
            max_file_chars=int(config.get("max_file_chars", defaults.max_file_chars)),
            max_repair_attempts=int(config.get("max_repair_attempts", defaults.max_repair_attempts)),
            model_retries=int(config.get("model_retries", defaults.model_retries)),
            max_files_per_commit=int(config.get("max_files_per_commit", defaults.max_files_per_commit)),
            cache_ttl=float(config.get("cache_ttl", defaults.cache_ttl)),
            exclude=list(config.get("exclude") or []),
        )


@dataclass
class FileOutcome:
    path: str
    status: str  # "analyzed" | "cached" | "skipped" | "failed"
    analysis: FileAnalysis | None = None
    kind: str = ""
    reason: str = ""


@dataclass
class CommitReport:
    """Result of analyze_commit. `analysis` is None when no file could be analyzed."""

    commit: CommitInfo
    outcomes: list[FileOutcome] = field(default_factory=list)
    analysis: CommitAnalysis | None = None

    def with_status(self, *statuses: str) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status in statuses]

    @property
    def failures(self) -> list[FileFailure]:
        return [FileFailure(o.path, o.kind, o.reason) for o in self.with_status("skipped", "failed")]


def create_client(config: dict) -> BaseModelClient:
    provider = config.get("provider", "ollama")
    options = SamplingOptions.from_config(config)
    timeout = float(config.get("request_timeout", 600))
    if provider == "ollama":
        return OllamaClient(base_url=config["ollama_url"], model=config.get("model"), options=options, timeout=timeout)
    if provider == "anthropic":
        return AnthropicClient(
            api_key=config["anthropic_api_key"], model=config.get("model"), options=options, timeout=timeout
        )
    if provider == "openai":
        return OpenAIClient(api_key=config["openai_api_key"], model=config.get("model"), options=options, timeout=timeout)
    raise ValueError(f"Unknown model provider: {provider!r}. Choose 'ollama', 'openai' or 'anthropic'.")


def _check_cancel(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise AnalysisCancelled()


class CodeAnalyzer:
    def __init__(
        self,
        client: BaseModelClient,
        source,
        store: BaseStore,
        cache: BaseCache | None = None,
        settings: AnalyzerSettings | None = None,
        segmenter: SourceSegmenter | None = None,
        composer: PromptComposer | None = None,
    ):
        self.client = client
        self.source = source
        self.store = store
        self.settings = settings or AnalyzerSettings()
        self.guard = IdempotencyGuard(store, cache, ttl=self.settings.cache_ttl)
        self.segmenter = segmenter or SourceSegmenter(self.settings.max_segment_chars)
        self.composer = composer or PromptComposer(self.settings.max_prompt_chars)

    # ------------------------------------------------------------------ #
    # Model calls                                                          #
    # ------------------------------------------------------------------ #

    def _wait(self, delay: float, cancel: threading.Event | None) -> None:
        if cancel is None:
            time.sleep(delay)
        elif cancel.wait(delay):
            raise AnalysisCancelled()

    def _generate_with_retry(self, prompt: str, cancel: threading.Event | None = None) -> str:
        """Call the model, retrying failed calls with exponential backoff.

        Raises TransportFailure once every attempt has failed.
        """
        attempts = self.settings.model_retries + 1
        for attempt in range(attempts):
            _check_cancel(cancel)
            generation = self.client.generate(prompt)
            if generation.ok:
                return generation.text
            if attempt == attempts - 1:
                raise TransportFailure(f"model call failed after {attempts} attempt(s): {generation.error}")
            delay = 2**attempt
            logger.warning(
                "Model call failed (attempt %d/%d): %s. Retrying in %ds...",
                attempt + 1,
                attempts,
                generation.error,
                delay,
            )
            self._wait(delay, cancel)
        raise TransportFailure("model call was not attempted")

    def _repair_call(self, prompt: str, cancel: threading.Event | None) -> str | None:
        try:
            return self._generate_with_retry(prompt, cancel)
        except TransportFailure as e:
            logger.warning("Repair call failed: %s", e)
            return None

    # ------------------------------------------------------------------ #
    # Per-file pipeline                                                    #
    # ------------------------------------------------------------------ #

    def analyze_file(
        self, commit: CommitInfo, changed: ChangedFile, cancel: threading.Event | None = None
    ) -> tuple[FileAnalysis, bool]:
        """Run the pipeline for one file. Returns (analysis, was_already_stored).

        Raises AnalysisError subclasses; process_file is the isolating wrapper.
        """
        path = changed.path
        validate_path(changed, self.settings.exclude)

        existing = self.guard.lookup(commit.id, path)
        if existing is not None:
            return existing, True

        content = self.source.get_file_content(commit.id, path)
        validate_content(path, content, self.settings.max_file_chars)
        diff = self.source.get_diff(commit.id, path)

        language = detect_language(path)
        segments = self.segmenter.split(content, path)
        if not segments:
            raise ValidationFailure(f"No analysable content after segmentation: {path}")

        ctx = PromptContext(
            commit_id=commit.id,
            author=commit.author,
            message=commit.message,
            date=commit.date,
            file_path=path,
            code=content,
            diff=diff,
            language=language,
        )
        repairer = ResponseRepairer(
            model_call=lambda prompt: self._repair_call(prompt, cancel),
            max_attempts=self.settings.max_repair_attempts,
            composer=self.composer,
        )

        total = len(segments)
        results, labels, recommendations = [], [], []
        for segment in segments:
            _check_cancel(cancel)
            prompt = self.composer.compose(ctx, segment if total > 1 else None, total)
            try:
                reply = self._generate_with_retry(prompt, cancel)
            except TransportFailure as e:
                # A partially scored file is never recorded; a later run retries the whole file.
                raise TransportFailure(f"segment {segment.index + 1}/{total} of {path} failed: {e}") from e

            outcome = repairer.repair(extract_payload(reply))
            if not outcome.reliable:
                logger.warning("Segment %d/%d of %s produced degraded scores", segment.index + 1, total, path)
            results.append(outcome.result.scores)
            labels.append(f"segment {segment.index + 1}")
            recommendations.extend(outcome.result.recommendations)

        # Degraded defaults are only averaged in when nothing better is available.
        unscored = []
        if any(r.reliable for r in results) and not all(r.reliable for r in results):
            unscored = [label for label, r in zip(labels, results) if not r.reliable]
            kept = [i for i, r in enumerate(results) if r.reliable]
            results = [results[i] for i in kept]
            labels = [labels[i] for i in kept]
            logger.warning("%s: %s left out of the score", path, ", ".join(unscored))

        scores = aggregate_scores(results, labels, unscored=unscored)
        analysis = FileAnalysis(
            commit_id=commit.id,
            file_path=path,
            language=language.name,
            scores=scores,
            segment_count=total,
        )
        for rec in dedupe_recommendations(recommendations):
            analysis.add_recommendation(rec)

        return self.guard.record(analysis), False

    def process_file(
        self, commit: CommitInfo, changed: ChangedFile, cancel: threading.Event | None = None
    ) -> FileOutcome:
        path = changed.path
        try:
            analysis, cached = self.analyze_file(commit, changed, cancel)
        except AnalysisCancelled:
            raise
        except ValidationFailure as e:
            logger.info("Skipping %s: %s", path, e)
            return FileOutcome(path, "skipped", kind=e.kind, reason=str(e))
        except AnalysisError as e:
            logger.error("Could not analyze %s (%s): %s", path, e.kind, e)
            return FileOutcome(path, "failed", kind=e.kind, reason=str(e))
        except Exception as e:
            logger.exception("Unexpected error analyzing %s", path)
            return FileOutcome(path, "failed", kind="error", reason=f"{type(e).__name__}: {e}")

        status = "cached" if cached else "analyzed"
        logger.info("%s %s: %.1f/10", status.capitalize(), path, analysis.overall_score)
        return FileOutcome(path, status, analysis=analysis)

    # ------------------------------------------------------------------ #
    # Commit                                                               #
    # ------------------------------------------------------------------ #

    def analyze_commit(self, commit_id: str, cancel: threading.Event | None = None) -> CommitReport:
        """Analyze every changed file of a commit and persist the commit-level result.

        Raises TransportFailure when the commit itself cannot be fetched and
        AnalysisCancelled when `cancel` is set; per-file problems never raise.
        """
        commit = self.source.get_commit(commit_id)
        changed_files = sorted(self.source.get_changed_files(commit_id), key=lambda f: f.path)

        limit = self.settings.max_files_per_commit
        over_limit = changed_files[limit:] if limit > 0 else []
        if over_limit:
            logger.warning(
                "Commit %s touches %d files; analyzing the first %d", commit.short_id, len(changed_files), limit
            )
            changed_files = changed_files[:limit]

        report = CommitReport(commit=commit)
        for i, changed in enumerate(changed_files, 1):
            _check_cancel(cancel)
            logger.info("[%d/%d] %s@%s", i, len(changed_files), changed.path, commit.short_id)
            report.outcomes.append(self.process_file(commit, changed, cancel))
        for changed in over_limit:
            report.outcomes.append(
                FileOutcome(changed.path, "skipped", kind="validation", reason=f"over the {limit} files per commit limit")
            )

        analyses = [o.analysis for o in report.outcomes if o.analysis is not None]
        try:
            report.analysis = aggregate_commit(commit, analyses, report.failures)
        except AggregationFailure as e:
            logger.warning("Commit %s left unanalyzed: %s", commit.short_id, e)
            return report

        self.store.save_commit_analysis(report.analysis)
        return report


def build_analyzer(config: dict, source, store: BaseStore, cache: BaseCache | None = None) -> CodeAnalyzer:
    return CodeAnalyzer(
        client=create_client(config),
        source=source,
        store=store,
        cache=cache,
        settings=AnalyzerSettings.from_config(config),
    )
