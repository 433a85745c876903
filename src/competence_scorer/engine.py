"""Competence Scoring Engine - entry point for callers.

Resolves the questionnaire version once at the boundary, then delegates to
the pure scorer and benchmark functions. Stored answers are the only source
of truth: rescoring never reads cached score or level fields.
"""

import logging
from typing import Optional

from .aggregates import AggregateCache, compute_aggregates
from .benchmark import calculate_market_comparison
from .config import ScorerSettings, get_config
from .schema import AggregateStats, AnswerSet, CalculationResult, ComparisonPoint
from .scorer import calculate_score
from .submissions import (
    SubmissionRecord,
    SubmissionStore,
    answers_from_record,
    build_record,
)
from .versions import ScoringConfigRegistry

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Scores answer sets and manages submissions for all questionnaire versions."""

    def __init__(
        self,
        registry: Optional[ScoringConfigRegistry] = None,
        store: Optional[SubmissionStore] = None,
        settings: Optional[ScorerSettings] = None,
    ):
        self.settings = settings or get_config()
        self.registry = registry or ScoringConfigRegistry.from_settings(self.settings)
        self.store = store or SubmissionStore(self.settings.submissions_path)
        self.aggregate_cache = AggregateCache(
            self._compute_aggregates,
            ttl_seconds=self.settings.aggregates.cache_ttl_seconds,
        )

    def score(self, answers: AnswerSet, version: Optional[str] = None) -> CalculationResult:
        """Score answers with the configuration for ``version`` (default: latest)."""
        resolved = self.registry.resolve(version)
        config = self.registry.get_config(resolved)
        return calculate_score(answers, config, version=resolved)

    def rescore(self, record: SubmissionRecord) -> CalculationResult:
        """Recompute a stored submission from its raw answers."""
        return self.score(answers_from_record(record), record.version)

    def rescore_by_id(self, record_id: str) -> CalculationResult:
        return self.rescore(self.store.get(record_id))

    def submit(
        self,
        answers: AnswerSet,
        version: Optional[str] = None,
    ) -> tuple[CalculationResult, SubmissionRecord]:
        """Score, store and invalidate cached aggregates."""
        result = self.score(answers, version)
        record = build_record(result, result.version)
        self.store.append(record)
        self.aggregate_cache.invalidate()
        return result, record

    def aggregates(self) -> AggregateStats:
        """Aggregate statistics over stored submissions (cached)."""
        return self.aggregate_cache.get()

    def _compute_aggregates(self) -> AggregateStats:
        return compute_aggregates(
            self.store,
            self.settings.aggregates.profiling_question_ids,
        )

    def compare(
        self,
        result: CalculationResult,
        aggregate_stats: Optional[AggregateStats] = None,
    ) -> dict[str, list[ComparisonPoint]]:
        """Market comparison for a result, using its version's benchmark."""
        benchmark = self.registry.get_market_benchmark(result.version)
        if benchmark is None:
            logger.info("No market benchmark available for version %s", result.version)
            return {}
        if aggregate_stats is None:
            aggregate_stats = self.aggregates()
        return calculate_market_comparison(result.answers, benchmark, aggregate_stats)
