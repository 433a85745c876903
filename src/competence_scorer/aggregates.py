"""Aggregate statistics over stored submissions.

Computes counts, averages, level distribution and per-question answer
distributions used by the benchmark comparison, plus a short-lived cache
that is invalidated whenever a new submission is saved.
"""

import logging
import time
from typing import Callable, Iterable, Optional, Sequence

from .schema import AREA_SCORES_KEY, AggregateStats
from .scorer import round_half_up
from .submissions import SubmissionRecord, load_answers_payload

logger = logging.getLogger(__name__)


def _area_percent(data) -> Optional[float]:
    """Percent from an embedded area score ({raw, max, percent} or a bare number)."""
    if isinstance(data, dict):
        data = data.get("percent")
    if isinstance(data, (int, float)) and not isinstance(data, bool):
        return data
    return None


def compute_aggregates(
    records: Iterable[SubmissionRecord],
    profiling_question_ids: Sequence[str],
) -> AggregateStats:
    """Compute aggregate statistics from stored submission records.

    Args:
        records: Stored submissions.
        profiling_question_ids: Questions whose answer values are counted.
            List answers count each selected value once.

    Returns:
        AggregateStats (all zeros/empty when there are no records).
    """
    stats = AggregateStats()
    score_sum = 0
    area_sums: dict[str, list[float]] = {}

    for record in records:
        stats.count += 1
        score_sum += record.score
        if record.level:
            stats.level_distribution[record.level] = stats.level_distribution.get(record.level, 0) + 1

        payload = load_answers_payload(record)

        for question_id in profiling_question_ids:
            answer = payload.get(question_id)
            if answer is None:
                continue
            values = answer if isinstance(answer, list) else [answer]
            distribution = stats.question_distributions.setdefault(question_id, {})
            for value in values:
                key = str(value)
                distribution[key] = distribution.get(key, 0) + 1

        area_scores = payload.get(AREA_SCORES_KEY)
        if isinstance(area_scores, dict):
            for area, data in area_scores.items():
                percent = _area_percent(data)
                if percent is not None:
                    area_sums.setdefault(area, []).append(percent)

    if stats.count == 0:
        return stats

    stats.avg_total_score = round_half_up(score_sum / stats.count)
    stats.avg_area_scores = {
        area: round_half_up(sum(values) / len(values))
        for area, values in area_sums.items()
    }
    logger.debug("Computed aggregates over %d submissions", stats.count)
    return stats


class AggregateCache:
    """Caches computed aggregates for a fixed freshness window.

    ``loader`` computes fresh statistics; ``clock`` returns monotonic seconds
    and can be replaced in tests.
    """

    def __init__(
        self,
        loader: Callable[[], AggregateStats],
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.loader = loader
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._data: Optional[AggregateStats] = None
        self._timestamp = 0.0

    def get(self) -> AggregateStats:
        now = self.clock()
        if self._data is not None and now - self._timestamp < self.ttl_seconds:
            return self._data
        self._data = self.loader()
        self._timestamp = now
        return self._data

    def invalidate(self) -> None:
        self._data = None
