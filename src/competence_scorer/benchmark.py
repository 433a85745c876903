"""Benchmark - compares a respondent's answers with market and internal data.

For every benchmarked question, each option is reported with whether the
respondent selected it, the external market percentage (if known) and the
share of internal respondents who picked it.
"""

from typing import Any, Optional

from .schema import (
    AggregateStats,
    AnswerSet,
    ComparisonPoint,
    MarketBenchmark,
)
from .scorer import round_half_up


def is_selected(answer: Any, option_value: str) -> bool:
    """Membership for list answers, equality for scalar answers."""
    if isinstance(answer, list):
        return option_value in answer
    return answer == option_value


def calculate_market_comparison(
    answers: AnswerSet,
    market_benchmark: MarketBenchmark,
    aggregate_stats: Optional[AggregateStats] = None,
) -> dict[str, list[ComparisonPoint]]:
    """Build comparison points per benchmarked question.

    Args:
        answers: The respondent's raw answer set.
        market_benchmark: External market percentages per option.
        aggregate_stats: Internal distributions; None is treated as empty.

    Returns:
        Mapping of question id to comparison points, one per option, in the
        benchmark's option order.
    """
    distributions = aggregate_stats.question_distributions if aggregate_stats else {}
    results: dict[str, list[ComparisonPoint]] = {}

    for benchmark in market_benchmark.benchmarks.values():
        question_id = benchmark.question_id
        answer = answers.get(question_id)

        internal = distributions.get(question_id) or {}
        total_internal = sum(internal.values())

        points = []
        for option_value, market_percent in benchmark.values.items():
            internal_count = internal.get(option_value, 0)
            internal_percent = (
                round_half_up(internal_count / total_internal * 100)
                if total_internal > 0 else 0
            )
            points.append(ComparisonPoint(
                label=option_value,
                user_value=is_selected(answer, option_value),
                market_percent=market_percent,
                internal_percent=internal_percent,
            ))

        results[question_id] = points

    return results
