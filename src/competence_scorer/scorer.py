"""Scorer - the pure scoring and leveling engine.

Turns an answer set and a scoring configuration into a CalculationResult.
The computation is deterministic and has no side effects, so any stored
result can be regenerated from the raw answers and the matching
configuration version.

Lenient by omission: a missing or malformed answer contributes zero points
(or ``None`` for direct secondary metrics) and never raises.
"""

import copy
import logging
import math
import re
from typing import Any, Optional

from .schema import (
    AnswerSet,
    AreaQuestions,
    AreaScore,
    BehaviorRule,
    CalculationResult,
    DerivedMetricValue,
    DerivedSumMetric,
    DirectMetric,
    Number,
    ScoringConfiguration,
)

logger = logging.getLogger(__name__)

COUNT_SELECTED = "count_selected"
WEIGHTED_SUM_SELECTED = "weighted_sum_selected"
CAP_LEVEL_BY_AREA_SCORE = "cap_level_by_area_score"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded up.

    Python's ``round`` uses banker's rounding (``round(2.5) == 2``); scores
    are rounded half-up so 2.5 becomes 3.
    """
    return int(math.floor(value + 0.5))


def _percent(raw: Number, maximum: Number) -> int:
    return min(100, max(0, round_half_up(raw / maximum * 100)))


def parse_scale_value(value: Any) -> Optional[int]:
    """Parse a scale answer as an integer, or None if it is not numeric.

    Strings are parsed leniently by their leading integer (``"3.7"`` -> 3).
    Lists, booleans and absent answers are not numeric.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if match:
            return int(match.group(1))
    return None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _lookup_scalar(table: dict[str, Number], value: Any) -> Optional[Number]:
    """Look up a scalar answer in a value table (lists and absent give None)."""
    if isinstance(value, bool) or value is None or isinstance(value, (list, dict)):
        return None
    return table.get(str(value))


def _score_behavior(rule: BehaviorRule, value: Any) -> Number:
    """Points contributed by one behavioral question."""
    if rule.mode == COUNT_SELECTED:
        if not isinstance(value, list):
            return 0
        if rule.exclusive_zero and rule.exclusive_zero in value:
            return 0
        eligible = rule.eligible_values or []
        count = sum(1 for selected in value if selected in eligible)
        return count * (rule.points_per_item or 0)

    if rule.mode == WEIGHTED_SUM_SELECTED:
        if not isinstance(value, list):
            return 0
        if rule.exclusive_zero and rule.exclusive_zero in value:
            return 0
        total = 0
        for selected in value:
            if isinstance(selected, str):
                total += rule.weights.get(selected, 0)
        if rule.cap is not None:
            total = min(total, rule.cap)
        return total

    if rule.map is not None:
        return _lookup_scalar(rule.map, value) or 0

    return 0


def _score_area(
    questions: AreaQuestions,
    answers: AnswerSet,
    config: ScoringConfiguration,
) -> Number:
    """Unclamped points for one area (scale + behavior contributions)."""
    points: Number = 0

    if config.scales is not None:
        multiplier = config.scales.scale_0_4_to_points.multiplier
        for question_id in questions.scale:
            parsed = parse_scale_value(answers.get(question_id))
            if parsed is not None:
                points += parsed * multiplier

    for question_id in questions.behavior:
        rule = config.behavior_scoring.get(question_id)
        if rule is None:
            continue
        points += _score_behavior(rule, answers.get(question_id))

    return points


def _determine_level(config: ScoringConfiguration, total_percent: int) -> str:
    """Last level whose threshold is met wins; levels must be ascending."""
    levels = config.leveling.levels
    current = levels[0].name
    for level in levels:
        if total_percent >= level.min_percent:
            current = level.name
    return current


def _apply_brakes(
    config: ScoringConfiguration,
    level: str,
    area_scores: dict[str, AreaScore],
) -> tuple[str, bool, Optional[str]]:
    """Cap the level by area scores. Brakes only ever lower the level."""
    leveling = config.leveling
    brake_applied = False
    explanation_key = None

    for brake in leveling.brakes:
        if brake.type != CAP_LEVEL_BY_AREA_SCORE:
            continue

        area = area_scores.get(brake.area)
        area_points = area.raw if area is not None else 0
        rule = next((r for r in brake.rules if r.matches(area_points)), None)
        if rule is None or not rule.cap_level:
            continue

        cap_idx = leveling.index_of(rule.cap_level)
        current_idx = leveling.index_of(level)
        if cap_idx is None or current_idx is None:
            continue

        if current_idx > cap_idx:
            logger.debug(
                "Brake on area %s (%s points) caps level %s -> %s",
                brake.area, area_points, level, rule.cap_level,
            )
            level = rule.cap_level
            brake_applied = True
            explanation_key = brake.explanation_key

    return level, brake_applied, explanation_key


def _compute_secondary_metrics(
    config: ScoringConfiguration,
    answers: AnswerSet,
) -> dict[str, Any]:
    """Direct metrics first, then derived sums over them."""
    computed: dict[str, Any] = {}
    metrics = config.secondary_metrics or {}

    for name, metric in metrics.items():
        if isinstance(metric, DirectMetric):
            computed[name] = _lookup_scalar(metric.map, answers.get(metric.question_id))

    for name, metric in metrics.items():
        if not isinstance(metric, DerivedSumMetric):
            continue
        total: Number = 0
        for component in metric.components:
            value = computed.get(component)
            if _is_number(value):
                total += value
        label = None
        for band in metric.bands:
            if band.contains(total):
                label = band.label
        computed[name] = DerivedMetricValue(value=total, label=label)

    return computed


def calculate_score(
    answers: AnswerSet,
    config: ScoringConfiguration,
    version: Optional[str] = None,
) -> CalculationResult:
    """Score an answer set against a scoring configuration.

    Args:
        answers: Mapping of question id to answer (string, list of strings
            or absent).
        config: Already-resolved scoring configuration.
        version: Optional version tag to stamp on the result.

    Returns:
        A complete, immutable CalculationResult.
    """
    framework = config.framework
    area_scores: dict[str, AreaScore] = {}
    total_raw: Number = 0

    # 1. Area scores, in declaration order
    for area_code in framework.areas:
        questions = config.area_questions.get(area_code) or AreaQuestions()
        points = _score_area(questions, answers, config)

        # Clamp so no area exceeds its declared weight
        points = min(max(points, 0), framework.area_max_points)
        area_scores[area_code] = AreaScore(
            raw=points,
            max=framework.area_max_points,
            percent=_percent(points, framework.area_max_points),
        )
        total_raw += points

    # 2. Total percentage
    total_percent = _percent(total_raw, framework.total_max_points)

    # 3. Level by threshold, then brakes
    level = _determine_level(config, total_percent)
    level, brake_applied, explanation_key = _apply_brakes(config, level, area_scores)

    # 4. Secondary metrics (later versions only)
    secondary_metrics = None
    if config.secondary_metrics is not None:
        secondary_metrics = _compute_secondary_metrics(config, answers)

    return CalculationResult(
        total_score=total_raw,
        total_percent=total_percent,
        level=level,
        area_scores=area_scores,
        brake_applied=brake_applied,
        brake_explanation_key=explanation_key,
        answers=copy.deepcopy(dict(answers)),
        version=version,
        secondary_metrics=secondary_metrics,
    )
