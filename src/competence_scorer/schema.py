"""Pydantic models for the Competence Scoring Engine.

Input schemas for the versioned scoring configuration and output schemas
for calculation results, aggregate statistics and market comparisons.
These schemas match the JSON documents shipped under ``data/<version>/``.
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


Number = Union[int, float]

# An answer is a single selected value, an ordered list of selected values,
# or absent. Stored payloads may carry other JSON values (e.g. an "id").
AnswerSet = dict[str, Any]

# Synthetic key embedded by the submission store, never scored.
AREA_SCORES_KEY = "_areaScores"


# =============================================================================
# Scoring Configuration
# =============================================================================


class Framework(BaseModel):
    """Scored areas and their point budget."""
    areas: list[str]
    area_max_points: Number
    total_max_points: Number

    class Config:
        frozen = True

    @field_validator("area_max_points", "total_max_points")
    @classmethod
    def _positive(cls, value: Number) -> Number:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value


class ScaleConversion(BaseModel):
    """Converts an ordinal 0-4 scale answer into points."""
    multiplier: Number
    max_points: Optional[Number] = None

    class Config:
        frozen = True


class Scales(BaseModel):
    """Scale multipliers (absent in configurations without scale questions)."""
    scale_0_4_to_points: ScaleConversion

    class Config:
        frozen = True


class BehaviorRule(BaseModel):
    """Scoring rule for a single behavioral question.

    ``mode`` selects between counting eligible selections and summing
    per-value weights. Without a mode the scalar answer is looked up in
    ``map``.
    """
    mode: Optional[str] = None
    max_points: Optional[Number] = None
    points_per_item: Optional[Number] = None
    eligible_values: Optional[list[str]] = None
    exclusive_zero: Optional[str] = None
    weights: dict[str, Number] = Field(default_factory=dict)
    cap: Optional[Number] = None
    map: Optional[dict[str, Number]] = None

    class Config:
        frozen = True
        extra = "allow"

    @field_validator("cap")
    @classmethod
    def _cap_or_none(cls, value: Optional[Number]) -> Optional[Number]:
        """A cap of zero or below means no cap."""
        if value is not None and value <= 0:
            return None
        return value


class AreaQuestions(BaseModel):
    """Questions contributing to one area, grouped by scoring family."""
    scale: list[str] = Field(default_factory=list)
    behavior: list[str] = Field(default_factory=list)

    class Config:
        frozen = True


class Extension(BaseModel):
    """Extra question block carried for reporting only."""
    questions: list[str] = Field(default_factory=list)
    affects_total_score: bool = False

    class Config:
        frozen = True
        extra = "allow"


class Level(BaseModel):
    """A competence level with its inclusive minimum percent threshold."""
    name: str
    min_percent: Number
    max_percent: Optional[Number] = None

    class Config:
        frozen = True


class BrakeRule(BaseModel):
    """Range over an area's raw score: inclusive min, exclusive max."""
    min_area_points: Optional[Number] = None
    max_area_points_exclusive: Optional[Number] = None
    cap_level: Optional[str] = None

    class Config:
        frozen = True

    def matches(self, points: Number) -> bool:
        """Check whether an area score falls into this rule's range."""
        if self.min_area_points is not None and points < self.min_area_points:
            return False
        if self.max_area_points_exclusive is not None and points >= self.max_area_points_exclusive:
            return False
        return True


class Brake(BaseModel):
    """Caps the achievable level based on a single area's raw score."""
    type: str = "cap_level_by_area_score"
    area: str
    rules: list[BrakeRule] = Field(default_factory=list)
    explanation_key: Optional[str] = None

    class Config:
        frozen = True


class Leveling(BaseModel):
    """Ordered levels (ascending thresholds) and brake rules."""
    levels: list[Level] = Field(..., min_length=1)
    brakes: list[Brake] = Field(default_factory=list)

    class Config:
        frozen = True

    def index_of(self, name: str) -> Optional[int]:
        """Position of a level in the ordered list, or None if unknown."""
        for idx, level in enumerate(self.levels):
            if level.name == name:
                return idx
        return None


class DirectMetric(BaseModel):
    """Secondary metric read from a single answer through a value map."""
    type: Optional[Literal["direct"]] = None
    question_id: str
    map: dict[str, Number]

    class Config:
        frozen = True


class MetricBand(BaseModel):
    """Inclusive ``[min, max]`` range with a display label."""
    range: tuple[Number, Number]
    label: str

    class Config:
        frozen = True

    def contains(self, value: Number) -> bool:
        return self.range[0] <= value <= self.range[1]


class DerivedSumMetric(BaseModel):
    """Secondary metric summing other (direct) metrics, with banding."""
    type: Literal["derived_sum"]
    components: list[str]
    bands: list[MetricBand] = Field(default_factory=list)

    class Config:
        frozen = True


SecondaryMetric = Union[DerivedSumMetric, DirectMetric]


class ScoringConfiguration(BaseModel):
    """A versioned scoring configuration document.

    The schema evolved additively: ``scales``, ``extensions`` and
    ``secondary_metrics`` are only present in some versions.
    """
    version: Optional[str] = None
    framework: Framework
    scales: Optional[Scales] = None
    behavior_scoring: dict[str, BehaviorRule] = Field(default_factory=dict)
    area_questions: dict[str, AreaQuestions] = Field(default_factory=dict)
    extensions: Optional[dict[str, Extension]] = None
    leveling: Leveling
    secondary_metrics: Optional[dict[str, SecondaryMetric]] = None

    class Config:
        frozen = True
        extra = "allow"


# =============================================================================
# Calculation Result
# =============================================================================


class AreaScore(BaseModel):
    """Raw points, maximum points and rounded percent for one area."""
    raw: Number
    max: Number
    percent: int = Field(..., ge=0, le=100)

    class Config:
        frozen = True


class DerivedMetricValue(BaseModel):
    """Value of a derived-sum metric and the band it falls into."""
    value: Number
    label: Optional[str] = None

    class Config:
        frozen = True


class CalculationResult(BaseModel):
    """Complete output from the scoring engine."""
    total_score: Number
    total_percent: int = Field(..., ge=0, le=100)
    level: str
    area_scores: dict[str, AreaScore]
    brake_applied: bool = False
    brake_explanation_key: Optional[str] = None

    # Carried forward so consumers can recompute comparisons
    answers: AnswerSet = Field(default_factory=dict)
    version: Optional[str] = None
    secondary_metrics: Optional[dict[str, Union[DerivedMetricValue, Number, None]]] = None

    class Config:
        frozen = True


# =============================================================================
# Aggregates and Market Benchmark
# =============================================================================


class AggregateStats(BaseModel):
    """Population-level statistics over stored submissions."""
    count: int = 0
    avg_total_score: Number = 0
    avg_area_scores: dict[str, Number] = Field(default_factory=dict)
    level_distribution: dict[str, int] = Field(default_factory=dict)
    question_distributions: dict[str, dict[str, int]] = Field(default_factory=dict)


class BenchmarkEntry(BaseModel):
    """External market percentages for the options of one question."""
    question_id: str
    values: dict[str, Optional[Number]] = Field(default_factory=dict)

    class Config:
        frozen = True


class MarketBenchmark(BaseModel):
    """Market benchmark document for a questionnaire version."""
    schema_version: Optional[str] = None
    title: Optional[str] = None
    benchmarks: dict[str, BenchmarkEntry] = Field(default_factory=dict)

    class Config:
        frozen = True


class ComparisonPoint(BaseModel):
    """One option of a benchmarked question, compared three ways."""
    label: str
    user_value: bool
    market_percent: Optional[Number] = None
    internal_percent: int = 0
