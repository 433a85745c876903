"""Competence Scoring Engine.

Scores questionnaire answers into a competence profile: per-area points,
an overall level with brakes, and derived secondary indices.
"""

from .benchmark import calculate_market_comparison
from .engine import ScoringEngine
from .schema import CalculationResult, ScoringConfiguration
from .scorer import calculate_score
from .validation import ConfigurationError

__version__ = "1.0.0"

__all__ = [
    "CalculationResult",
    "ConfigurationError",
    "ScoringConfiguration",
    "ScoringEngine",
    "calculate_market_comparison",
    "calculate_score",
]
