"""Shared fixtures for the competence scorer tests."""

import copy

import pytest

from competence_scorer.config import reset_config
from competence_scorer.schema import ScoringConfiguration


BASE_CONFIG = {
    "framework": {
        "areas": ["A", "B", "C"],
        "area_max_points": 20,
        "total_max_points": 60,
    },
    "scales": {
        "scale_0_4_to_points": {"multiplier": 2, "max_points": 8},
    },
    "behavior_scoring": {
        "QA2": {
            "mode": "count_selected",
            "points_per_item": 5,
            "eligible_values": ["x", "y"],
            "exclusive_zero": "none",
        },
        "QB1": {
            "mode": "weighted_sum_selected",
            "weights": {"a": 3, "b": 4, "c": 10},
            "cap": 8,
            "exclusive_zero": "none",
        },
        "QB2": {"map": {"low": 0, "mid": 3, "high": 6}},
        "QC1": {"map": {"no": 0, "yes": 10}},
    },
    "area_questions": {
        "A": {"scale": ["QA1"], "behavior": ["QA2"]},
        "B": {"scale": ["QB3"], "behavior": ["QB1", "QB2"]},
        "C": {"scale": ["QC2"], "behavior": ["QC1", "QC_UNDECLARED"]},
    },
    "leveling": {
        "levels": [
            {"name": "Observer", "min_percent": 0},
            {"name": "Explorer", "min_percent": 30},
            {"name": "Practitioner", "min_percent": 60},
            {"name": "Amplifier", "min_percent": 75},
        ],
        "brakes": [
            {
                "type": "cap_level_by_area_score",
                "area": "C",
                "rules": [
                    {"min_area_points": 0, "max_area_points_exclusive": 8, "cap_level": "Explorer"},
                    {"min_area_points": 8, "cap_level": None},
                ],
                "explanation_key": "brake_C",
            }
        ],
    },
}

SECONDARY_METRICS = {
    # Derived metric declared first on purpose: evaluation must not depend on key order
    "adoption_index": {
        "type": "derived_sum",
        "components": ["frequency", "paid_tools"],
        "bands": [
            {"range": [0, 2], "label": "Early"},
            {"range": [3, 5], "label": "Growing"},
            {"range": [6, 10], "label": "Invested"},
        ],
    },
    "frequency": {"question_id": "Q1", "map": {"never": 0, "weekly": 2, "daily": 4}},
    "paid_tools": {"question_id": "Q2", "map": {"0": 0, "1": 1, "2_3": 2}},
}

# A respondent who qualifies for Amplifier by percentage but scores low in C
AMPLIFIER_WITH_WEAK_C = {
    "QA1": "5",
    "QA2": ["x", "y"],
    "QB3": "4",
    "QB1": ["c"],
    "QB2": "high",
    "QC2": "3",
    "QC1": "no",
}

# Full answer set for the bundled six-area questionnaire (v1 and later)
SAMPLE_ANSWERS = {
    "Q1_2": "weekly",
    "Q1_2b": "2_3",
    "QA1": "4", "QA2": "3", "QA3": "often",
    "QB1": "3", "QB3": "1", "QB2": ["role", "examples", "format", "iterate"],
    "QC1": "1", "QC2": "0", "QC3": "spot_check",
    "QD1": "2", "QD2": "2", "QD3": "templates",
    "QE1": "1", "QE2": "1", "QE3": "none",
    "QF1": "4", "QF3": "3", "QF2": ["text", "video", "code"],
}


def make_config_dict(**overrides) -> dict:
    """Deep copy of the base configuration with top-level overrides.

    An override of None removes the section.
    """
    data = copy.deepcopy(BASE_CONFIG)
    for key, value in overrides.items():
        if value is None:
            data.pop(key, None)
        else:
            data[key] = copy.deepcopy(value)
    return data


@pytest.fixture(autouse=True)
def _default_settings():
    """Isolate tests from any scorer-config.yaml on the machine."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def make_config():
    """Factory for ScoringConfiguration objects built from the base config."""
    def _make(**overrides) -> ScoringConfiguration:
        return ScoringConfiguration.model_validate(make_config_dict(**overrides))
    return _make


@pytest.fixture
def config(make_config) -> ScoringConfiguration:
    return make_config()


@pytest.fixture
def metrics_config(make_config) -> ScoringConfiguration:
    return make_config(secondary_metrics=SECONDARY_METRICS)
