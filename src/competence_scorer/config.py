"""Centralized configuration management for the competence scorer."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class AggregatesConfig(BaseModel):
    """Settings for aggregate statistics over stored submissions."""
    cache_ttl_seconds: float = Field(
        60.0,
        description="How long computed aggregates are reused before recomputing"
    )
    profiling_question_ids: list[str] = Field(
        default_factory=lambda: ["Q0_1", "Q0_2", "Q1_2", "Q1_2b", "Q1_3", "Q1_5", "QB2", "QF2"],
        description="Questions whose answer distributions are tracked for benchmarking"
    )


class ScorerSettings(BaseModel):
    """Complete configuration for the competence scorer."""
    default_version: Optional[str] = Field(
        None,
        description="Questionnaire version used for unknown or missing tags (default: latest)"
    )
    config_dirs: list[str] = Field(
        default_factory=list,
        description="Extra directories holding <version>/scoring.json documents"
    )
    submissions_path: str = Field(
        "submissions.jsonl",
        description="JSON Lines file where submissions are stored"
    )
    aggregates: AggregatesConfig = Field(default_factory=AggregatesConfig)


# Global config instance
_config: Optional[ScorerSettings] = None


def get_config() -> ScorerSettings:
    """Get the current configuration.

    Returns the global config, loading a discovered config file or falling
    back to defaults if not yet loaded.
    """
    global _config
    if _config is None:
        path = find_config_file()
        if path is not None:
            return load_config(path)
        _config = ScorerSettings()
    return _config


def load_config(path: Path) -> ScorerSettings:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        The loaded ScorerSettings.
    """
    global _config

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    _config = ScorerSettings.model_validate(data or {})
    return _config


def reset_config() -> None:
    """Reset configuration to defaults."""
    global _config
    _config = ScorerSettings()


def find_config_file() -> Optional[Path]:
    """Find a scorer configuration file.

    Looks in (order of priority):
    1. COMPETENCE_SCORER_CONFIG environment variable
    2. ./scorer-config.yaml
    3. ./scorer-config.yml
    4. ~/.config/competence-scorer/config.yaml
    """
    env_path = os.environ.get("COMPETENCE_SCORER_CONFIG")
    if env_path:
        path = Path(env_path)
        if path.exists():
            return path

    for name in ["scorer-config.yaml", "scorer-config.yml"]:
        path = Path(name)
        if path.exists():
            return path

    user_config = Path.home() / ".config" / "competence-scorer" / "config.yaml"
    if user_config.exists():
        return user_config

    return None


def save_default_config(path: Path) -> None:
    """Save the default configuration to a YAML file.

    Args:
        path: Path where to save the configuration.
    """
    data = ScorerSettings().model_dump()

    yaml_content = """# Competence Scorer Configuration
# ===============================
#
# This file selects the default questionnaire version, extra configuration
# directories, submission storage and aggregate statistics behavior.
#
# Copy this file to one of these locations:
#   - ./scorer-config.yaml (current directory)
#   - ~/.config/competence-scorer/config.yaml (user config)
#
# Or set the COMPETENCE_SCORER_CONFIG environment variable.

"""
    yaml_content += yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(yaml_content)
