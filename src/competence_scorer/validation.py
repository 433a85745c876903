"""Load-time validation of scoring configurations.

The scoring engine trusts its configuration: it walks levels and bands in
declaration order and skips anything it cannot find. This module checks the
ordering and consistency assumptions once, when a configuration is loaded,
instead of on every request.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from .schema import (
    DerivedSumMetric,
    DirectMetric,
    MarketBenchmark,
    ScoringConfiguration,
)

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"


class ConfigurationError(Exception):
    """Raised when a configuration document cannot be loaded or is invalid."""


@dataclass(frozen=True)
class ValidationIssue:
    """A single finding from the validation pass."""
    severity: str
    message: str

    def __str__(self) -> str:
        return f"{self.severity}: {self.message}"


def load_document(path: Union[str, Path]) -> dict[str, Any]:
    """Read a JSON or YAML document into a dict."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot parse {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON/YAML object")
    return data


def parse_configuration(data: dict[str, Any], version: Optional[str] = None) -> ScoringConfiguration:
    """Parse a raw configuration dict, stamping the version tag if given."""
    if version is not None:
        data = {**data, "version": version}
    try:
        return ScoringConfiguration.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid scoring configuration {version or ''}: {e}") from e


def parse_market_benchmark(data: dict[str, Any]) -> MarketBenchmark:
    """Parse a raw market benchmark dict."""
    try:
        return MarketBenchmark.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid market benchmark: {e}") from e


def check_configuration(config: ScoringConfiguration) -> list[ValidationIssue]:
    """Collect all issues in a parsed configuration.

    Errors break the engine's ordering assumptions or reference things that
    do not exist. Warnings describe tolerated gaps, such as behavior
    questions without a scoring rule, which are skipped at scoring time.
    """
    issues: list[ValidationIssue] = []
    framework = config.framework
    levels = config.leveling.levels

    # Levels must be ascending for "last match wins" resolution
    names = [level.name for level in levels]
    for prev, curr in zip(levels, levels[1:]):
        if curr.min_percent < prev.min_percent:
            issues.append(ValidationIssue(
                ERROR,
                f"Level '{curr.name}' threshold {curr.min_percent} is below "
                f"'{prev.name}' threshold {prev.min_percent}",
            ))
    duplicates = sorted({n for n in names if names.count(n) > 1})
    for name in duplicates:
        issues.append(ValidationIssue(ERROR, f"Duplicate level name '{name}'"))

    # Areas
    if len(set(framework.areas)) != len(framework.areas):
        issues.append(ValidationIssue(ERROR, "framework.areas contains duplicates"))
    for area in framework.areas:
        if area not in config.area_questions:
            issues.append(ValidationIssue(ERROR, f"Area '{area}' has no area_questions entry"))
    for area in config.area_questions:
        if area not in framework.areas:
            issues.append(ValidationIssue(ERROR, f"area_questions references unknown area '{area}'"))

    # Percents are bounded at scoring time, so this only skews the scale
    max_reachable = framework.area_max_points * len(framework.areas)
    if framework.total_max_points < max_reachable:
        issues.append(ValidationIssue(
            WARNING,
            f"total_max_points {framework.total_max_points} is below the reachable "
            f"maximum {max_reachable}",
        ))

    for area, questions in config.area_questions.items():
        if questions.scale and config.scales is None:
            issues.append(ValidationIssue(
                WARNING,
                f"Area '{area}' lists scale questions but the configuration has no scales",
            ))
        for question_id in questions.behavior:
            if question_id not in config.behavior_scoring:
                issues.append(ValidationIssue(
                    WARNING,
                    f"Behavior question '{question_id}' in area '{area}' has no scoring rule",
                ))

    # Brakes
    for brake in config.leveling.brakes:
        if brake.area not in framework.areas:
            issues.append(ValidationIssue(ERROR, f"Brake references unknown area '{brake.area}'"))
        for rule in brake.rules:
            if rule.cap_level and rule.cap_level not in names:
                issues.append(ValidationIssue(
                    ERROR, f"Brake on area '{brake.area}' caps to unknown level '{rule.cap_level}'"
                ))

    # Secondary metrics
    metrics = config.secondary_metrics or {}
    direct_names = {name for name, m in metrics.items() if isinstance(m, DirectMetric)}
    for name, metric in metrics.items():
        if not isinstance(metric, DerivedSumMetric):
            continue
        for component in metric.components:
            if component not in direct_names:
                issues.append(ValidationIssue(
                    ERROR, f"Derived metric '{name}' component '{component}' is not a direct metric"
                ))
        bands = metric.bands
        for band in bands:
            if band.range[0] > band.range[1]:
                issues.append(ValidationIssue(
                    ERROR, f"Derived metric '{name}' band '{band.label}' has min above max"
                ))
        for prev, curr in zip(bands, bands[1:]):
            if curr.range[0] <= prev.range[1]:
                issues.append(ValidationIssue(
                    ERROR,
                    f"Derived metric '{name}' bands '{prev.label}' and '{curr.label}' "
                    f"overlap or are out of order",
                ))

    return issues


def validate_configuration(config: ScoringConfiguration) -> list[ValidationIssue]:
    """Validate a configuration, raising on errors and logging warnings.

    Returns:
        The warnings found (errors raise instead).
    """
    issues = check_configuration(config)
    errors = [i for i in issues if i.severity == ERROR]
    warnings = [i for i in issues if i.severity == WARNING]

    for warning in warnings:
        logger.warning("Configuration %s: %s", config.version or "<unversioned>", warning.message)

    if errors:
        details = "; ".join(e.message for e in errors)
        raise ConfigurationError(
            f"Configuration {config.version or '<unversioned>'} is invalid: {details}"
        )
    return warnings


def validate_config_file(path: Union[str, Path]) -> tuple[bool, list[str]]:
    """Validate a scoring configuration file.

    Returns:
        Tuple of (is_valid, issue descriptions).
    """
    try:
        config = parse_configuration(load_document(path))
    except ConfigurationError as e:
        return False, [str(e)]

    issues = check_configuration(config)
    is_valid = not any(i.severity == ERROR for i in issues)
    return is_valid, [str(i) for i in issues]
