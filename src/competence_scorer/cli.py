"""CLI for the Competence Scoring Engine.

Provides command-line interface for scoring answer sets, comparing them
against market benchmarks and working with stored submissions.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .aggregates import compute_aggregates
from .config import get_config, load_config
from .engine import ScoringEngine
from .schema import AggregateStats, CalculationResult, ComparisonPoint, DerivedMetricValue
from .submissions import SubmissionNotFoundError, SubmissionStore
from .validation import validate_config_file
from .versions import ScoringConfigRegistry

console = Console()

LEVEL_COLORS = {
    "Observer": "dim",
    "Explorer": "yellow",
    "Practitioner": "cyan",
    "Amplifier": "green",
}


@click.group()
@click.version_option(version="1.0.0", prog_name="competence-scorer")
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True),
    help="Path to scorer-config.yaml (default: auto-discovered)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable debug logging"
)
def main(config_path: Optional[str], verbose: bool):
    """AI Competence Scoring Engine.

    Scores questionnaire answers against versioned scoring configurations
    and compares them with market and community benchmarks.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    if config_path:
        load_config(Path(config_path))


def load_answers(path: str) -> dict:
    """Load an answer set from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise click.ClickException(f"{path} must contain a JSON object of answers")
    return data


def _store(submissions: Optional[str]) -> SubmissionStore:
    return SubmissionStore(submissions or get_config().submissions_path)


@main.command("score")
@click.option(
    "--answers", "-a",
    required=True,
    type=click.Path(exists=True),
    help="Path to answers JSON file"
)
@click.option(
    "--version", "-V", "version",
    help="Questionnaire version (default: latest)"
)
@click.option(
    "--out", "-o",
    type=click.Path(),
    help="Output file for JSON results"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def score_cmd(answers: str, version: Optional[str], out: Optional[str], json_output: bool):
    """Score an answer set.

    Examples:
        competence-scorer score -a answers.json
        competence-scorer score -a answers.json -V v8 -j
    """
    try:
        engine = ScoringEngine()
        result = engine.score(load_answers(answers), version)

        if json_output:
            output_json(result, out)
        else:
            display_result(result)
            if out:
                output_json(result, out)
                console.print(f"\n[green]Results saved to {out}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("compare")
@click.option(
    "--answers", "-a",
    required=True,
    type=click.Path(exists=True),
    help="Path to answers JSON file"
)
@click.option(
    "--version", "-V", "version",
    help="Questionnaire version (default: latest)"
)
@click.option(
    "--aggregates", "aggregates_path",
    type=click.Path(exists=True),
    help="Path to aggregate statistics JSON (default: computed from submissions)"
)
@click.option(
    "--submissions", "-s",
    type=click.Path(),
    help="Path to submissions JSONL file"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def compare_cmd(
    answers: str,
    version: Optional[str],
    aggregates_path: Optional[str],
    submissions: Optional[str],
    json_output: bool,
):
    """Compare answers with market and community benchmarks."""
    try:
        engine = ScoringEngine(store=_store(submissions))
        result = engine.score(load_answers(answers), version)

        stats = None
        if aggregates_path:
            with open(aggregates_path, "r", encoding="utf-8") as f:
                stats = AggregateStats.model_validate(json.load(f))

        comparison = engine.compare(result, stats)

        if json_output:
            print(json.dumps(
                {qid: [p.model_dump() for p in points] for qid, points in comparison.items()},
                indent=2,
                ensure_ascii=False,
            ))
            return

        if not comparison:
            console.print(f"[yellow]No market benchmark available for {result.version}[/yellow]")
            return
        for question_id, points in comparison.items():
            display_comparison(question_id, points)

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("validate")
@click.option(
    "--version", "-V", "version",
    help="Validate a bundled or configured version"
)
@click.option(
    "--file", "-f", "file_path",
    type=click.Path(),
    help="Validate a scoring configuration file"
)
def validate_cmd(version: Optional[str], file_path: Optional[str]):
    """Validate scoring configurations.

    Without options, validates every known version.

    Examples:
        competence-scorer validate
        competence-scorer validate -V v8
        competence-scorer validate -f my-scoring.json
    """
    registry = ScoringConfigRegistry.from_settings()

    targets: list[tuple[str, Path]] = []
    if file_path:
        targets.append((file_path, Path(file_path)))
    else:
        versions = [version] if version else registry.available_versions()
        for tag in versions:
            if not registry.has_version(tag):
                console.print(f"[red]✗ Unknown version: {tag}[/red]")
                sys.exit(1)
            targets.append((tag, registry.document_path(tag)))

    all_valid = True
    for name, path in targets:
        is_valid, issues = validate_config_file(path)
        if is_valid:
            console.print(f"[green]✓ Configuration valid: {name}[/green]")
        else:
            console.print(f"[red]✗ Configuration invalid: {name}[/red]")
            all_valid = False
        for issue in issues:
            console.print(f"  - {issue}")

    sys.exit(0 if all_valid else 1)


@main.command("versions")
def versions_cmd():
    """List known questionnaire versions."""
    try:
        registry = ScoringConfigRegistry.from_settings()
        default = registry.default_version

        table = Table(show_header=True, header_style="bold")
        table.add_column("Version", style="cyan", no_wrap=True)
        table.add_column("Areas")
        table.add_column("Scales")
        table.add_column("Secondary Metrics")
        table.add_column("Benchmark")

        for tag in registry.available_versions():
            config = registry.get_config(tag)
            label = f"{tag} (default)" if tag == default else tag
            table.add_row(
                label,
                ", ".join(config.framework.areas),
                "yes" if config.scales else "no",
                str(len(config.secondary_metrics or {})),
                "yes" if registry.get_market_benchmark(tag) else "no",
            )

        console.print(table)

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("submit")
@click.option(
    "--answers", "-a",
    required=True,
    type=click.Path(exists=True),
    help="Path to answers JSON file"
)
@click.option(
    "--version", "-V", "version",
    help="Questionnaire version (default: latest)"
)
@click.option(
    "--submissions", "-s",
    type=click.Path(),
    help="Path to submissions JSONL file"
)
def submit_cmd(answers: str, version: Optional[str], submissions: Optional[str]):
    """Score an answer set and store the submission."""
    try:
        engine = ScoringEngine(store=_store(submissions))
        result, record = engine.submit(load_answers(answers), version)
        display_result(result)
        console.print(f"\n[green]✓ Stored submission {record.id}[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("rescore")
@click.option(
    "--id", "record_id",
    required=True,
    help="Submission ID to recompute"
)
@click.option(
    "--submissions", "-s",
    type=click.Path(),
    help="Path to submissions JSONL file"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def rescore_cmd(record_id: str, submissions: Optional[str], json_output: bool):
    """Recompute a stored submission from its raw answers."""
    try:
        engine = ScoringEngine(store=_store(submissions))
        record = engine.store.get(record_id)
        result = engine.rescore(record)

        if json_output:
            output_json(result, None)
            return

        display_result(result)
        if record.level != result.level or record.score != result.total_percent:
            console.print(
                f"\n[yellow]Stored fields differ: {record.level} ({record.score}%)[/yellow]"
            )

    except SubmissionNotFoundError:
        console.print(f"[red]Error: submission not found: {record_id}[/red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command("aggregates")
@click.option(
    "--submissions", "-s",
    type=click.Path(),
    help="Path to submissions JSONL file"
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output raw JSON instead of formatted text"
)
def aggregates_cmd(submissions: Optional[str], json_output: bool):
    """Show aggregate statistics over stored submissions."""
    try:
        store = _store(submissions)
        stats = compute_aggregates(store, get_config().aggregates.profiling_question_ids)

        if json_output:
            print(stats.model_dump_json(indent=2))
            return

        console.print(Panel(
            f"Submissions: [bold]{stats.count}[/bold]\n"
            f"Average score: [bold]{stats.avg_total_score}%[/bold]",
            title="Aggregate Statistics",
        ))

        if stats.avg_area_scores:
            table = Table(show_header=True, header_style="bold")
            table.add_column("Area", style="cyan")
            table.add_column("Average %", justify="right")
            for area, percent in stats.avg_area_scores.items():
                table.add_row(area, str(percent))
            console.print(table)

        if stats.level_distribution:
            console.print("\n[bold]Levels:[/bold]")
            for level, count in stats.level_distribution.items():
                console.print(f"  • {level}: {count}")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


def display_result(result: CalculationResult):
    """Display a calculation result in formatted text."""
    color = LEVEL_COLORS.get(result.level, "white")

    console.print(Panel(
        f"Level: [bold {color}]{result.level}[/bold {color}]\n"
        f"Total: [bold]{result.total_score}[/bold] points ({result.total_percent}%)\n"
        f"Version: {result.version or 'n/a'}",
        title="Competence Profile",
    ))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Area", style="cyan", no_wrap=True)
    table.add_column("Points", justify="right")
    table.add_column("Percent", justify="right")

    for area, score in result.area_scores.items():
        table.add_row(area, f"{score.raw}/{score.max}", f"{score.percent}%")

    console.print(table)

    if result.brake_applied:
        console.print(
            f"\n[yellow]⚠ Level capped by brake ({result.brake_explanation_key or 'unspecified'})[/yellow]"
        )

    if result.secondary_metrics:
        console.print("\n[bold]Secondary Metrics:[/bold]")
        for name, value in result.secondary_metrics.items():
            if isinstance(value, DerivedMetricValue):
                label = f" ({value.label})" if value.label else ""
                console.print(f"  • {name}: {value.value}{label}")
            else:
                console.print(f"  • {name}: {'n/a' if value is None else value}")


def display_comparison(question_id: str, points: list[ComparisonPoint]):
    """Display comparison points for one question."""
    table = Table(title=question_id, show_header=True, header_style="bold")
    table.add_column("Option")
    table.add_column("You", justify="center")
    table.add_column("Market %", justify="right")
    table.add_column("Community %", justify="right")

    for point in points:
        table.add_row(
            point.label,
            "[green]✓[/green]" if point.user_value else "",
            "-" if point.market_percent is None else str(point.market_percent),
            str(point.internal_percent),
        )

    console.print(table)


def output_json(result: CalculationResult, out_path: Optional[str]):
    """Output result as JSON."""
    json_str = result.model_dump_json(indent=2)

    if out_path:
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(json_str)
    else:
        print(json_str)


@main.command("init-config")
@click.option(
    "--out", "-o",
    type=click.Path(),
    default="scorer-config.yaml",
    help="Output path for the configuration file"
)
@click.option(
    "--force", "-f",
    is_flag=True,
    help="Overwrite existing config file"
)
def init_config_cmd(out: str, force: bool):
    """Generate a default scorer configuration file.

    Example:
        competence-scorer init-config --out my-config.yaml
    """
    from .config import save_default_config

    out_path = Path(out)
    if out_path.exists() and not force:
        console.print(f"[red]Error:[/red] Config file already exists: {out}")
        console.print("Use --force to overwrite")
        sys.exit(1)

    try:
        save_default_config(out_path)
        console.print(f"[green]✓[/green] Config file created: {out}")
        console.print("\nThis file configures:")
        console.print("  • default_version - Version used for unknown or missing tags")
        console.print("  • config_dirs - Extra directories with versioned scoring documents")
        console.print("  • submissions_path - Where submissions are stored")
        console.print("  • aggregates - Cache window and tracked profiling questions")
        console.print("\nThe scorer will look for config in this order:")
        console.print("  1. COMPETENCE_SCORER_CONFIG environment variable")
        console.print("  2. ./scorer-config.yaml (current directory)")
        console.print("  3. ~/.config/competence-scorer/config.yaml")
    except Exception as e:
        console.print(f"[red]Error creating config:[/red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
