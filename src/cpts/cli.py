"""CLI entry point for cpts."""

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path

# Load .env file if it exists
from dotenv import load_dotenv
load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from cpts import __version__
from cpts.adapters.base import RegistryClient, SourceHostClient
from cpts.adapters.github import GitHubClient
from cpts.adapters.packagist import PackagistClient
from cpts.analyzers.checker import CheckReport, CheckStatus, DependencyChecker, read_lock_packages
from cpts.analyzers.resolver import PackageResolver
from cpts.analyzers.scorer import ScoreCalculator
from cpts.analyzers.trusted import TrustedPackageMatcher
from cpts.config import CptsConfig, load_config, update_trusted_packages
from cpts.errors import CptsError, RateLimitError
from cpts.metrics.registry import MetricRegistry
from cpts.models.schemas import ScoreResult, Severity

app = typer.Typer(help="Composer Package Trust Score: score dependencies before you install them.")

console = Console()
err_console = Console(stderr=True)

# Unauthenticated GitHub allows 60 requests per hour
UNAUTHENTICATED_WARN_PACKAGES = 30
LOW_RATE_LIMIT = 10

SEVERITY_COLORS = {
    Severity.EXCELLENT: "green",
    Severity.GOOD: "green",
    Severity.CAUTION: "yellow",
    Severity.WARNING: "red",
    Severity.FAIL: "red",
}


class ScoreFormat(str, Enum):
    DETAILED = "detailed"
    JSON = "json"
    MINIMAL = "minimal"


class CheckFormat(str, Enum):
    TABLE = "table"
    JSON = "json"


def _configure_logging(verbose: bool) -> None:
    """Send log records to stderr so stdout stays machine readable."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config(project_dir: Path) -> CptsConfig:
    try:
        return load_config(project_dir)
    except CptsError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _build_clients(config: CptsConfig) -> tuple[SourceHostClient, RegistryClient]:
    """Create the GitHub and Packagist clients."""
    return GitHubClient(token=config.github_token), PackagistClient()


def _build_calculator(config: CptsConfig) -> ScoreCalculator:
    return ScoreCalculator(MetricRegistry(weights=config.weights))


def _score_color(score: float) -> str:
    return "green" if score >= 80 else "yellow" if score >= 60 else "cyan" if score >= 40 else "red"


def _rate_limit_message(error: RateLimitError) -> str:
    minutes = max(1, error.seconds_until_reset // 60)
    return f"GitHub API rate limit exceeded, resets in about {minutes} min. Set GITHUB_TOKEN for 5000 requests/hour."


@app.command()
def score(
    package: str = typer.Argument(..., help="Package name (vendor/package)"),
    output_format: ScoreFormat = typer.Option(ScoreFormat.DETAILED, "--format", "-f", help="Output format"),
    project_dir: Path = typer.Option(Path("."), "--project-dir", "-d", help="Directory containing composer.json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Calculate the trust score of a single package."""
    _configure_logging(verbose)
    config = _load_config(project_dir)

    if config.disabled:
        err_console.print("[yellow]CPTS is disabled via CPTS_DISABLE environment variable[/yellow]")
        raise typer.Exit(0)

    try:
        result = asyncio.run(_score_package(package, config))
    except RateLimitError as e:
        err_console.print(f"[red]{_rate_limit_message(e)}[/red]")
        raise typer.Exit(1)
    except CptsError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if output_format == ScoreFormat.JSON:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    if output_format == ScoreFormat.MINIMAL:
        typer.echo(f"{result.score:.1f}")
        return

    _display_detailed(result, config)
    if not result.passes(config.min_cpts):
        raise typer.Exit(1)


async def _score_package(package: str, config: CptsConfig) -> ScoreResult:
    """Async implementation of score."""
    github, registry = _build_clients(config)
    resolver = PackageResolver(github, registry, concurrency=config.concurrency)
    calculator = _build_calculator(config)

    info = await resolver.resolve(package)
    return calculator.calculate(info)


def _display_detailed(result: ScoreResult, config: CptsConfig) -> None:
    color = _score_color(result.score)
    status = "[green]PASS[/green]" if result.passes(config.min_cpts) else "[red]FAIL[/red]"

    console.print()
    console.print(
        Panel(
            f"[bold][{color}]{result.score:.1f}[/{color}][/bold] / 100  Grade: [bold]{result.grade}[/bold]\n"
            f"Trust bonus: {result.trust_bonus:+.2f} (raw: {result.raw_trust_bonus:+.2f})\n"
            f"Min CPTS: {config.min_cpts}  Status: {status}",
            title=result.package,
            expand=False,
        )
    )
    console.print()

    table = Table(title="Metric Breakdown", show_header=True)
    table.add_column("Metric", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Weight", justify="right", style="dim")
    table.add_column("Contribution", justify="right")
    table.add_column("Rating")

    for name, metric in result.metric_results.items():
        if metric.failed:
            table.add_row(name, "-", "-", "-", f"[yellow]FAILED[/yellow] ({metric.error})")
            continue

        severity_color = SEVERITY_COLORS[metric.severity]
        table.add_row(
            name,
            f"[{severity_color}]{metric.normalized_score:.2f}[/{severity_color}]",
            f"{metric.weight:.1f}",
            f"{metric.weighted_score:.2f}",
            f"[{severity_color}]{metric.severity.value}[/{severity_color}]",
        )

    console.print(table)

    signals = [key for key, active in result.trust_breakdown.items() if active]
    if signals:
        console.print(f"[dim]Trust signals: {', '.join(signals)}[/dim]")
    console.print(f"[dim]Calculated: {result.calculated_at:%Y-%m-%d %H:%M:%S}[/dim]")


@app.command()
def check(
    dev: bool = typer.Option(False, "--dev", help="Include dev dependencies"),
    only: str | None = typer.Option(None, "--only", help="Only check this package"),
    fail_under: float | None = typer.Option(None, "--fail-under", help="Exit with 1 if any package scores below this"),
    output_format: CheckFormat = typer.Option(CheckFormat.TABLE, "--format", "-f", help="Output format"),
    project_dir: Path = typer.Option(Path("."), "--project-dir", "-d", help="Directory containing composer.lock"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Check the trust score of every locked dependency."""
    _configure_logging(verbose)
    config = _load_config(project_dir)

    if config.disabled:
        err_console.print("[yellow]CPTS is disabled via CPTS_DISABLE environment variable[/yellow]")
        raise typer.Exit(0)

    try:
        packages = read_lock_packages(project_dir / "composer.lock", include_dev=dev)
    except CptsError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    github, registry = _build_clients(config)

    if not github.is_authenticated() and len(packages) > UNAUTHENTICATED_WARN_PACKAGES:
        err_console.print("[yellow]Warning: No GITHUB_TOKEN set. Rate limit is 60 requests/hour.[/yellow]")
        err_console.print("[dim]Set GITHUB_TOKEN in .env for higher limits (5000/hour).[/dim]")

    if only is not None:
        packages = [name for name in packages if name == only]

    threshold = fail_under if fail_under is not None else config.min_cpts
    checker = DependencyChecker(
        resolver=PackageResolver(github, registry, concurrency=config.concurrency),
        calculator=_build_calculator(config),
        matcher=TrustedPackageMatcher(config.trusted_packages),
        threshold=threshold,
        concurrency=config.concurrency,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
        transient=True,
    ) as progress:
        progress.add_task(f"Checking {len(packages)} packages...", total=None)
        report = asyncio.run(checker.check(packages))

    if output_format == CheckFormat.JSON:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _display_report(report)
        _display_rate_limit(report, github)

    if fail_under is not None and report.failed > 0:
        raise typer.Exit(1)


def _display_report(report: CheckReport) -> None:
    table = Table(title="CPTS Check", show_header=True)
    table.add_column("Package", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Grade", justify="center")
    table.add_column("Status")

    status_styles = {
        CheckStatus.PASS: "green",
        CheckStatus.FAIL: "red",
        CheckStatus.TRUSTED: "cyan",
        CheckStatus.RATE_LIMITED: "yellow",
        CheckStatus.ERROR: "yellow",
    }

    for result in report.results:
        style = status_styles[result.status]
        score = f"{result.score:.1f}" if result.score is not None else "-"
        status = f"[{style}]{result.status.value}[/{style}]"
        if result.error:
            status += f" [dim]{result.error}[/dim]"
        table.add_row(result.name, score, result.grade, status)

    console.print(table)
    console.print(
        f"Checked {len(report.results)} packages: "
        f"[green]{report.passed} passed[/green], "
        f"[red]{report.failed} failed[/red], "
        f"[cyan]{report.trusted} trusted[/cyan], "
        f"[yellow]{report.errors} errors[/yellow]"
    )


def _display_rate_limit(report: CheckReport, github: SourceHostClient) -> None:
    remaining = github.get_remaining_rate_limit()
    if report.rate_limited or remaining < LOW_RATE_LIMIT:
        console.print()
        console.print("[red]GitHub API rate limit exhausted![/red]")
        console.print("[dim]Scores may be inaccurate. Set GITHUB_TOKEN in .env for 5000 requests/hour.[/dim]")
    elif not github.is_authenticated():
        console.print(
            f"[dim]GitHub API: {remaining} requests remaining (set GITHUB_TOKEN for higher limits)[/dim]"
        )


@app.command()
def trust(
    patterns: list[str] = typer.Argument(..., help="Package names or vendor/* patterns"),
    remove: bool = typer.Option(False, "--remove", "-r", help="Remove from the trusted list instead"),
    project_dir: Path = typer.Option(Path("."), "--project-dir", "-d", help="Directory containing composer.json"),
) -> None:
    """Add packages to (or remove them from) the trusted list in composer.json."""
    try:
        outcomes = update_trusted_packages(project_dir, patterns, remove=remove)
    except CptsError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    for pattern, outcome in outcomes:
        color = "green" if outcome in ("Added", "Removed") else "yellow"
        console.print(f"[{color}]{outcome}:[/{color}] {pattern}")

    console.print()
    console.print("[green]Updated composer.json[/green]")


@app.command()
def version() -> None:
    """Show the cpts version."""
    console.print(f"cpts {__version__}")


if __name__ == "__main__":
    app()
