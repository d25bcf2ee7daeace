"""Command-line interface for progressive profiles."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import Settings
from .database.connection import DatabaseConnectionError, DatabasePool
from .database.postgres import PostgresProfileStore
from .errors import ProfileEngineError
from .models.analytics import Severity
from .service import ProfileService

app = typer.Typer(
    name="progressive-profiles",
    help="Progressive Profiles - multi-observer learning profile consolidation and analytics",
    add_completion=False,
)

console = Console()

T = TypeVar("T")

SEVERITY_COLORS = {Severity.HIGH: "red", Severity.MEDIUM: "yellow", Severity.LOW: "green"}


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging from settings."""
    settings = Settings.load()
    level = "DEBUG" if verbose or settings.app.debug else settings.app.log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def _run(action: Callable[[ProfileService, PostgresProfileStore], Awaitable[T]]) -> T:
    """Open the database pool, run one action against the service and close the pool."""
    settings = Settings.load()

    async def runner() -> T:
        pool = DatabasePool(settings.database)
        await pool.initialize()
        try:
            store = PostgresProfileStore(pool, atomic=settings.store.prefer_atomic_merge)
            return await action(ProfileService(store, settings), store)
        finally:
            await pool.close()

    try:
        return asyncio.run(runner())
    except (ProfileEngineError, DatabaseConnectionError) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def version():
    """Show version information."""
    from progressive_profiles import __version__

    console.print(Panel.fit(
        f"[bold blue]Progressive Profiles[/bold blue]\n"
        f"Version: [green]{__version__}[/green]",
        title="Version Info"
    ))


@app.command("init-db")
def init_db():
    """Create the profile tables if they do not exist."""
    console.print("[yellow]Ensuring database schema...[/yellow]")

    async def action(service: ProfileService, store: PostgresProfileStore) -> bool:
        await store.ensure_schema()
        return await store.pool.health_check()

    healthy = _run(action)
    if healthy:
        console.print("[green]✅ Schema ready and database reachable[/green]")
    else:
        console.print("[red]❌ Schema created but health check failed[/red]")
        raise typer.Exit(code=1)


@app.command()
def submit(
    payload_file: Path = typer.Argument(..., exists=True, readable=True, help="Submission payload (JSON)"),
):
    """Submit one assessment and show the consolidated profile."""
    try:
        payload = json.loads(payload_file.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]❌ Invalid JSON in {payload_file}: {e}[/red]")
        raise typer.Exit(code=1)

    result = _run(lambda service, store: service.submit_assessment(payload))
    profile = result.profile
    summary = result.contribution_summary

    table = Table(title=f"{profile.subject_name} ({profile.id})")
    table.add_column("Dimension")
    table.add_column("Consolidated", justify="right")
    table.add_column("This submission", justify="right")
    for dimension, score in profile.consolidated_scores.items():
        submitted = summary.scores.get(dimension)
        table.add_row(dimension, f"{score:.2f}", f"{submitted:.2f}" if submitted is not None else "-")
    console.print(table)

    console.print(Panel.fit(
        f"New profile: [bold]{'yes' if result.is_new_profile else 'no'}[/bold]\n"
        f"Confidence: [green]{profile.confidence_percentage:.1f}%[/green]\n"
        f"Completeness: [green]{profile.completeness_percentage:.1f}%[/green]\n"
        f"Assessments: {profile.total_assessments}\n"
        f"Label: {profile.personality_label or '-'}",
        title="Consolidation"
    ))
    for warning in result.warnings:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")


@app.command("status")
def status(profile_id: str = typer.Argument(..., help="Profile id")):
    """Show how complete and corroborated a profile is."""
    report = _run(lambda service, store: service.get_consolidation_status(profile_id))

    console.print(Panel.fit(
        f"[bold]{report.subject_name}[/bold] - {report.personality_label or 'Unlabeled'}\n"
        f"Assessments: {report.total_assessments} {report.role_counts}\n"
        f"Confidence: {report.confidence_percentage:.1f}%  Completeness: {report.completeness_percentage:.1f}%\n"
        f"Strengths: {', '.join(report.strengths) or '-'}\n"
        f"Growth areas: {', '.join(report.growth_areas) or '-'}\n"
        f"Missing: {', '.join(report.missing_dimensions) or '-'}",
        title="Consolidation Status"
    ))
    for recommendation in report.recommendations:
        console.print(f"• {recommendation}")


@app.command("risk-report")
def risk_report(
    profile_id: str = typer.Argument(..., help="Profile id"),
    cohort: Optional[List[str]] = typer.Option(None, "--cohort", "-c", help="Profile ids of the comparison cohort"),
):
    """List risk factors for a profile, most severe first."""
    risks = _run(lambda service, store: service.get_risk_report(profile_id, cohort))

    if not risks:
        console.print("[green]No risk factors detected[/green]")
        return

    for risk in risks:
        color = SEVERITY_COLORS[risk.severity]
        body = "\n".join(
            [risk.description, ""]
            + [f"• {indicator}" for indicator in risk.indicators]
            + ["", "[bold]Interventions[/bold]"]
            + [f"• {intervention}" for intervention in risk.interventions]
        )
        console.print(Panel(
            body,
            title=f"[{color}]{risk.type.value} ({risk.severity.value}, {risk.timeline.value})[/{color}]",
        ))


@app.command()
def trend(
    profile_id: str = typer.Argument(..., help="Profile id"),
    dimension: str = typer.Argument(..., help="Skill dimension, e.g. 'Communication'"),
    horizon: int = typer.Option(4, "--horizon", "-h", min=0, help="Steps ahead to predict"),
):
    """Extrapolate a dimension's trend."""
    prediction = _run(lambda service, store: service.get_trend(profile_id, dimension, horizon))

    if prediction.insufficient_data:
        console.print(
            f"[yellow]Insufficient data for {prediction.dimension}: "
            f"{prediction.sample_count} sample(s), need at least 3[/yellow]"
        )
        return

    console.print(Panel.fit(
        f"Direction: [bold]{prediction.direction.value}[/bold] (slope {prediction.slope})\n"
        f"Predicted in {prediction.horizon} step(s): [green]{prediction.predicted_value}[/green]\n"
        f"Confidence: {prediction.confidence}%  Samples: {prediction.sample_count}",
        title=f"Trend: {prediction.dimension}"
    ))


@app.command()
def compatibility(
    profile_a: str = typer.Argument(..., help="First profile id"),
    profile_b: str = typer.Argument(..., help="Second profile id"),
):
    """Score how well two subjects work together (0-10)."""
    score = _run(lambda service, store: service.get_compatibility(profile_a, profile_b))
    console.print(f"Compatibility: [bold green]{score:.1f}[/bold green] / 10")


@app.command()
def classroom(profile_ids: List[str] = typer.Argument(..., help="Profile ids in the classroom")):
    """Summarize learning styles, engagement and risk for a classroom."""
    summary = _run(lambda service, store: service.get_classroom_analytics(profile_ids))

    if summary.profile_count == 0:
        console.print("[yellow]No profiles found[/yellow]")
        return

    styles = Table(title=f"Learning styles ({summary.profile_count} students)")
    styles.add_column("Style")
    styles.add_column("Count", justify="right")
    styles.add_column("%", justify="right")
    for share in summary.learning_styles.distribution:
        styles.add_row(share.style.value, str(share.count), f"{share.percentage:g}")
    console.print(styles)

    engagement = summary.engagement
    risk = summary.risk
    console.print(Panel.fit(
        f"Engagement: {engagement.overall_engagement if engagement.overall_engagement is not None else '-'}"
        f"  Participation: {engagement.overall_participation if engagement.overall_participation is not None else '-'}\n"
        f"Risk: [red]{risk.high} high[/red], [yellow]{risk.medium} medium[/yellow], "
        f"[green]{risk.low} low[/green] ({risk.risk_percentage:g}% at risk)",
        title="Classroom"
    ))
    for recommendation in summary.recommendations:
        console.print(f"• {recommendation}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
