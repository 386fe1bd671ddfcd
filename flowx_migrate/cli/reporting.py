"""
Rich rendering of engine outputs for the CLI.
"""

from typing import List

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from flowx_migrate.core.error_handler import ErrorInfo
from flowx_migrate.models.backup import Backup
from flowx_migrate.models.plan import ActionKind, MigrationAction
from flowx_migrate.models.results import Analysis, MigrationResult, RiskLevel, ValidationReport
from flowx_migrate.utils.helpers import format_bytes


RISK_STYLES = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
}

ACTION_STYLES = {
    ActionKind.CREATE: "green",
    ActionKind.OVERWRITE: "yellow",
    ActionKind.MERGE: "cyan",
    ActionKind.DELETE: "red",
    ActionKind.SKIP: "dim",
}


def render_analysis(console: Console, analysis: Analysis, detailed: bool = False) -> None:
    """Print an analysis summary, risks and recommendations."""
    summary = Text()
    summary.append(f"Project: {analysis.project_path}\n", style="bold")
    summary.append(f"Strategy: {analysis.strategy.value}\n")
    summary.append(f"Config root present: {'yes' if analysis.has_config_root else 'no'}\n")
    summary.append(f"Artifacts: {len(analysis.artifacts)}\n")
    summary.append(f"Readiness: {analysis.readiness_score:.0%}")
    console.print(Panel(summary, title="Migration Analysis", border_style="blue"))

    counts = analysis.kind_counts()
    table = Table(title="Artifacts by Kind", box=box.SIMPLE)
    table.add_column("Kind", style="cyan")
    table.add_column("Count", justify="right")
    for kind, count in counts.items():
        table.add_row(kind, str(count))
    console.print(table)

    if detailed:
        artifacts = Table(title="Artifacts", box=box.ROUNDED)
        artifacts.add_column("Path", style="cyan")
        artifacts.add_column("Kind")
        artifacts.add_column("Size", justify="right")
        for artifact in analysis.artifacts:
            artifacts.add_row(artifact.path, artifact.kind.value, format_bytes(artifact.size_bytes))
        console.print(artifacts)

        render_actions(console, "Migration Plan", analysis.plan.actions)

    if analysis.risks:
        console.print("\n[bold]Risks:[/bold]")
        for risk in analysis.risks:
            style = RISK_STYLES[risk.level]
            console.print(f"  [{style}]{risk.level.value.upper()}[/{style}] {risk.description}")
            if risk.mitigation:
                console.print(f"    [dim]{risk.mitigation}[/dim]")

    if analysis.recommendations:
        console.print("\n[bold]Recommendations:[/bold]")
        for recommendation in analysis.recommendations:
            console.print(f"  • {recommendation}")


def render_actions(console: Console, title: str, actions: List[MigrationAction]) -> None:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Action")
    table.add_column("Path", style="cyan")
    table.add_column("Reason", style="dim")
    for action in actions:
        style = ACTION_STYLES[action.kind]
        table.add_row(f"[{style}]{action.kind.value}[/{style}]", action.path, action.reason)
    console.print(table)


def render_result(console: Console, result: MigrationResult) -> None:
    """Print the outcome of a migration run."""
    if result.applied_actions:
        title = "Planned Actions (dry run)" if result.dry_run else "Applied Actions"
        render_actions(console, title, result.applied_actions)

    console.print(f"Skipped: {len(result.skipped_actions)}")
    if result.backup_ref:
        console.print(f"Backup: [cyan]{result.backup_ref.id}[/cyan]")

    for error in result.errors:
        console.print(f"[red]✗ {error.action.kind.value} {error.action.path}: {error.cause}[/red]")

    if result.validation_passed is True:
        console.print("[green]✓ Validation passed[/green]")
    elif result.validation_passed is False:
        console.print("[red]✗ Validation failed[/red]")
        for issue in result.validation_issues:
            console.print(f"  • [red]{issue}[/red]")

    if result.confirmation_required:
        console.print("[yellow]A real run would ask to confirm replacing or removing:[/yellow]")
        for path in result.confirmation_required:
            console.print(f"  • {path}")

    if result.dry_run:
        console.print("[yellow]Dry run: no files were changed[/yellow]")
    elif result.success:
        console.print("[green]✅ Migration completed successfully[/green]")
    else:
        console.print("[red]Migration completed with errors[/red]")


def render_validation(console: Console, report: ValidationReport, verbose: bool = False) -> None:
    """Print a validation report."""
    if report.passed:
        console.print("[green]✅ Validation passed[/green]")
    else:
        console.print(f"[red]✗ Validation failed with {len(report.issues)} issue(s)[/red]")

    if verbose:
        table = Table(box=box.SIMPLE)
        table.add_column("Check", style="cyan")
        table.add_column("Status")
        table.add_column("Details", style="dim")
        for check in report.checks:
            status = "[green]passed[/green]" if check.passed else "[red]failed[/red]"
            table.add_row(check.name, status, check.message or "")
        console.print(table)

    for issue in report.issues:
        console.print(f"  • [red]{issue}[/red]")
    if verbose:
        for warning in report.warnings:
            console.print(f"  • [yellow]{warning}[/yellow]")


def render_backups(console: Console, backups: List[Backup]) -> None:
    """Print backups, newest first."""
    if not backups:
        console.print("[yellow]No backups found[/yellow]")
        return

    table = Table(title="Available Backups", box=box.ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("Timestamp")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")
    for backup in backups:
        table.add_row(
            backup.id,
            backup.timestamp.isoformat(),
            str(len(backup.manifest)),
            format_bytes(backup.total_size),
        )
    console.print(table)


def render_error(console: Console, error_info: ErrorInfo, verbose: bool = False) -> None:
    """Print an error with its remediation steps."""
    text = Text()
    text.append(f"{type(error_info.error).__name__}: {error_info.error}\n", style="bold red")
    paths = getattr(error_info.error, "paths", None)
    if paths:
        for path in paths:
            text.append(f"  {path}\n", style="yellow")
    if error_info.remediation_steps:
        text.append("\nSuggested steps:\n", style="bold")
        for step in error_info.remediation_steps:
            text.append(f"  • {step}\n", style="dim")
    console.print(Panel(text, title=f"Error ({error_info.category.value})", border_style="red"))

    if verbose:
        console.print(f"[dim]{error_info.traceback_str}[/dim]")
