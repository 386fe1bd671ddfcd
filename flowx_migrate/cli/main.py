"""
Main CLI entry point for flowx-migrate.

This module provides the command-line interface using Click with Rich
formatting. Commands build engine inputs, drive the async engine with
asyncio.run and map engine errors to process exit codes.
"""

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import click
from rich.console import Console

from flowx_migrate import __version__
from flowx_migrate.analysis.analyzer import save_analysis
from flowx_migrate.backup.storage import parse_timestamp
from flowx_migrate.cli.config_persistence import ConfigurationPersistence
from flowx_migrate.cli.reporting import (
    render_analysis,
    render_backups,
    render_error,
    render_result,
    render_validation,
)
from flowx_migrate.core.error_handler import EXIT_CODES, ErrorCategory, ErrorContext, ErrorHandler
from flowx_migrate.core.exceptions import ConfigurationError, MigrationEngineError, ValidationError
from flowx_migrate.models.artifact import ArtifactKind
from flowx_migrate.models.config import EngineConfig, MigrationOptions
from flowx_migrate.models.plan import MigrationStrategy
from flowx_migrate.models.results import ValidationReport
from flowx_migrate.rules import load_merge_rules, load_ruleset
from flowx_migrate.runner.runner import ConfirmFunction, MigrationRunner
from flowx_migrate.utils.logging import get_logger, setup_logging

console = Console()

STRATEGY_CHOICES = [strategy.value for strategy in MigrationStrategy]
LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _prepare(ctx: click.Context, path: str) -> EngineConfig:
    """Load the project's configuration and set up logging for a command."""
    options = ctx.obj
    persistence = ConfigurationPersistence()
    try:
        config = persistence.load_for_project(path, options.get('config'))
    except ConfigurationError as e:
        _fail(ctx, e, "load configuration", path)

    if options.get('verbose'):
        persistence.show_configuration_summary(config)

    if options.get('log_level'):
        level = options['log_level']
    elif options.get('verbose'):
        level = 'DEBUG'
    else:
        level = config.log_level

    setup_logging(level=level, log_file=options.get('log_file') or config.log_file)
    return config


def _fail(ctx: click.Context, error: Exception, operation: str, path: Optional[str] = None):
    """Report an error and exit with its category's exit code."""
    error_info = ErrorHandler(logger=get_logger("cli")).handle_error(
        error, ErrorContext(operation=operation, project_path=path)
    )
    render_error(console, error_info, verbose=ctx.obj.get('verbose', False))
    sys.exit(error_info.exit_code)


def _validation_error(report: ValidationReport) -> ValidationError:
    failed = [check.name for check in report.checks if not check.passed]
    return ValidationError(
        f"Validation failed in {', '.join(failed)} with {len(report.issues)} issue(s)",
        failed_checks=failed,
        details={"issues": list(report.issues)},
    )


def _parse_merge_rules(values: Tuple[str, ...]) -> Dict[ArtifactKind, str]:
    rules: Dict[ArtifactKind, str] = {}
    for value in values:
        kind, separator, target = value.partition("=")
        if not separator or ":" not in target:
            raise ConfigurationError(f"Invalid merge rule '{value}', expected KIND=module:attribute")
        try:
            rules[ArtifactKind(kind.strip().lower())] = target.strip()
        except ValueError:
            raise ConfigurationError(f"Unknown artifact kind in merge rule: {kind}")
    return rules


def _prompt_confirmation(paths: List[str]) -> bool:
    console.print("[yellow]These files changed after their last backup and would be replaced or removed:[/yellow]")
    for path in paths:
        console.print(f"  • {path}")
    return click.confirm("Proceed with the migration?", default=False)


def _build_runner(
    config: EngineConfig,
    path: str,
    backup: Optional[str] = None,
    extra_merge_rules: Optional[Dict[ArtifactKind, str]] = None,
    confirm: Optional[ConfirmFunction] = None,
) -> MigrationRunner:
    merge_rules = dict(config.merge_rules)
    merge_rules.update(extra_merge_rules or {})
    return MigrationRunner(
        project_path=path,
        backup_dir=backup or config.backup_dir,
        ruleset=load_ruleset(config.ruleset),
        merge_rules=load_merge_rules(merge_rules),
        confirm=confirm,
        logger=get_logger("engine"),
    )


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False), help='Logging level')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Write logs to this file')
@click.option('--config', '-c', type=click.Path(exists=True, dir_okay=False), help='Configuration file path')
@click.pass_context
def main(
    ctx: click.Context,
    version: bool,
    verbose: bool,
    log_level: Optional[str],
    log_file: Optional[str],
    config: Optional[str],
):
    """
    FlowX configuration migration tool.

    Analyzes a project's prompt configuration, migrates it to the current
    format with automatic backups, validates the result and rolls back on
    request.
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['log_level'] = log_level.upper() if log_level else None
    ctx.obj['log_file'] = log_file
    ctx.obj['config'] = config

    if version:
        console.print(f"flowx-migrate version {__version__}")
        sys.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.argument('path', default='.', type=click.Path(file_okay=False))
@click.option('--detailed', '-d', is_flag=True, help='Show every artifact and planned action')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Save the analysis (.json, .yaml)')
@click.option('--strategy', '-s', type=click.Choice(STRATEGY_CHOICES), help='Strategy used for the plan')
@click.pass_context
def analyze(ctx: click.Context, path: str, detailed: bool, output: Optional[str], strategy: Optional[str]):
    """Analyze a project for migration."""
    config = _prepare(ctx, path)
    console.print(f"[green]Analyzing {Path(path).resolve()}...[/green]")

    try:
        runner = _build_runner(config, path)
        analysis = asyncio.run(runner.analyze(MigrationStrategy(strategy or config.strategy)))
        render_analysis(console, analysis, detailed=detailed)

        if output:
            saved = save_analysis(analysis, output)
            console.print(f"[green]✓ Analysis saved to {saved}[/green]")
    except MigrationEngineError as e:
        _fail(ctx, e, "analyze", path)
    except OSError as e:
        _fail(ctx, e, "save analysis", path)


@main.command()
@click.argument('path', default='.', type=click.Path(file_okay=False))
@click.option('--strategy', '-s', type=click.Choice(STRATEGY_CHOICES), help='Migration strategy (default: selective)')
@click.option('--backup', '-b', help='Backup directory (default: .claude-backup)')
@click.option('--force', '-f', is_flag=True, help='Skip confirmation for recently modified files')
@click.option('--dry-run', is_flag=True, help='Show what would change without writing anything or prompting')
@click.option('--preserve-custom', is_flag=True, help='Never overwrite or delete user-authored files')
@click.option('--skip-validation', is_flag=True, help='Do not validate after migrating')
@click.option('--merge-rule', 'merge_rule', multiple=True, metavar='KIND=MODULE:ATTR',
              help='Merge function for an artifact kind (repeatable)')
@click.pass_context
def migrate(
    ctx: click.Context,
    path: str,
    strategy: Optional[str],
    backup: Optional[str],
    force: bool,
    dry_run: bool,
    preserve_custom: bool,
    skip_validation: bool,
    merge_rule: Tuple[str, ...],
):
    """Migrate a project to the current configuration format."""
    config = _prepare(ctx, path)
    options = MigrationOptions(
        strategy=MigrationStrategy(strategy or config.strategy),
        dry_run=dry_run,
        force=force,
        preserve_custom=preserve_custom,
        skip_validation=skip_validation,
    )

    if ctx.obj.get('verbose'):
        console.print(f"[dim]Strategy: {options.strategy.value}[/dim]")
        console.print(f"[dim]Backup directory: {backup or config.backup_dir}[/dim]")
        console.print(f"[dim]Dry run: {dry_run}[/dim]")

    try:
        runner = _build_runner(
            config,
            path,
            backup=backup,
            extra_merge_rules=_parse_merge_rules(merge_rule),
            confirm=None if force else _prompt_confirmation,
        )
        result = asyncio.run(runner.run(options=options))
    except MigrationEngineError as e:
        _fail(ctx, e, "migrate", path)

    render_result(console, result)

    if result.errors:
        sys.exit(EXIT_CODES[ErrorCategory.MUTATION])
    if result.validation_passed is False:
        _fail(ctx, _validation_error(runner.last_report), "migrate", path)


@main.command()
@click.argument('path', default='.', type=click.Path(file_okay=False))
@click.option('--backup', '-b', help='Backup directory (default: .claude-backup)')
@click.option('--timestamp', '-t', help='Restore the newest backup not after this time (ISO 8601 or backup id)')
@click.option('--force', is_flag=True, help='Force rollback without confirmation')
@click.pass_context
def rollback(ctx: click.Context, path: str, backup: Optional[str], timestamp: Optional[str], force: bool):
    """Roll back a migration from a backup."""
    config = _prepare(ctx, path)

    if timestamp:
        try:
            parse_timestamp(timestamp)
        except ValueError:
            raise click.BadParameter(f"not a timestamp: {timestamp}", param_hint="--timestamp")

    try:
        runner = _build_runner(config, path, backup=backup)
        target = asyncio.run(runner.store.find(runner.project_path, timestamp))

        console.print(f"[yellow]Rolling back to backup {target.id} ({len(target.manifest)} files)[/yellow]")
        if not force:
            if not click.confirm("Are you sure you want to rollback this migration?"):
                console.print("[red]Rollback cancelled[/red]")
                return

        restored = asyncio.run(runner.rollback(target.timestamp))
    except MigrationEngineError as e:
        _fail(ctx, e, "rollback", path)

    console.print(f"[green]✅ Restored backup {restored.id}[/green]")


@main.command()
@click.argument('path', default='.', type=click.Path(file_okay=False))
@click.option('--verbose', '-v', is_flag=True, help='Show every check and warning')
@click.pass_context
def validate(ctx: click.Context, path: str, verbose: bool):
    """Validate a project's configuration."""
    config = _prepare(ctx, path)
    verbose = verbose or ctx.obj.get('verbose', False)

    try:
        runner = _build_runner(config, path)
        passed = asyncio.run(runner.validate(verbose=verbose))
    except MigrationEngineError as e:
        _fail(ctx, e, "validate", path)

    render_validation(console, runner.last_report, verbose=verbose)
    if not passed:
        _fail(ctx, _validation_error(runner.last_report), "validate", path)


@main.command('list-backups')
@click.argument('path', default='.', type=click.Path(file_okay=False))
@click.option('--backup', '-b', help='Backup directory (default: .claude-backup)')
@click.pass_context
def list_backups(ctx: click.Context, path: str, backup: Optional[str]):
    """List available backups, newest first."""
    config = _prepare(ctx, path)

    try:
        runner = _build_runner(config, path, backup=backup)
        backups = asyncio.run(runner.list_backups())
    except MigrationEngineError as e:
        _fail(ctx, e, "list backups", path)

    render_backups(console, backups)


if __name__ == '__main__':
    main()
