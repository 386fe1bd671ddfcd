"""
Migration runner.

Executes a migration plan against a project: downgrades custom targets when
asked to preserve them, asks for confirmation before destroying recently
edited files, takes a write-ahead backup, applies the actions in plan order
and validates the result.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Union

from flowx_migrate.analysis.analyzer import MigrationAnalyzer
from flowx_migrate.backup.rollback import RollbackManager
from flowx_migrate.backup.storage import BackupStore
from flowx_migrate.core.exceptions import ConfirmationRequiredError, MutationError
from flowx_migrate.models.artifact import ArtifactKind
from flowx_migrate.models.backup import Backup
from flowx_migrate.models.config import DEFAULT_BACKUP_DIR, MigrationOptions
from flowx_migrate.models.plan import ActionKind, MigrationAction, MigrationPlan, MigrationStrategy
from flowx_migrate.models.results import ActionError, Analysis, MigrationResult, ValidationReport
from flowx_migrate.rules.base import ClassificationRuleset, MergeFunction
from flowx_migrate.rules.flowx import FlowXRuleset
from flowx_migrate.utils.helpers import (
    atomic_write_bytes,
    format_bytes,
    normalize_relative_path,
    resolve_under,
    utc_from_timestamp,
)
from flowx_migrate.utils.logging import LogCategory, get_logger
from flowx_migrate.validation.validator import MigrationValidator


# Receives the paths that need confirmation; returns True to proceed.
ConfirmFunction = Callable[[List[str]], bool]

DESTRUCTIVE_KINDS = (ActionKind.OVERWRITE, ActionKind.DELETE)


class MigrationRunner:
    """Applies migration plans to one project."""

    def __init__(
        self,
        project_path: Union[str, Path],
        backup_dir: Union[str, Path] = DEFAULT_BACKUP_DIR,
        ruleset: Optional[ClassificationRuleset] = None,
        merge_rules: Optional[Mapping[ArtifactKind, MergeFunction]] = None,
        confirm: Optional[ConfirmFunction] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the runner.

        Args:
            project_path: Project root directory
            backup_dir: Backup directory, relative to the project unless absolute
            ruleset: Classification ruleset (defaults to FlowXRuleset)
            merge_rules: Merge functions keyed by the artifact kind they apply to
            confirm: Called with the paths that need confirmation before a run
            logger: Logger for progress and reports
        """
        self.project_path = Path(project_path)
        self.backup_dir = Path(backup_dir)
        self.ruleset = ruleset or FlowXRuleset()
        self.merge_rules = dict(merge_rules or {})
        self.confirm = confirm
        self.logger = logger or get_logger("runner")

        self.store = BackupStore(self.backup_dir, logger=self.logger)
        self.rollback_manager = RollbackManager(logger=self.logger)
        self.validator = MigrationValidator(self.ruleset, exclude=self._excluded_paths(), logger=self.logger)

        self.last_analysis: Optional[Analysis] = None
        self.last_report: Optional[ValidationReport] = None

    def _excluded_paths(self) -> List[str]:
        backup_dir = self.backup_dir
        if backup_dir.is_absolute():
            try:
                backup_dir = backup_dir.resolve().relative_to(self.project_path.resolve())
            except ValueError:
                return []
        try:
            return [normalize_relative_path(backup_dir.as_posix())]
        except ValueError:
            # Outside the project
            return []

    async def analyze(self, strategy: MigrationStrategy = MigrationStrategy.SELECTIVE) -> Analysis:
        """Analyze the project with this runner's ruleset and merge rules."""
        analyzer = MigrationAnalyzer(
            ruleset=self.ruleset,
            strategy=strategy,
            merge_rules=self.merge_rules,
            exclude=self._excluded_paths(),
            logger=self.logger,
        )
        self.last_analysis = await analyzer.analyze(self.project_path)
        return self.last_analysis

    async def run(
        self,
        plan: Optional[MigrationPlan] = None,
        options: Optional[MigrationOptions] = None,
    ) -> MigrationResult:
        """
        Execute a migration.

        Args:
            plan: Plan to execute; analyzed with options.strategy when omitted
            options: Run options

        Returns:
            MigrationResult describing what was (or would be) applied

        Raises:
            AnalysisError: If the project cannot be analyzed
            ConfirmationRequiredError: If confirmation is needed and not given;
                dry runs only report the paths on the result
            BackupError: If the write-ahead backup fails; nothing is mutated
        """
        options = options or MigrationOptions()
        if plan is None:
            plan = (await self.analyze(options.strategy)).plan

        if options.preserve_custom:
            plan = self._preserve_custom(plan)

        result = MigrationResult(
            project_path=str(self.project_path),
            strategy=plan.strategy,
            dry_run=options.dry_run,
            skipped_actions=plan.skipped_actions,
        )

        if options.dry_run:
            if not options.force:
                result.confirmation_required = await self.paths_needing_confirmation(plan)
            result.applied_actions = plan.mutating_actions
            self.logger.info(
                f"Dry run: {len(result.applied_actions)} actions would be applied",
                extra={"category": LogCategory.MIGRATION},
            )
            return result

        if not options.force:
            await self._require_confirmation(plan)

        result.backup_ref = await self.store.snapshot(plan.touched_paths(), self.project_path)

        for action in plan.mutating_actions:
            try:
                self._apply(action)
            except MutationError as e:
                self.logger.error(
                    f"Failed to {action.kind.value} {action.path}: {e.message}",
                    extra={"category": LogCategory.MIGRATION},
                )
                result.errors.append(ActionError(action=action, cause=e.message, error_type=type(e).__name__))
                continue
            self.logger.debug(
                f"{action.kind.value} {action.path}",
                extra={"category": LogCategory.MIGRATION},
            )
            result.applied_actions.append(action)

        if not options.skip_validation:
            backup = self.store.load(self.project_path, result.backup_ref.id)
            report = await self.validator.validate(self.project_path, expected_plan=plan, backup=backup)
            self.last_report = report
            result.validation_passed = report.passed
            result.validation_issues = list(report.issues)

        self.logger.info(
            f"Migration finished: {len(result.applied_actions)} applied, "
            f"{len(result.skipped_actions)} skipped, {len(result.errors)} failed",
            extra={"category": LogCategory.MIGRATION},
        )
        return result

    def _preserve_custom(self, plan: MigrationPlan) -> MigrationPlan:
        actions = [
            action.downgrade("custom artifact preserved")
            if action.is_mutating and action.artifact_kind == ArtifactKind.CUSTOM
            else action
            for action in plan.actions
        ]
        return MigrationPlan.build(actions, strategy=plan.strategy)

    async def _require_confirmation(self, plan: MigrationPlan) -> None:
        paths = await self.paths_needing_confirmation(plan)
        if not paths:
            return
        if self.confirm is not None and self.confirm(paths):
            return
        raise ConfirmationRequiredError(
            f"{len(paths)} file(s) changed since their last backup; confirmation required",
            paths=paths,
        )

    async def paths_needing_confirmation(self, plan: MigrationPlan) -> List[str]:
        """
        Overwrite and delete targets modified after the newest backup holding them.

        Paths that were never backed up need no confirmation.
        """
        backups = await self.store.list(self.project_path)
        paths: List[str] = []

        for action in plan.actions:
            if action.kind not in DESTRUCTIVE_KINDS:
                continue
            latest = next((b for b in backups if b.entry_for(action.path) is not None), None)
            if latest is None:
                continue
            try:
                modified = utc_from_timestamp(resolve_under(self.project_path, action.path).stat().st_mtime)
            except OSError:
                continue
            if modified > latest.timestamp:
                paths.append(action.path)

        return paths

    def _apply(self, action: MigrationAction) -> None:
        target = resolve_under(self.project_path, action.path)

        try:
            if action.kind == ActionKind.DELETE:
                target.unlink(missing_ok=True)
            elif action.kind == ActionKind.MERGE:
                atomic_write_bytes(target, self._merge(action, target).encode("utf-8"))
            elif action.kind in (ActionKind.CREATE, ActionKind.OVERWRITE):
                if action.content is None:
                    raise MutationError(f"No content for {action.path}", path=action.path)
                atomic_write_bytes(target, action.content.encode("utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise MutationError(str(e), path=action.path)

    def _merge(self, action: MigrationAction, target: Path) -> str:
        merge = self.merge_rules.get(action.merge_rule) if action.merge_rule else None
        if merge is None:
            raise MutationError(f"No merge rule for {action.merge_rule}", path=action.path)

        existing = target.read_text(encoding="utf-8")
        try:
            merged = merge(action.path, existing, action.content or "")
        except Exception as e:
            raise MutationError(f"Merge rule failed: {e}", path=action.path)
        if not isinstance(merged, str):
            raise MutationError("Merge rule did not return text", path=action.path)
        return merged

    async def rollback(self, timestamp: Optional[Union[str, datetime]] = None) -> Backup:
        """
        Restore the project from the newest backup, or the newest not after timestamp.

        Raises:
            RollbackError: If no backup qualifies or it cannot be restored
        """
        return await self.rollback_manager.rollback(self.project_path, self.backup_dir, timestamp)

    async def validate(self, verbose: bool = False) -> bool:
        """Validate the project against the ruleset targets. The report is kept on last_report."""
        report = await self.validator.validate(self.project_path)
        self.last_report = report

        if verbose:
            for check in report.checks:
                status = "passed" if check.passed else "failed"
                self.logger.info(f"Check {check.name}: {status}", extra={"category": LogCategory.VALIDATION})
            for issue in report.issues:
                self.logger.info(f"Issue: {issue}", extra={"category": LogCategory.VALIDATION})
            for warning in report.warnings:
                self.logger.info(f"Warning: {warning}", extra={"category": LogCategory.VALIDATION})

        return report.passed

    async def list_backups(self) -> List[Backup]:
        """Backups for this project, newest first."""
        backups = await self.store.list(self.project_path)
        if not backups:
            self.logger.info("No backups found", extra={"category": LogCategory.BACKUP})
        for backup in backups:
            self.logger.info(
                f"{backup.id}  {len(backup.manifest)} files  {format_bytes(backup.total_size)}",
                extra={"category": LogCategory.BACKUP},
            )
        return backups
