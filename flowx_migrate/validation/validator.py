"""
Post-migration validation.

Re-scans a project with the same classification the analyzer uses and
checks that the tree is in the state a plan promised. Every failed
assertion is reported as an issue on the ValidationReport; validation
itself never raises for a bad tree.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from flowx_migrate.analysis.scanner import ProjectScanner
from flowx_migrate.models.artifact import ArtifactKind, ConfigArtifact
from flowx_migrate.models.backup import Backup
from flowx_migrate.models.plan import ActionKind, MigrationAction, MigrationPlan
from flowx_migrate.models.results import ValidationCheck, ValidationReport
from flowx_migrate.rules.base import ClassificationRuleset
from flowx_migrate.rules.flowx import FlowXRuleset
from flowx_migrate.utils.helpers import calculate_file_checksum, resolve_under
from flowx_migrate.utils.logging import LogCategory, get_logger


WRITE_KINDS = (ActionKind.CREATE, ActionKind.OVERWRITE, ActionKind.MERGE)


class MigrationValidator:
    """Checks a project tree against an executed plan or the ruleset targets."""

    def __init__(
        self,
        ruleset: Optional[ClassificationRuleset] = None,
        exclude: Iterable[str] = (),
        logger: Optional[logging.Logger] = None,
    ):
        self.ruleset = ruleset or FlowXRuleset()
        self.logger = logger or get_logger("validator")
        self.scanner = ProjectScanner(self.ruleset, exclude=exclude, logger=self.logger)

    async def validate(
        self,
        project_root: Union[str, Path],
        expected_plan: Optional[MigrationPlan] = None,
        backup: Optional[Backup] = None,
    ) -> ValidationReport:
        """
        Validate the project tree.

        Args:
            project_root: Project root directory
            expected_plan: Plan that was executed; without one the tree is
                checked against every ruleset target
            backup: Backup taken before the run; its hashes take precedence
                for paths that had to stay unchanged

        Returns:
            ValidationReport, passed when it has no issues
        """
        root = Path(project_root)
        report = ValidationReport()

        if not root.is_dir():
            report.issues.append(f"Project path is not a directory: {root}")
            report.checks.append(ValidationCheck(name="project", passed=False, message=report.issues[-1]))
            return report

        artifacts = self.scanner.scan(root)

        if expected_plan is not None:
            managed = set(expected_plan.touched_paths())
            self._run_check(report, "plan", self._check_plan(root, artifacts, expected_plan, backup))
        else:
            managed = set(self.ruleset.templates())
            self._run_check(report, "targets", self._check_targets(artifacts, report))

        self._run_check(report, "integrity", self._check_integrity(root, artifacts, managed, report))

        level = logging.INFO if report.passed else logging.WARNING
        self.logger.log(
            level,
            f"Validation {'passed' if report.passed else 'failed'}: "
            f"{len(report.issues)} issues, {len(report.warnings)} warnings",
            extra={"category": LogCategory.VALIDATION},
        )
        for issue in report.issues:
            self.logger.debug(f"Issue: {issue}", extra={"category": LogCategory.VALIDATION})
        return report

    def _run_check(self, report: ValidationReport, name: str, issues: List[str]) -> None:
        report.issues.extend(issues)
        report.checks.append(ValidationCheck(
            name=name,
            passed=not issues,
            message=None if not issues else f"{len(issues)} issue(s)",
        ))

    def _check_plan(
        self,
        root: Path,
        artifacts: Dict[str, ConfigArtifact],
        plan: MigrationPlan,
        backup: Optional[Backup],
    ) -> List[str]:
        issues: List[str] = []

        for action in plan.actions:
            if action.kind in WRITE_KINDS:
                artifact = artifacts.get(action.path)
                if artifact is None:
                    issues.append(f"{action.path}: expected a current-format artifact, found nothing")
                elif artifact.kind != ArtifactKind.CURRENT:
                    issues.append(
                        f"{action.path}: expected a current-format artifact, found {artifact.kind.value}"
                    )
            elif action.kind == ActionKind.DELETE:
                if resolve_under(root, action.path).exists():
                    issues.append(f"{action.path}: expected to be deleted but still exists")
            else:
                issue = self._check_unchanged(root, action, backup)
                if issue:
                    issues.append(issue)

        return issues

    def _check_unchanged(self, root: Path, action: MigrationAction, backup: Optional[Backup]) -> Optional[str]:
        expected = action.expected_hash
        entry = backup.entry_for(action.path) if backup else None
        if entry is not None:
            expected = entry.blob if entry.existed else None

        target = resolve_under(root, action.path)
        if expected is None:
            if target.exists():
                return f"{action.path}: was skipped but now exists"
            return None
        if not expected:
            # Unreadable at scan time; nothing to compare against.
            return None
        if not target.is_file():
            return f"{action.path}: was skipped but is now missing"

        try:
            actual = calculate_file_checksum(target)
        except OSError as e:
            return f"{action.path}: cannot be read ({e})"
        if actual != expected:
            return f"{action.path}: was skipped but its content changed"
        return None

    def _check_targets(self, artifacts: Dict[str, ConfigArtifact], report: ValidationReport) -> List[str]:
        issues: List[str] = []

        for path in sorted(self.ruleset.templates()):
            if self.scanner.is_excluded(path):
                continue
            artifact = artifacts.get(path)
            counterpart = self.ruleset.custom_counterpart(path)
            custom_counterpart = (
                counterpart is not None
                and counterpart in artifacts
                and artifacts[counterpart].kind == ArtifactKind.CUSTOM
            )

            if artifact is None:
                if custom_counterpart:
                    report.warnings.append(f"{path}: provided by custom {counterpart}")
                else:
                    issues.append(f"{path}: missing")
            elif artifact.kind == ArtifactKind.CUSTOM:
                report.warnings.append(f"{path}: custom content kept in place of the current format")
            elif artifact.kind != ArtifactKind.CURRENT:
                issues.append(f"{path}: expected current format, found {artifact.kind.value}")

        return issues

    def _check_integrity(
        self,
        root: Path,
        artifacts: Dict[str, ConfigArtifact],
        managed: Set[str],
        report: ValidationReport,
    ) -> List[str]:
        issues: List[str] = []

        for path, artifact in artifacts.items():
            problem = self._integrity_problem(root, artifact)
            if problem is None:
                if artifact.kind == ArtifactKind.UNKNOWN:
                    report.warnings.append(f"{path}: unrecognized format")
                continue

            message = f"{path}: {problem}"
            if path in managed:
                issues.append(message)
            else:
                report.warnings.append(message)

        return issues

    def _integrity_problem(self, root: Path, artifact: ConfigArtifact) -> Optional[str]:
        if not self.scanner.is_regular_file(root, artifact.path):
            return "not a regular file inside the project"
        if artifact.size_bytes == 0:
            return "file is empty"
        try:
            data = resolve_under(root, artifact.path).read_bytes()
        except OSError as e:
            return f"cannot be read ({e})"
        if not data.strip():
            return "file is empty"
        if b"\0" in data:
            return "contains NUL bytes"
        return None
