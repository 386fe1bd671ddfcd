"""
Migration Analyzer

Scans a project, classifies its configuration artifacts and builds the
migration plan for a strategy, together with risks and recommendations.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

import yaml

from flowx_migrate.analysis.scanner import ProjectScanner
from flowx_migrate.analysis.strategies import resolve_action
from flowx_migrate.core.exceptions import AnalysisError
from flowx_migrate.models.artifact import ArtifactKind, ConfigArtifact
from flowx_migrate.models.plan import ActionKind, MigrationAction, MigrationPlan, MigrationStrategy
from flowx_migrate.models.results import Analysis, MigrationRisk, RiskLevel
from flowx_migrate.rules.base import ClassificationRuleset, MergeFunction
from flowx_migrate.rules.flowx import FlowXRuleset
from flowx_migrate.utils.helpers import atomic_write_bytes
from flowx_migrate.utils.logging import LogCategory, get_logger


class MigrationAnalyzer:
    """Analyzes a project for migration readiness."""

    def __init__(
        self,
        ruleset: Optional[ClassificationRuleset] = None,
        strategy: MigrationStrategy = MigrationStrategy.SELECTIVE,
        merge_rules: Optional[Mapping[ArtifactKind, MergeFunction]] = None,
        exclude: Iterable[str] = (),
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the analyzer.

        Args:
            ruleset: Classification ruleset (defaults to FlowXRuleset)
            strategy: Strategy used to resolve plan actions
            merge_rules: Merge functions keyed by artifact kind; only the keys matter here
            exclude: Project-relative directories never scanned (e.g. the backup directory)
            logger: Logger for progress messages
        """
        self.ruleset = ruleset or FlowXRuleset()
        self.strategy = MigrationStrategy(strategy)
        self.merge_rules = dict(merge_rules or {})
        self.logger = logger or get_logger("analyzer")
        self.scanner = ProjectScanner(self.ruleset, exclude=exclude, logger=self.logger)

    async def analyze(self, project_root: Union[str, Path]) -> Analysis:
        """
        Scan the project and build its analysis.

        Raises:
            AnalysisError: If the project root is missing or unreadable
        """
        root = Path(project_root)
        self._check_root(root)

        self.logger.info(
            f"Analyzing project at {root} (strategy: {self.strategy.value})",
            extra={"category": LogCategory.ANALYSIS},
        )

        artifacts = self.scanner.scan(root)
        plan = self.build_plan(artifacts, self.strategy)

        current = sum(1 for a in artifacts.values() if a.kind == ArtifactKind.CURRENT)
        has_config_root = bool(self.ruleset.config_root) and (root / self.ruleset.config_root).is_dir()

        analysis = Analysis(
            project_path=str(root.resolve()),
            strategy=self.strategy,
            ruleset=self.ruleset.name,
            has_config_root=has_config_root,
            artifacts=list(artifacts.values()),
            plan=plan,
            readiness_score=(current / len(artifacts)) if artifacts else 0.0,
        )
        analysis.risks = self._assess_risks(analysis)
        analysis.recommendations = self._generate_recommendations(analysis)

        self.logger.debug(
            f"Found {len(artifacts)} artifacts, {len(plan.mutating_actions)} pending actions",
            extra={"category": LogCategory.ANALYSIS},
        )
        return analysis

    def _check_root(self, root: Path) -> None:
        if not root.exists():
            raise AnalysisError(f"Project path does not exist: {root}", details={"path": str(root)})
        if not root.is_dir():
            raise AnalysisError(f"Project path is not a directory: {root}", details={"path": str(root)})
        if not os.access(root, os.R_OK | os.X_OK):
            raise AnalysisError(f"Project path is not readable: {root}", details={"path": str(root)})

    def build_plan(
        self,
        artifacts: Mapping[str, ConfigArtifact],
        strategy: Optional[MigrationStrategy] = None,
    ) -> MigrationPlan:
        """
        Resolve every scanned artifact and ruleset target into a plan.

        Args:
            artifacts: Scanned artifacts keyed by path
            strategy: Strategy to apply (defaults to the analyzer's)

        Returns:
            Ordered, disjoint migration plan
        """
        strategy = MigrationStrategy(strategy or self.strategy)
        templates = self.ruleset.templates()
        actions: List[MigrationAction] = []

        for path in sorted(set(artifacts) | set(templates)):
            if self.scanner.is_excluded(path):
                continue
            artifact = artifacts.get(path)
            artifact_kind = artifact.kind if artifact else None
            is_target = path in templates

            counterpart = self.ruleset.custom_counterpart(path)
            has_custom_counterpart = (
                counterpart is not None
                and counterpart in artifacts
                and artifacts[counterpart].kind == ArtifactKind.CUSTOM
            )

            resolution = resolve_action(
                artifact_kind,
                strategy,
                is_target=is_target,
                has_custom_counterpart=has_custom_counterpart,
                merge_rules=self.merge_rules.keys(),
            )

            writes = resolution.kind in (ActionKind.CREATE, ActionKind.OVERWRITE, ActionKind.MERGE)
            actions.append(MigrationAction(
                kind=resolution.kind,
                path=path,
                reason=resolution.reason,
                artifact_kind=artifact_kind,
                content=templates[path] if writes else None,
                merge_rule=artifact_kind if resolution.kind == ActionKind.MERGE else None,
                expected_hash=artifact.content_hash if artifact else None,
                is_target=is_target,
            ))

        return MigrationPlan.build(actions, strategy=strategy)

    def _assess_risks(self, analysis: Analysis) -> List[MigrationRisk]:
        risks: List[MigrationRisk] = []

        for artifact in analysis.unknown_artifacts:
            risks.append(MigrationRisk(
                level=RiskLevel.MEDIUM,
                description=f"Unrecognized format: {artifact.path}",
                path=artifact.path,
                mitigation="File is always skipped and never overwritten",
            ))

        conflicting = analysis.conflicting_files
        if conflicting:
            risks.append(MigrationRisk(
                level=RiskLevel.HIGH,
                description=f"{len(conflicting)} managed files have custom modifications",
                mitigation="Use --preserve-custom or the selective strategy; files are backed up before migration",
            ))

        unmanaged = [a.path for a in analysis.custom_artifacts if a.path not in conflicting]
        if unmanaged:
            risks.append(MigrationRisk(
                level=RiskLevel.LOW,
                description=f"Found {len(unmanaged)} user-authored artifacts",
                mitigation="They are not managed by the ruleset and are left untouched",
            ))

        if any(a.kind == ArtifactKind.CURRENT for a in analysis.artifacts):
            risks.append(MigrationRisk(
                level=RiskLevel.MEDIUM,
                description="Project already has some current-format artifacts",
                mitigation="Consider the merge strategy to preserve customizations",
            ))

        if self.ruleset.config_root and not analysis.has_config_root:
            risks.append(MigrationRisk(
                level=RiskLevel.LOW,
                description=f"No existing {self.ruleset.config_root} folder found",
                mitigation="Fresh installation will be performed",
            ))

        return risks

    def _generate_recommendations(self, analysis: Analysis) -> List[str]:
        recommendations: List[str] = []

        if analysis.custom_artifacts:
            recommendations.append('Use "selective" or "merge" strategy to preserve customizations')
        elif not analysis.artifacts:
            recommendations.append('Use "full" strategy for clean installation')

        if analysis.artifacts:
            recommendations.append("Create a backup before migration (automatic unless --dry-run)")

        if analysis.custom_artifacts:
            names = ", ".join(a.path for a in analysis.custom_artifacts)
            recommendations.append(f"Review custom artifacts: {names}")

        if any(risk.level == RiskLevel.HIGH for risk in analysis.risks):
            recommendations.append("Run with --dry-run first to preview changes")

        return recommendations


def save_analysis(analysis: Analysis, destination: Union[str, Path]) -> Path:
    """
    Serialize the analysis to JSON, or YAML for .yaml/.yml destinations.

    Only the destination is written; the project tree is never touched.

    Returns:
        Path the analysis was written to
    """
    destination = Path(destination)
    data = analysis.model_dump(mode="json")

    if destination.suffix.lower() in (".yaml", ".yml"):
        payload = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    else:
        payload = json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    atomic_write_bytes(destination, payload.encode("utf-8"))
    return destination


def load_analysis(source: Union[str, Path]) -> Analysis:
    """Load an analysis written by save_analysis."""
    source = Path(source)
    with source.open("r", encoding="utf-8") as f:
        if source.suffix.lower() in (".yaml", ".yml"):
            data: Dict = yaml.safe_load(f)
        else:
            data = json.load(f)
    return Analysis.model_validate(data)
