"""
Result models for the FlowX migration engine.

This module defines the analysis report, validation report and
migration result records produced by the engine.
"""

from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from flowx_migrate.models.artifact import ArtifactKind, ConfigArtifact
from flowx_migrate.models.backup import BackupRef
from flowx_migrate.models.plan import MigrationAction, MigrationPlan, MigrationStrategy


class RiskLevel(str, Enum):
    """Migration risk levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MigrationRisk(BaseModel):
    """A risk surfaced by the analyzer."""
    level: RiskLevel
    description: str
    path: Optional[str] = None
    mitigation: Optional[str] = None


class Analysis(BaseModel):
    """Result of scanning and planning a project."""
    project_path: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    strategy: MigrationStrategy = MigrationStrategy.SELECTIVE
    ruleset: str = ""
    has_config_root: bool = False
    artifacts: List[ConfigArtifact] = Field(default_factory=list)
    plan: MigrationPlan = Field(default_factory=MigrationPlan)
    readiness_score: float = Field(default=0.0, ge=0.0, le=1.0)
    risks: List[MigrationRisk] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    @property
    def custom_artifacts(self) -> List[ConfigArtifact]:
        return [a for a in self.artifacts if a.kind == ArtifactKind.CUSTOM]

    @property
    def unknown_artifacts(self) -> List[ConfigArtifact]:
        return [a for a in self.artifacts if a.kind == ArtifactKind.UNKNOWN]

    @property
    def conflicting_files(self) -> List[str]:
        """Ruleset targets that currently hold user-authored content."""
        return [
            action.path for action in self.plan.actions
            if action.is_target and action.artifact_kind == ArtifactKind.CUSTOM
        ]

    def kind_counts(self) -> Dict[str, int]:
        counter = Counter(a.kind.value for a in self.artifacts)
        return {kind.value: counter.get(kind.value, 0) for kind in ArtifactKind}

    def artifact(self, path: str) -> Optional[ConfigArtifact]:
        for artifact in self.artifacts:
            if artifact.path == path:
                return artifact
        return None


class ValidationCheck(BaseModel):
    """A named group of validation assertions."""
    name: str
    passed: bool = True
    message: Optional[str] = None


class ValidationReport(BaseModel):
    """Outcome of a validation pass. Issues fail it; warnings do not."""
    issues: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    checks: List[ValidationCheck] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return len(self.issues) == 0


class ActionError(BaseModel):
    """An action that failed to apply, with its cause."""
    action: MigrationAction
    cause: str
    error_type: str = "MutationError"


class MigrationResult(BaseModel):
    """Outcome of one runner invocation."""
    project_path: str
    strategy: MigrationStrategy = MigrationStrategy.SELECTIVE
    dry_run: bool = False
    applied_actions: List[MigrationAction] = Field(default_factory=list)
    skipped_actions: List[MigrationAction] = Field(default_factory=list)
    backup_ref: Optional[BackupRef] = None
    validation_passed: Optional[bool] = None
    validation_issues: List[str] = Field(default_factory=list)
    errors: List[ActionError] = Field(default_factory=list)
    confirmation_required: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors and self.validation_passed is not False
