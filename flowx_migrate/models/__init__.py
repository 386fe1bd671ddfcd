"""
Data models for the FlowX migration engine.
"""

from flowx_migrate.models.artifact import ArtifactKind, ConfigArtifact
from flowx_migrate.models.backup import Backup, BackupRef, ManifestEntry
from flowx_migrate.models.config import EngineConfig, MigrationOptions
from flowx_migrate.models.plan import ActionKind, MigrationAction, MigrationPlan, MigrationStrategy
from flowx_migrate.models.results import (
    ActionError,
    Analysis,
    MigrationResult,
    MigrationRisk,
    RiskLevel,
    ValidationCheck,
    ValidationReport,
)

__all__ = [
    # Artifacts
    "ArtifactKind",
    "ConfigArtifact",
    # Plans
    "ActionKind",
    "MigrationAction",
    "MigrationPlan",
    "MigrationStrategy",
    # Backups
    "Backup",
    "BackupRef",
    "ManifestEntry",
    # Configuration
    "EngineConfig",
    "MigrationOptions",
    # Results
    "ActionError",
    "Analysis",
    "MigrationResult",
    "MigrationRisk",
    "RiskLevel",
    "ValidationCheck",
    "ValidationReport",
]
