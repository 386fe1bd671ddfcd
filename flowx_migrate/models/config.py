"""
Configuration models for the FlowX migration engine.

This module defines Pydantic models for per-run migration options and
for the engine configuration loaded from a project config file.
"""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from flowx_migrate.models.artifact import ArtifactKind
from flowx_migrate.models.plan import MigrationStrategy


DEFAULT_BACKUP_DIR = ".claude-backup"
DEFAULT_RULESET = "flowx_migrate.rules.flowx:FlowXRuleset"


class MigrationOptions(BaseModel):
    """Options for a single runner invocation."""
    model_config = ConfigDict(frozen=True)

    strategy: MigrationStrategy = MigrationStrategy.SELECTIVE
    dry_run: bool = False
    force: bool = False
    preserve_custom: bool = False
    skip_validation: bool = False


class EngineConfig(BaseModel):
    """Engine configuration, typically read from flowx-migrate.yaml."""
    backup_dir: str = Field(default=DEFAULT_BACKUP_DIR, description="Backup directory, relative to the project")
    strategy: MigrationStrategy = MigrationStrategy.SELECTIVE
    ruleset: str = Field(default=DEFAULT_RULESET, description="Ruleset import path (module:attribute)")
    merge_rules: Dict[ArtifactKind, str] = Field(
        default_factory=dict,
        description="Merge function import paths keyed by artifact kind",
    )
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator('ruleset')
    @classmethod
    def ruleset_must_be_import_path(cls, v):
        if ":" not in v:
            raise ValueError('ruleset must be an import path of the form module:attribute')
        return v

    @field_validator('merge_rules')
    @classmethod
    def merge_rules_must_be_import_paths(cls, v):
        for kind, target in v.items():
            if ":" not in target:
                raise ValueError(f'merge rule for {kind.value} must be of the form module:attribute')
        return v

    @field_validator('log_level')
    @classmethod
    def log_level_must_be_known(cls, v):
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f'unknown log level: {v}')
        return level
