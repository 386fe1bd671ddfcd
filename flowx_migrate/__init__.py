"""
FlowX Migration Engine

Analyzes a project's prompt configuration, migrates it to the current
format under a chosen strategy with write-ahead backups, validates the
result and rolls changes back from those backups.
"""

__version__ = "1.0.0"
__author__ = "FlowX Team"

from flowx_migrate.analysis.analyzer import MigrationAnalyzer
from flowx_migrate.backup.rollback import RollbackManager
from flowx_migrate.backup.storage import BackupStore
from flowx_migrate.models.config import MigrationOptions
from flowx_migrate.models.plan import MigrationPlan, MigrationStrategy
from flowx_migrate.runner.runner import MigrationRunner
from flowx_migrate.validation.validator import MigrationValidator

__all__ = [
    "BackupStore",
    "MigrationAnalyzer",
    "MigrationOptions",
    "MigrationPlan",
    "MigrationRunner",
    "MigrationStrategy",
    "MigrationValidator",
    "RollbackManager",
]
