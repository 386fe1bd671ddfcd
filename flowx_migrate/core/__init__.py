"""
Core components for the FlowX migration engine.
"""

from flowx_migrate.core.error_handler import ErrorHandler, ErrorCategory, ErrorSeverity, ErrorContext, ErrorInfo
from flowx_migrate.core.exceptions import (
    MigrationEngineError,
    ConfigurationError,
    AnalysisError,
    PlanConflictError,
    BackupError,
    MutationError,
    ConfirmationRequiredError,
    ValidationError,
    RollbackError,
    NoBackupFoundError,
    RestoreIOError,
)

__all__ = [
    "ErrorHandler",
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorContext",
    "ErrorInfo",
    "MigrationEngineError",
    "ConfigurationError",
    "AnalysisError",
    "PlanConflictError",
    "BackupError",
    "MutationError",
    "ConfirmationRequiredError",
    "ValidationError",
    "RollbackError",
    "NoBackupFoundError",
    "RestoreIOError",
]
