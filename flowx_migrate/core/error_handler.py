"""
Error handling for the FlowX migration engine.

This module categorizes engine errors, attaches remediation guidance and
maps each category to the process exit code used by the CLI.
"""

import logging
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Type

from .exceptions import (
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


class ErrorCategory(str, Enum):
    """Categories of errors for better handling and reporting."""
    CONFIGURATION = "configuration"
    ANALYSIS = "analysis"
    PLAN = "plan"
    BACKUP = "backup"
    MUTATION = "mutation"
    CONFIRMATION = "confirmation"
    VALIDATION = "validation"
    ROLLBACK = "rollback"
    PERMISSION = "permission"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SEVERITY_LOG_LEVELS: Dict[ErrorSeverity, int] = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}

# Exit codes returned by the CLI per category. Zero is reserved for success.
EXIT_CODES: Dict[ErrorCategory, int] = {
    ErrorCategory.UNKNOWN: 1,
    ErrorCategory.CONFIGURATION: 2,
    ErrorCategory.ANALYSIS: 3,
    ErrorCategory.PLAN: 4,
    ErrorCategory.BACKUP: 5,
    ErrorCategory.MUTATION: 6,
    ErrorCategory.CONFIRMATION: 7,
    ErrorCategory.VALIDATION: 8,
    ErrorCategory.ROLLBACK: 9,
    ErrorCategory.PERMISSION: 10,
}


class ErrorMapping(NamedTuple):
    category: ErrorCategory
    severity: ErrorSeverity
    recoverable: bool = True


UNKNOWN_MAPPING = ErrorMapping(ErrorCategory.UNKNOWN, ErrorSeverity.MEDIUM)


@dataclass
class ErrorContext:
    """Context information for an error occurrence."""
    timestamp: datetime = field(default_factory=datetime.now)
    operation: Optional[str] = None
    project_path: Optional[str] = None
    additional_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorInfo:
    """Comprehensive error information."""
    error: Exception
    category: ErrorCategory
    severity: ErrorSeverity
    context: ErrorContext
    remediation_steps: List[str]
    traceback_str: str
    exit_code: int
    is_recoverable: bool = True


class ErrorHandler:
    """
    Error handler with categorization, remediation guidance and exit codes.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self._error_mappings = self._build_error_mappings()
        self._remediation_guides = self._build_remediation_guides()

    def _build_error_mappings(self) -> Dict[Type[Exception], ErrorMapping]:
        """Build mapping of exception types to error categories and severities."""
        return {
            ConfigurationError: ErrorMapping(ErrorCategory.CONFIGURATION, ErrorSeverity.HIGH),
            AnalysisError: ErrorMapping(ErrorCategory.ANALYSIS, ErrorSeverity.HIGH),
            PlanConflictError: ErrorMapping(ErrorCategory.PLAN, ErrorSeverity.CRITICAL, recoverable=False),
            BackupError: ErrorMapping(ErrorCategory.BACKUP, ErrorSeverity.CRITICAL, recoverable=False),
            MutationError: ErrorMapping(ErrorCategory.MUTATION, ErrorSeverity.HIGH),
            ConfirmationRequiredError: ErrorMapping(ErrorCategory.CONFIRMATION, ErrorSeverity.MEDIUM),
            ValidationError: ErrorMapping(ErrorCategory.VALIDATION, ErrorSeverity.MEDIUM),
            RollbackError: ErrorMapping(ErrorCategory.ROLLBACK, ErrorSeverity.CRITICAL, recoverable=False),
            NoBackupFoundError: ErrorMapping(ErrorCategory.ROLLBACK, ErrorSeverity.HIGH),
            RestoreIOError: ErrorMapping(ErrorCategory.ROLLBACK, ErrorSeverity.CRITICAL, recoverable=False),
            # Standard Python exceptions
            PermissionError: ErrorMapping(ErrorCategory.PERMISSION, ErrorSeverity.HIGH),
            FileNotFoundError: ErrorMapping(ErrorCategory.CONFIGURATION, ErrorSeverity.MEDIUM),
        }

    def _build_remediation_guides(self) -> Dict[ErrorCategory, List[str]]:
        """Build remediation guides for each error category."""
        return {
            ErrorCategory.CONFIGURATION: [
                "Check the flowx-migrate configuration file syntax",
                "Verify ruleset and merge rule import paths (module:attribute)",
            ],
            ErrorCategory.ANALYSIS: [
                "Verify the project path exists and is a directory",
                "Check read permissions on the project tree",
            ],
            ErrorCategory.PLAN: [
                "Check the ruleset for duplicate target paths",
                "Re-run the analysis to rebuild the plan",
            ],
            ErrorCategory.BACKUP: [
                "Ensure the backup directory is writable",
                "Ensure sufficient storage space for backups",
                "No files were changed; fix the backup location and retry",
            ],
            ErrorCategory.MUTATION: [
                "Check write permissions on the affected files",
                "Roll back with 'flowx-migrate rollback' if the project is inconsistent",
            ],
            ErrorCategory.CONFIRMATION: [
                "Review the files modified since the last backup",
                "Re-run with --force to proceed without confirmation",
            ],
            ErrorCategory.VALIDATION: [
                "Review the validation issues listed above",
                "Roll back with 'flowx-migrate rollback' to restore the previous state",
            ],
            ErrorCategory.ROLLBACK: [
                "List available backups with 'flowx-migrate list-backups'",
                "Check the --timestamp value is not older than the oldest backup",
                "Verify backup blobs have not been removed or modified",
            ],
            ErrorCategory.PERMISSION: [
                "Check file and directory access rights",
            ],
            ErrorCategory.UNKNOWN: [
                "Re-run with --verbose for a traceback",
                "Review error logs for additional context",
            ],
        }

    def categorize_error(self, error: Exception, context: Optional[ErrorContext] = None) -> ErrorInfo:
        """
        Categorize an error and create comprehensive error information.

        Args:
            error: The exception that occurred
            context: Optional context information

        Returns:
            ErrorInfo object with categorized error details
        """
        # Most specific registered class wins
        mapping = next(
            (self._error_mappings[cls] for cls in type(error).__mro__ if cls in self._error_mappings),
            UNKNOWN_MAPPING,
        )
        category = mapping.category

        return ErrorInfo(
            error=error,
            category=category,
            severity=mapping.severity,
            context=context or ErrorContext(),
            remediation_steps=self._remediation_guides.get(category, []),
            traceback_str="".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
            exit_code=EXIT_CODES[category],
            is_recoverable=mapping.recoverable,
        )

    def handle_error(self, error: Exception, context: Optional[ErrorContext] = None) -> ErrorInfo:
        """Categorize and log an error, returning its details."""
        error_info = self.categorize_error(error, context)
        self._log_error(error_info)
        return error_info

    def _log_error(self, error_info: ErrorInfo) -> None:
        operation = error_info.context.operation or "operation"
        self.logger.log(
            SEVERITY_LOG_LEVELS[error_info.severity],
            f"{error_info.category.value} error during {operation}: {error_info.error}",
            extra={
                "error_type": type(error_info.error).__name__,
                "error_category": error_info.category.value,
                "severity": error_info.severity.value,
                "project_path": error_info.context.project_path,
                "is_recoverable": error_info.is_recoverable,
            },
        )
        if error_info.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            self.logger.debug(error_info.traceback_str)
