"""
Custom exceptions for the FlowX migration engine.

This module defines the exception hierarchy used throughout the engine.
Errors raised before any write (analysis, backup, confirmation) abort a
run with no side effects; errors raised while applying actions are
collected on the result instead of propagating.
"""

from typing import Any, Dict, List, Optional


class MigrationEngineError(Exception):
    """Base exception class for migration engine errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}


class ConfigurationError(MigrationEngineError):
    """Raised when engine configuration cannot be loaded or resolved."""
    pass


class AnalysisError(MigrationEngineError):
    """Raised when the project root is missing or unreadable."""
    pass


class PlanConflictError(MigrationEngineError):
    """Raised when two plan actions target the same path."""

    def __init__(self, message: str, paths: Optional[List[str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.paths = paths or []


class BackupError(MigrationEngineError):
    """Raised when a backup snapshot cannot be created."""
    pass


class MutationError(MigrationEngineError):
    """Raised when applying a single plan action fails."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.path = path


class ConfirmationRequiredError(MigrationEngineError):
    """Raised when destructive actions need confirmation that was not given."""

    def __init__(self, message: str, paths: Optional[List[str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.paths = paths or []


class ValidationError(MigrationEngineError):
    """Raised when post-migration validation fails."""

    def __init__(
        self,
        message: str,
        failed_checks: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.failed_checks = failed_checks or []


class RollbackError(MigrationEngineError):
    """Raised when rollback operations fail."""
    pass


class NoBackupFoundError(RollbackError):
    """Raised when no backup matches the requested timestamp."""
    pass


class RestoreIOError(RollbackError):
    """Raised when a backup cannot be read back or written into place."""
    pass
