"""
Migration execution for the FlowX migration engine.
"""

from flowx_migrate.runner.runner import ConfirmFunction, MigrationRunner

__all__ = ["ConfirmFunction", "MigrationRunner"]
