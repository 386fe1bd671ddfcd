"""
Post-migration validation for the FlowX migration engine.
"""

from flowx_migrate.validation.validator import MigrationValidator

__all__ = ["MigrationValidator"]
