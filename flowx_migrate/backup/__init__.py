"""
Backup storage and rollback for the FlowX migration engine.
"""

from flowx_migrate.backup.rollback import RollbackManager, RollbackStatus
from flowx_migrate.backup.storage import BackupStore, parse_timestamp

__all__ = [
    "BackupStore",
    "RollbackManager",
    "RollbackStatus",
    "parse_timestamp",
]
