"""
Backup models for the FlowX migration engine.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


BACKUP_ID_FORMAT = "%Y%m%dT%H%M%S%fZ"


def backup_id_for(timestamp: datetime) -> str:
    """Directory name for a backup taken at timestamp."""
    return timestamp.astimezone(timezone.utc).strftime(BACKUP_ID_FORMAT)


def parse_backup_id(backup_id: str) -> datetime:
    """Inverse of backup_id_for; raises ValueError for foreign names."""
    return datetime.strptime(backup_id, BACKUP_ID_FORMAT).replace(tzinfo=timezone.utc)


class ManifestEntry(BaseModel):
    """One snapshotted path."""
    model_config = ConfigDict(frozen=True)

    original_path: str
    existed: bool = True
    blob: Optional[str] = Field(default=None, description="sha256 of the stored blob")
    size_bytes: int = 0


class BackupRef(BaseModel):
    """Handle to a stored backup."""
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    location: str


class Backup(BaseModel):
    """Immutable, timestamp-identified snapshot."""
    model_config = ConfigDict(frozen=True)

    version: int = 1
    id: str
    timestamp: datetime
    root_path: str
    manifest: List[ManifestEntry] = Field(default_factory=list)
    location: str = ""

    @property
    def ref(self) -> BackupRef:
        return BackupRef(id=self.id, timestamp=self.timestamp, location=self.location)

    @property
    def total_size(self) -> int:
        return sum(entry.size_bytes for entry in self.manifest)

    def entry_for(self, path: str) -> Optional[ManifestEntry]:
        for entry in self.manifest:
            if entry.original_path == path:
                return entry
        return None
