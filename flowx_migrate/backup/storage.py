"""
Backup storage for the FlowX migration engine.

Backups live under a backup directory (relative paths are resolved against
the project root). File contents are stored once, addressed by their sha256,
and shared by every backup that references them:

    <backup_dir>/
        blobs/<aa>/<sha256>
        <timestamp-id>/manifest.json

A backup only becomes visible once its manifest has been written, so an
interrupted snapshot is never listed.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Union

from flowx_migrate.core.exceptions import BackupError, NoBackupFoundError, RestoreIOError
from flowx_migrate.models.backup import (
    Backup,
    BackupRef,
    ManifestEntry,
    backup_id_for,
    parse_backup_id,
)
from flowx_migrate.utils.helpers import (
    atomic_write_bytes,
    calculate_checksum,
    normalize_relative_path,
    resolve_under,
)
from flowx_migrate.utils.logging import LogCategory, get_logger


MANIFEST_NAME = "manifest.json"
BLOB_DIR_NAME = "blobs"


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """
    Parse a user-supplied timestamp.

    Accepts ISO 8601 strings and backup ids. Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not a recognizable timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        try:
            parsed = parse_backup_id(text)
        except ValueError:
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class BackupStore:
    """Content-addressed, timestamp-keyed snapshot archive."""

    def __init__(self, backup_dir: Union[str, Path], logger: Optional[logging.Logger] = None):
        self.backup_dir = Path(backup_dir)
        self.logger = logger or get_logger("backup")

    def location(self, root: Union[str, Path]) -> Path:
        """Absolute backup directory for a project root."""
        if self.backup_dir.is_absolute():
            return self.backup_dir
        return Path(root) / self.backup_dir

    def blob_path(self, root: Union[str, Path], digest: str) -> Path:
        return self.location(root) / BLOB_DIR_NAME / digest[:2] / digest

    async def snapshot(self, paths: Iterable[str], root: Union[str, Path]) -> BackupRef:
        """
        Snapshot paths under root.

        Paths that do not exist are recorded as absent so that restoring the
        backup removes whatever a migration created there.

        Args:
            paths: Project-relative paths to capture
            root: Project root directory

        Returns:
            Reference to the new backup

        Raises:
            BackupError: If any part of the snapshot cannot be written
        """
        root = Path(root)
        store = self.location(root)

        try:
            relative_paths = sorted({normalize_relative_path(p) for p in paths})
            timestamp = self._next_timestamp(await self.list(root))
            backup_id = backup_id_for(timestamp)

            entries = [self._capture(root, relative) for relative in relative_paths]

            backup_path = store / backup_id
            backup_path.mkdir(parents=True)
            backup = Backup(
                id=backup_id,
                timestamp=timestamp,
                root_path=str(root.resolve()),
                manifest=entries,
                location=str(backup_path),
            )
            manifest = backup.model_dump_json(indent=2, exclude={"location"})
            atomic_write_bytes(backup_path / MANIFEST_NAME, manifest.encode("utf-8"))
        except BackupError:
            raise
        except (OSError, ValueError) as e:
            raise BackupError(
                f"Failed to create backup in {store}: {e}",
                details={"backup_dir": str(store)},
            )

        self.logger.info(
            f"Backup {backup_id} created with {len(entries)} entries",
            extra={"category": LogCategory.BACKUP},
        )
        return backup.ref

    def _capture(self, root: Path, relative: str) -> ManifestEntry:
        source = resolve_under(root, relative)
        if not source.exists():
            return ManifestEntry(original_path=relative, existed=False)
        if not source.is_file():
            raise BackupError(f"Cannot back up {relative}: not a regular file")

        data = source.read_bytes()
        digest = calculate_checksum(data)
        self._write_blob(root, digest, data)
        return ManifestEntry(original_path=relative, existed=True, blob=digest, size_bytes=len(data))

    def _write_blob(self, root: Path, digest: str, data: bytes) -> None:
        blob = self.blob_path(root, digest)
        if blob.is_file() and blob.stat().st_size == len(data):
            return
        atomic_write_bytes(blob, data)

    def _next_timestamp(self, existing: List[Backup]) -> datetime:
        now = datetime.now(timezone.utc)
        if existing and now <= existing[0].timestamp:
            return existing[0].timestamp + timedelta(microseconds=1)
        return now

    def load(self, root: Union[str, Path], backup_id: str) -> Backup:
        """
        Read one backup's manifest.

        Raises:
            NoBackupFoundError: If the backup does not exist
            RestoreIOError: If its manifest cannot be read
        """
        backup_path = self.location(root) / backup_id
        manifest_path = backup_path / MANIFEST_NAME
        if not manifest_path.is_file():
            raise NoBackupFoundError(f"Backup not found: {backup_id}", details={"backup_id": backup_id})

        try:
            backup = Backup.model_validate_json(manifest_path.read_bytes())
        except (OSError, ValueError) as e:
            raise RestoreIOError(f"Cannot read manifest of backup {backup_id}: {e}")
        return backup.model_copy(update={"location": str(backup_path)})

    async def list(self, root: Union[str, Path]) -> List[Backup]:
        """Return every complete backup, newest first."""
        store = self.location(root)
        if not store.is_dir():
            return []

        backups: List[Backup] = []
        for child in store.iterdir():
            if child.name == BLOB_DIR_NAME or not child.is_dir():
                continue
            try:
                parse_backup_id(child.name)
            except ValueError:
                continue
            if not (child / MANIFEST_NAME).is_file():
                continue
            try:
                backups.append(self.load(root, child.name))
            except RestoreIOError as e:
                self.logger.warning(str(e), extra={"category": LogCategory.BACKUP})

        backups.sort(key=lambda b: b.timestamp, reverse=True)
        return backups

    async def find(
        self,
        root: Union[str, Path],
        timestamp: Optional[Union[str, datetime]] = None,
    ) -> Backup:
        """
        Find the newest backup, or the newest one not after timestamp.

        Raises:
            NoBackupFoundError: If no backup qualifies
        """
        backups = await self.list(root)
        if timestamp is None:
            if not backups:
                raise NoBackupFoundError(f"No backups found in {self.location(root)}")
            return backups[0]

        cutoff = parse_timestamp(timestamp)
        for backup in backups:
            if backup.timestamp <= cutoff:
                return backup
        raise NoBackupFoundError(
            f"No backup at or before {cutoff.isoformat()} in {self.location(root)}",
            details={"timestamp": cutoff.isoformat()},
        )

    def read_blob(self, root: Union[str, Path], entry: ManifestEntry) -> bytes:
        """
        Read and verify the stored content of a manifest entry.

        Raises:
            RestoreIOError: If the blob is missing or does not match its hash
        """
        if entry.blob is None:
            raise RestoreIOError(f"No stored content for {entry.original_path}")

        blob = self.blob_path(root, entry.blob)
        try:
            data = blob.read_bytes()
        except OSError as e:
            raise RestoreIOError(f"Cannot read blob for {entry.original_path}: {e}")

        if calculate_checksum(data) != entry.blob:
            raise RestoreIOError(
                f"Blob for {entry.original_path} is corrupted",
                details={"blob": entry.blob},
            )
        return data

    async def restore(self, ref: Union[BackupRef, Backup], root: Union[str, Path]) -> Backup:
        """
        Write a backup back into the project tree.

        Entries recorded as absent are removed. Restoring the same backup
        twice yields the same tree.

        Raises:
            RestoreIOError: If a blob or a target cannot be read or written
        """
        root = Path(root)
        backup = self.load(root, ref.id)

        for entry in backup.manifest:
            target = resolve_under(root, entry.original_path)
            try:
                if entry.existed:
                    atomic_write_bytes(target, self.read_blob(root, entry))
                elif target.is_file() or target.is_symlink():
                    target.unlink()
            except OSError as e:
                raise RestoreIOError(f"Cannot restore {entry.original_path}: {e}")

        self.logger.info(
            f"Restored backup {backup.id} ({len(backup.manifest)} entries)",
            extra={"category": LogCategory.BACKUP},
        )
        return backup
