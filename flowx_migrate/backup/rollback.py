"""
Rollback management for the FlowX migration engine.

Restores a project from a stored backup in two phases: every blob is read,
verified and staged next to its target first, and only once all of them are
staged are the targets swapped into place. A failure while staging leaves
the project tree as it was.
"""

import logging
import os
import tempfile
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from flowx_migrate.backup.storage import BackupStore
from flowx_migrate.core.exceptions import RestoreIOError, RollbackError
from flowx_migrate.models.backup import Backup
from flowx_migrate.utils.helpers import resolve_under
from flowx_migrate.utils.logging import LogCategory, get_logger


class RollbackStatus(str, Enum):
    """Rollback execution status."""
    PENDING = "pending"
    STAGED = "staged"
    COMPLETED = "completed"
    FAILED = "failed"


class RollbackManager:
    """Restores projects from Backup Store snapshots."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger("rollback")
        self.status = RollbackStatus.PENDING

    async def rollback(
        self,
        root: Union[str, Path],
        backup_dir: Union[str, Path],
        timestamp: Optional[Union[str, datetime]] = None,
    ) -> Backup:
        """
        Restore the newest backup, or the newest one not after timestamp.

        Args:
            root: Project root directory
            backup_dir: Backup directory (relative paths resolve against root)
            timestamp: Optional upper bound on the backup timestamp

        Returns:
            The backup that was restored

        Raises:
            NoBackupFoundError: If no backup qualifies
            RestoreIOError: If the backup is damaged or cannot be written back
        """
        root = Path(root)
        store = BackupStore(backup_dir, logger=self.logger)
        self.status = RollbackStatus.PENDING

        try:
            backup = await store.find(root, timestamp)
        except ValueError as e:
            self.status = RollbackStatus.FAILED
            raise RollbackError(f"Invalid timestamp '{timestamp}': {e}")
        except RollbackError:
            self.status = RollbackStatus.FAILED
            raise

        self.logger.info(
            f"Rolling back {root} to backup {backup.id}",
            extra={"category": LogCategory.ROLLBACK},
        )

        try:
            contents = [
                (entry.original_path, store.read_blob(root, entry) if entry.existed else None)
                for entry in backup.manifest
            ]
            staged, created_dirs = self._stage(root, contents)
        except RestoreIOError:
            self.status = RollbackStatus.FAILED
            raise

        self.status = RollbackStatus.STAGED
        try:
            self._swap(root, contents, staged)
        except OSError as e:
            self.status = RollbackStatus.FAILED
            self._discard(staged, created_dirs=[])
            raise RestoreIOError(f"Rollback of backup {backup.id} failed while swapping files: {e}")

        self.status = RollbackStatus.COMPLETED
        self.logger.info(
            f"Rollback to {backup.id} completed ({len(backup.manifest)} entries)",
            extra={"category": LogCategory.ROLLBACK},
        )
        return backup

    def _stage(
        self,
        root: Path,
        contents: List[Tuple[str, Optional[bytes]]],
    ) -> Tuple[Dict[str, str], List[Path]]:
        staged: Dict[str, str] = {}
        created_dirs: List[Path] = []

        try:
            for relative, data in contents:
                if data is None:
                    continue
                target = resolve_under(root, relative)
                created_dirs.extend(self._make_parents(target.parent))

                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{target.name}.", suffix=".rollback", dir=target.parent
                )
                staged[relative] = tmp_name
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
        except OSError as e:
            self._discard(staged, created_dirs)
            raise RestoreIOError(f"Cannot stage rollback files: {e}")

        return staged, created_dirs

    def _make_parents(self, directory: Path) -> List[Path]:
        missing = []
        current = directory
        while not current.exists():
            missing.append(current)
            current = current.parent
        for path in reversed(missing):
            path.mkdir()
        return missing

    def _swap(self, root: Path, contents: List[Tuple[str, Optional[bytes]]], staged: Dict[str, str]) -> None:
        for relative, data in contents:
            target = resolve_under(root, relative)
            if data is None:
                if target.is_file() or target.is_symlink():
                    target.unlink()
                continue
            os.replace(staged.pop(relative), target)

    def _discard(self, staged: Dict[str, str], created_dirs: List[Path]) -> None:
        for tmp_name in staged.values():
            try:
                os.unlink(tmp_name)
            except OSError:
                self.logger.warning(f"Could not remove staged file {tmp_name}")
        # Deepest first
        for directory in sorted(created_dirs, key=lambda p: len(p.parts), reverse=True):
            try:
                directory.rmdir()
            except OSError:
                self.logger.warning(f"Could not remove directory {directory}")
