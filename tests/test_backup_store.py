"""
Unit tests for the backup store.

Tests snapshot creation, content-addressed storage, listing, lookup by
timestamp and restore.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from flowx_migrate.backup.storage import BLOB_DIR_NAME, MANIFEST_NAME, BackupStore, parse_timestamp
from flowx_migrate.core.exceptions import BackupError, NoBackupFoundError, RestoreIOError

from conftest import CURRENT_A, CUSTOM_B, LEGACY_A


class TestBackupStore:
    """Test cases for BackupStore."""

    @pytest.fixture
    def store(self, test_logger):
        return BackupStore(".claude-backup", logger=test_logger)

    @pytest.mark.asyncio
    async def test_snapshot_layout(self, store, project_dir):
        ref = await store.snapshot(["a.cfg", "b.cfg", "new.cfg"], project_dir)

        backup_path = project_dir / ".claude-backup" / ref.id
        manifest = json.loads((backup_path / MANIFEST_NAME).read_text())
        entries = {e["original_path"]: e for e in manifest["manifest"]}

        assert set(entries) == {"a.cfg", "b.cfg", "new.cfg"}
        assert entries["new.cfg"]["existed"] is False
        blob = entries["a.cfg"]["blob"]
        assert (project_dir / ".claude-backup" / BLOB_DIR_NAME / blob[:2] / blob).read_text() == LEGACY_A

    @pytest.mark.asyncio
    async def test_blobs_are_shared_between_backups(self, store, project_dir):
        await store.snapshot(["a.cfg"], project_dir)
        await store.snapshot(["a.cfg", "b.cfg"], project_dir)

        blobs = [p for p in (project_dir / ".claude-backup" / BLOB_DIR_NAME).rglob("*") if p.is_file()]
        assert len(blobs) == 2

    @pytest.mark.asyncio
    async def test_timestamps_strictly_increase(self, store, project_dir):
        refs = [await store.snapshot(["a.cfg"], project_dir) for _ in range(5)]
        timestamps = [ref.timestamp for ref in refs]
        assert timestamps == sorted(timestamps)
        assert len(set(timestamps)) == 5

    @pytest.mark.asyncio
    async def test_list_newest_first_and_ignores_foreign_entries(self, store, project_dir):
        first = await store.snapshot(["a.cfg"], project_dir)
        second = await store.snapshot(["b.cfg"], project_dir)
        (project_dir / ".claude-backup" / "notes").mkdir()
        (project_dir / ".claude-backup" / "20200101T000000000000Z").mkdir()
        (project_dir / ".claude-backup" / "README").write_text("hi")

        backups = await store.list(project_dir)
        assert [b.id for b in backups] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_list_without_backup_dir(self, store, tmp_path):
        assert await store.list(tmp_path) == []

    @pytest.mark.asyncio
    async def test_find_latest_and_by_timestamp(self, store, project_dir):
        first = await store.snapshot(["a.cfg"], project_dir)
        second = await store.snapshot(["a.cfg"], project_dir)

        assert (await store.find(project_dir)).id == second.id
        assert (await store.find(project_dir, first.timestamp)).id == first.id
        between = first.timestamp + (second.timestamp - first.timestamp) / 2
        assert (await store.find(project_dir, between)).id == first.id
        assert (await store.find(project_dir, second.timestamp + timedelta(days=1))).id == second.id

    @pytest.mark.asyncio
    async def test_find_never_returns_future_backup(self, store, project_dir):
        refs = [await store.snapshot(["a.cfg"], project_dir) for _ in range(3)]
        for ref in refs:
            found = await store.find(project_dir, ref.timestamp)
            assert found.timestamp <= ref.timestamp

    @pytest.mark.asyncio
    async def test_find_before_every_backup(self, store, project_dir):
        ref = await store.snapshot(["a.cfg"], project_dir)
        with pytest.raises(NoBackupFoundError):
            await store.find(project_dir, ref.timestamp - timedelta(seconds=1))

    @pytest.mark.asyncio
    async def test_find_with_no_backups(self, store, project_dir):
        with pytest.raises(NoBackupFoundError):
            await store.find(project_dir)

    @pytest.mark.asyncio
    async def test_snapshot_failure_raises_backup_error(self, project_dir, tree_hashes):
        (project_dir / "blocked").write_text("not a directory")
        store = BackupStore("blocked")
        before = tree_hashes(project_dir)

        with pytest.raises(BackupError):
            await store.snapshot(["a.cfg"], project_dir)

        assert tree_hashes(project_dir) == before

    @pytest.mark.asyncio
    async def test_restore_is_idempotent(self, store, project_dir, tree_hashes):
        before = tree_hashes(project_dir)
        ref = await store.snapshot(["a.cfg", "b.cfg", "new.cfg"], project_dir)

        (project_dir / "a.cfg").write_text(CURRENT_A)
        (project_dir / "b.cfg").unlink()
        (project_dir / "new.cfg").write_text("created later\n")

        await store.restore(ref, project_dir)
        assert tree_hashes(project_dir) == before
        await store.restore(ref, project_dir)
        assert tree_hashes(project_dir) == before

    @pytest.mark.asyncio
    async def test_restore_recreates_parent_directories(self, store, tmp_path, write_files):
        write_files(tmp_path, {"conf.d/deep/x.cfg": CUSTOM_B})
        ref = await store.snapshot(["conf.d/deep/x.cfg"], tmp_path)
        (tmp_path / "conf.d" / "deep" / "x.cfg").unlink()
        (tmp_path / "conf.d" / "deep").rmdir()

        await store.restore(ref, tmp_path)
        assert (tmp_path / "conf.d" / "deep" / "x.cfg").read_text() == CUSTOM_B

    @pytest.mark.asyncio
    async def test_corrupted_blob_detected(self, store, project_dir):
        ref = await store.snapshot(["a.cfg"], project_dir)
        backup = store.load(project_dir, ref.id)
        entry = backup.entry_for("a.cfg")
        store.blob_path(project_dir, entry.blob).write_text("tampered")

        with pytest.raises(RestoreIOError):
            store.read_blob(project_dir, entry)

    @pytest.mark.asyncio
    async def test_absolute_backup_dir(self, tmp_path, project_dir):
        store = BackupStore(tmp_path / "elsewhere")
        ref = await store.snapshot(["a.cfg"], project_dir)
        assert (tmp_path / "elsewhere" / ref.id / MANIFEST_NAME).is_file()
        assert not (project_dir / ".claude-backup").exists()


class TestParseTimestamp:
    """Test cases for parse_timestamp."""

    def test_naive_values_are_utc(self):
        assert parse_timestamp("2024-05-01T10:00:00") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_offsets_are_converted(self):
        assert parse_timestamp("2024-05-01T12:00:00+02:00") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
        assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_backup_ids_accepted(self):
        assert parse_timestamp("20240501T100000000001Z") == datetime(
            2024, 5, 1, 10, 0, 0, 1, tzinfo=timezone.utc
        )

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")
