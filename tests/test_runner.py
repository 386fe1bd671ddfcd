"""
Tests for the migration runner.

Covers plan execution for each strategy, dry runs, the write-ahead backup,
confirmation of destructive actions, merge rules and rollback.
"""

import os

import pytest
import pytest_asyncio

from flowx_migrate.core.exceptions import BackupError, ConfirmationRequiredError
from flowx_migrate.models.artifact import ArtifactKind
from flowx_migrate.models.config import MigrationOptions
from flowx_migrate.models.plan import ActionKind, MigrationStrategy
from flowx_migrate.runner.runner import MigrationRunner

from conftest import CURRENT_A, CURRENT_B, CUSTOM_B, LEGACY_A, append_merge, failing_merge


def applied_paths(result):
    return [(a.kind, a.path) for a in result.applied_actions]


class TestMigrationRunner:
    """Test cases for MigrationRunner."""

    @pytest.fixture
    def runner(self, project_dir, ruleset, test_logger):
        return MigrationRunner(project_dir, ruleset=ruleset, logger=test_logger)

    @pytest.mark.asyncio
    async def test_selective_migration(self, runner, project_dir):
        result = await runner.run(options=MigrationOptions())

        assert applied_paths(result) == [(ActionKind.CREATE, "a.cfg")]
        assert [a.path for a in result.skipped_actions] == ["b.cfg"]
        assert (project_dir / "a.cfg").read_text() == CURRENT_A
        assert (project_dir / "b.cfg").read_text() == CUSTOM_B
        assert result.backup_ref is not None
        assert result.validation_passed is True
        assert result.success

    @pytest.mark.asyncio
    async def test_full_migration_overwrites_custom(self, runner, project_dir):
        result = await runner.run(options=MigrationOptions(strategy=MigrationStrategy.FULL))

        assert applied_paths(result) == [(ActionKind.OVERWRITE, "b.cfg"), (ActionKind.CREATE, "a.cfg")]
        assert (project_dir / "b.cfg").read_text() == CURRENT_B
        assert result.validation_passed is True

    @pytest.mark.asyncio
    async def test_preserve_custom_with_full_strategy(self, runner, project_dir):
        result = await runner.run(
            options=MigrationOptions(strategy=MigrationStrategy.FULL, preserve_custom=True)
        )

        assert applied_paths(result) == [(ActionKind.CREATE, "a.cfg")]
        assert [a.reason for a in result.skipped_actions] == ["custom artifact preserved"]
        assert (project_dir / "b.cfg").read_text() == CUSTOM_B
        assert result.validation_passed is True

    @pytest.mark.asyncio
    async def test_dry_run_changes_nothing(self, runner, project_dir, tree_hashes):
        before = tree_hashes(project_dir)

        result = await runner.run(options=MigrationOptions(strategy=MigrationStrategy.FULL, dry_run=True))

        assert result.dry_run
        assert len(result.applied_actions) == 2
        assert result.backup_ref is None
        assert result.validation_passed is None
        assert tree_hashes(project_dir) == before
        assert not (project_dir / ".claude-backup").exists()

    @pytest.mark.asyncio
    async def test_backup_failure_aborts_before_mutation(self, project_dir, ruleset, tree_hashes):
        (project_dir / "blocked").write_text("not a directory")
        runner = MigrationRunner(project_dir, backup_dir="blocked", ruleset=ruleset)
        before = tree_hashes(project_dir)

        with pytest.raises(BackupError):
            await runner.run(options=MigrationOptions(strategy=MigrationStrategy.FULL))

        assert tree_hashes(project_dir) == before

    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", list(MigrationStrategy))
    async def test_rollback_restores_every_strategy(self, project_dir, ruleset, tree_hashes, strategy):
        runner = MigrationRunner(project_dir, ruleset=ruleset, merge_rules={ArtifactKind.CUSTOM: append_merge})
        before = tree_hashes(project_dir)

        result = await runner.run(options=MigrationOptions(strategy=strategy))
        assert tree_hashes(project_dir) != before

        restored = await runner.rollback()
        assert restored.id == result.backup_ref.id
        assert tree_hashes(project_dir) == before

    @pytest.mark.asyncio
    async def test_rollback_removes_created_files(self, tmp_path, ruleset, tree_hashes):
        runner = MigrationRunner(tmp_path, ruleset=ruleset)

        await runner.run(options=MigrationOptions())
        assert (tmp_path / "a.cfg").exists()

        await runner.rollback()
        assert tree_hashes(tmp_path) == {}

    @pytest.mark.asyncio
    async def test_merge_rule_applied(self, project_dir, ruleset):
        runner = MigrationRunner(project_dir, ruleset=ruleset, merge_rules={ArtifactKind.CUSTOM: append_merge})

        result = await runner.run(options=MigrationOptions(strategy=MigrationStrategy.MERGE))

        assert (ActionKind.MERGE, "b.cfg") in applied_paths(result)
        assert (project_dir / "b.cfg").read_text() == CURRENT_B + "timeout=30\n"
        assert result.validation_passed is True

    @pytest.mark.asyncio
    async def test_failing_merge_is_reported_and_others_apply(self, project_dir, ruleset):
        runner = MigrationRunner(project_dir, ruleset=ruleset, merge_rules={ArtifactKind.CUSTOM: failing_merge})

        result = await runner.run(options=MigrationOptions(strategy=MigrationStrategy.MERGE))

        assert [e.action.path for e in result.errors] == ["b.cfg"]
        assert "merge exploded" in result.errors[0].cause
        assert applied_paths(result) == [(ActionKind.CREATE, "a.cfg")]
        assert (project_dir / "a.cfg").read_text() == CURRENT_A
        assert (project_dir / "b.cfg").read_text() == CUSTOM_B
        assert result.validation_passed is False
        assert not result.success

    @pytest.mark.asyncio
    async def test_skip_validation(self, runner):
        result = await runner.run(options=MigrationOptions(skip_validation=True))
        assert result.validation_passed is None
        assert result.backup_ref is not None

    @pytest.mark.asyncio
    async def test_explicit_plan(self, runner, project_dir):
        analysis = await runner.analyze(MigrationStrategy.FULL)
        assert runner.last_analysis is analysis

        result = await runner.run(plan=analysis.plan)
        assert result.strategy == MigrationStrategy.FULL
        assert (project_dir / "b.cfg").read_text() == CURRENT_B

    @pytest.mark.asyncio
    async def test_delete_of_missing_file_is_noop(self, tmp_path, ruleset, write_files):
        write_files(tmp_path, {"old.cfg": "version=1\nname=old\n"})
        runner = MigrationRunner(tmp_path, ruleset=ruleset)
        plan = (await runner.analyze()).plan
        (tmp_path / "old.cfg").unlink()

        result = await runner.run(plan=plan)

        assert not result.errors
        assert (ActionKind.DELETE, "old.cfg") in applied_paths(result)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("strategy", list(MigrationStrategy))
    async def test_symlink_leaving_project_survives(self, tmp_path, ruleset, strategy):
        outside = tmp_path / "outside.cfg"
        outside.write_text(LEGACY_A)
        project = tmp_path / "project"
        project.mkdir()
        os.symlink(outside, project / "a.cfg")
        (project / "b.cfg").write_text(LEGACY_A)
        runner = MigrationRunner(project, ruleset=ruleset, merge_rules={ArtifactKind.LEGACY: append_merge})

        result = await runner.run(options=MigrationOptions(strategy=strategy))

        assert "a.cfg" not in [a.path for a in result.applied_actions]
        assert (project / "a.cfg").is_symlink()
        assert os.readlink(project / "a.cfg") == str(outside)
        assert outside.read_text() == LEGACY_A
        assert (project / "b.cfg").read_text() == CURRENT_B
        assert result.validation_passed is True
        assert runner.store.load(project, result.backup_ref.id).entry_for("a.cfg") is None

        await runner.rollback()
        assert (project / "a.cfg").is_symlink()
        assert (project / "b.cfg").read_text() == LEGACY_A

    @pytest.mark.asyncio
    async def test_directory_at_target_path_is_skipped(self, tmp_path, ruleset):
        (tmp_path / "a.cfg").mkdir()
        (tmp_path / "b.cfg").write_text(LEGACY_A)
        runner = MigrationRunner(tmp_path, ruleset=ruleset)

        result = await runner.run(options=MigrationOptions(strategy=MigrationStrategy.FULL))

        assert applied_paths(result) == [(ActionKind.CREATE, "b.cfg")]
        assert (tmp_path / "a.cfg").is_dir()
        assert (tmp_path / "b.cfg").read_text() == CURRENT_B
        assert result.validation_passed is True


class TestConfirmation:
    """Confirmation of destructive actions on recently edited files."""

    @pytest_asyncio.fixture
    async def edited_project(self, project_dir, ruleset):
        runner = MigrationRunner(project_dir, ruleset=ruleset)
        ref = await runner.store.snapshot(["b.cfg"], project_dir)
        edited_at = ref.timestamp.timestamp() + 60
        (project_dir / "b.cfg").write_text(CUSTOM_B + "retries=3\n")
        os.utime(project_dir / "b.cfg", (edited_at, edited_at))
        return project_dir

    @pytest.mark.asyncio
    async def test_never_backed_up_needs_no_confirmation(self, project_dir, ruleset):
        runner = MigrationRunner(project_dir, ruleset=ruleset)
        plan = (await runner.analyze(MigrationStrategy.FULL)).plan
        assert await runner.paths_needing_confirmation(plan) == []

    @pytest.mark.asyncio
    async def test_edit_after_backup_requires_confirmation(self, edited_project, ruleset, tree_hashes):
        runner = MigrationRunner(edited_project, ruleset=ruleset)
        before = tree_hashes(edited_project)

        with pytest.raises(ConfirmationRequiredError) as exc_info:
            await runner.run(options=MigrationOptions(strategy=MigrationStrategy.FULL))

        assert exc_info.value.paths == ["b.cfg"]
        assert tree_hashes(edited_project) == before
        assert len(await runner.list_backups()) == 1

    @pytest.mark.asyncio
    async def test_declined_confirmation(self, edited_project, ruleset):
        asked = []

        def decline(paths):
            asked.append(paths)
            return False

        runner = MigrationRunner(edited_project, ruleset=ruleset, confirm=decline)
        with pytest.raises(ConfirmationRequiredError):
            await runner.run(options=MigrationOptions(strategy=MigrationStrategy.FULL))
        assert asked == [["b.cfg"]]

    @pytest.mark.asyncio
    async def test_confirmed_run_proceeds(self, edited_project, ruleset):
        runner = MigrationRunner(edited_project, ruleset=ruleset, confirm=lambda paths: True)
        result = await runner.run(options=MigrationOptions(strategy=MigrationStrategy.FULL))
        assert result.success
        assert (edited_project / "b.cfg").read_text() == CURRENT_B

    @pytest.mark.asyncio
    async def test_force_skips_confirmation(self, edited_project, ruleset):
        runner = MigrationRunner(edited_project, ruleset=ruleset)
        result = await runner.run(options=MigrationOptions(strategy=MigrationStrategy.FULL, force=True))
        assert result.success

    @pytest.mark.asyncio
    async def test_dry_run_reports_instead_of_asking(self, edited_project, ruleset, tree_hashes):
        asked = []
        runner = MigrationRunner(edited_project, ruleset=ruleset, confirm=lambda paths: asked.append(paths))
        before = tree_hashes(edited_project)

        result = await runner.run(options=MigrationOptions(strategy=MigrationStrategy.FULL, dry_run=True))

        assert asked == []
        assert result.confirmation_required == ["b.cfg"]
        assert tree_hashes(edited_project) == before

    @pytest.mark.asyncio
    async def test_selective_needs_no_confirmation(self, edited_project, ruleset):
        runner = MigrationRunner(edited_project, ruleset=ruleset)
        result = await runner.run(options=MigrationOptions())
        assert result.success


class TestRunnerHousekeeping:
    """Validation, backup listing and backup directory handling."""

    @pytest.mark.asyncio
    async def test_validate_keeps_report(self, project_dir, ruleset):
        runner = MigrationRunner(project_dir, ruleset=ruleset)

        assert await runner.validate(verbose=True) is False
        assert runner.last_report.issues == ["a.cfg: expected current format, found legacy"]

        await runner.run()
        assert await runner.validate() is True

    @pytest.mark.asyncio
    async def test_list_backups_newest_first(self, project_dir, ruleset):
        runner = MigrationRunner(project_dir, ruleset=ruleset)
        first = await runner.run()
        second = await runner.run()

        backups = await runner.list_backups()
        assert [b.id for b in backups] == [second.backup_ref.id, first.backup_ref.id]
        assert backups[0].manifest == []

    @pytest.mark.asyncio
    async def test_backup_dir_is_never_scanned(self, project_dir, ruleset, write_files):
        write_files(project_dir, {"conf.d/mine.cfg": CUSTOM_B})
        runner = MigrationRunner(project_dir, backup_dir="conf.d", ruleset=ruleset)

        analysis = await runner.analyze()
        assert analysis.artifact("conf.d/mine.cfg") is None

    def test_backup_dir_outside_project(self, project_dir, ruleset, tmp_path):
        runner = MigrationRunner(project_dir, backup_dir=tmp_path / "backups", ruleset=ruleset)
        assert runner._excluded_paths() == []

        nested = MigrationRunner(project_dir, backup_dir=project_dir / "conf.d", ruleset=ruleset)
        assert nested._excluded_paths() == ["conf.d"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_flowx_project_end_to_end(self, flowx_project, tree_hashes):
        before = tree_hashes(flowx_project)
        runner = MigrationRunner(flowx_project)

        result = await runner.run()

        assert result.success, result.validation_issues
        assert not (flowx_project / ".claude/commands/claude-flow-help.md").exists()
        assert (flowx_project / ".claude/commands/sparc-tdd.md").read_text() == "# My own TDD flow\n\nCustom steps.\n"
        assert (flowx_project / "src/main.py").read_text() == "print('untouched')\n"

        await runner.rollback()
        assert tree_hashes(flowx_project) == before
