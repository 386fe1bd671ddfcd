"""
Unit tests for strategy resolution.
"""

import pytest

from flowx_migrate.analysis.strategies import resolve_action
from flowx_migrate.models.artifact import ArtifactKind
from flowx_migrate.models.plan import ActionKind, MigrationStrategy


ALL_STRATEGIES = list(MigrationStrategy)


class TestResolveAction:
    """Test cases for resolve_action."""

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    @pytest.mark.parametrize("is_target", [True, False])
    @pytest.mark.parametrize("has_counterpart", [True, False])
    def test_unknown_always_skipped(self, strategy, is_target, has_counterpart):
        resolution = resolve_action(
            ArtifactKind.UNKNOWN,
            strategy,
            is_target=is_target,
            has_custom_counterpart=has_counterpart,
            merge_rules=list(ArtifactKind),
        )
        assert resolution.kind == ActionKind.SKIP

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_current_always_skipped(self, strategy):
        resolution = resolve_action(ArtifactKind.CURRENT, strategy, is_target=True, merge_rules=list(ArtifactKind))
        assert resolution.kind == ActionKind.SKIP

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_missing_target_created(self, strategy):
        assert resolve_action(None, strategy, is_target=True).kind == ActionKind.CREATE

    def test_missing_target_with_custom_counterpart(self):
        assert resolve_action(
            None, MigrationStrategy.SELECTIVE, is_target=True, has_custom_counterpart=True
        ).kind == ActionKind.SKIP
        assert resolve_action(
            None, MigrationStrategy.MERGE, is_target=True, has_custom_counterpart=True
        ).kind == ActionKind.SKIP
        assert resolve_action(
            None, MigrationStrategy.FULL, is_target=True, has_custom_counterpart=True
        ).kind == ActionKind.CREATE

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_legacy_target_regenerated(self, strategy):
        resolution = resolve_action(ArtifactKind.LEGACY, strategy, is_target=True)
        assert resolution.kind == ActionKind.CREATE
        assert "legacy" in resolution.reason

    def test_legacy_target_merged_when_rule_supplied(self):
        resolution = resolve_action(
            ArtifactKind.LEGACY, MigrationStrategy.MERGE, is_target=True, merge_rules=[ArtifactKind.LEGACY]
        )
        assert resolution.kind == ActionKind.MERGE

    def test_legacy_merge_rule_ignored_outside_merge_strategy(self):
        resolution = resolve_action(
            ArtifactKind.LEGACY, MigrationStrategy.SELECTIVE, is_target=True, merge_rules=[ArtifactKind.LEGACY]
        )
        assert resolution.kind == ActionKind.CREATE

    def test_custom_target_per_strategy(self):
        assert resolve_action(ArtifactKind.CUSTOM, MigrationStrategy.FULL, is_target=True).kind == ActionKind.OVERWRITE
        assert resolve_action(ArtifactKind.CUSTOM, MigrationStrategy.SELECTIVE, is_target=True).kind == ActionKind.SKIP
        assert resolve_action(ArtifactKind.CUSTOM, MigrationStrategy.MERGE, is_target=True).kind == ActionKind.SKIP
        assert resolve_action(
            ArtifactKind.CUSTOM, MigrationStrategy.MERGE, is_target=True, merge_rules=[ArtifactKind.CUSTOM]
        ).kind == ActionKind.MERGE

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_custom_non_target_never_touched(self, strategy):
        resolution = resolve_action(
            ArtifactKind.CUSTOM, strategy, is_target=False, merge_rules=[ArtifactKind.CUSTOM]
        )
        assert resolution.kind == ActionKind.SKIP

    @pytest.mark.parametrize("strategy", ALL_STRATEGIES)
    def test_obsolete_legacy_deleted(self, strategy):
        assert resolve_action(ArtifactKind.LEGACY, strategy, is_target=False).kind == ActionKind.DELETE

    def test_obsolete_legacy_kept_with_custom_counterpart(self):
        assert resolve_action(
            ArtifactKind.LEGACY, MigrationStrategy.SELECTIVE, is_target=False, has_custom_counterpart=True
        ).kind == ActionKind.SKIP
        assert resolve_action(
            ArtifactKind.LEGACY, MigrationStrategy.FULL, is_target=False, has_custom_counterpart=True
        ).kind == ActionKind.DELETE

    def test_resolution_is_deterministic(self):
        first = resolve_action(ArtifactKind.LEGACY, MigrationStrategy.MERGE, True, False, [ArtifactKind.LEGACY])
        second = resolve_action(ArtifactKind.LEGACY, MigrationStrategy.MERGE, True, False, [ArtifactKind.LEGACY])
        assert first == second
