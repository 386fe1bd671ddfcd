"""
Strategy resolution.

Maps the classification of what sits at a path to the action a strategy
takes there. Resolution is a pure function of its inputs and never depends
on the order in which paths are visited.
"""

from typing import Collection, NamedTuple, Optional

from flowx_migrate.models.artifact import ArtifactKind
from flowx_migrate.models.plan import ActionKind, MigrationStrategy


class Resolution(NamedTuple):
    kind: ActionKind
    reason: str


def resolve_action(
    artifact_kind: Optional[ArtifactKind],
    strategy: MigrationStrategy,
    is_target: bool,
    has_custom_counterpart: bool = False,
    merge_rules: Collection[ArtifactKind] = (),
) -> Resolution:
    """
    Resolve the action for one path.

    Args:
        artifact_kind: Classification of the artifact at the path, None if absent
        strategy: Active migration strategy
        is_target: Whether the ruleset has a current-format artifact for the path
        has_custom_counterpart: Whether a user-authored artifact stands in for it
        merge_rules: Artifact kinds a merge function was supplied for

    Returns:
        Resolution with the action kind and a human-readable reason
    """
    if artifact_kind == ArtifactKind.UNKNOWN:
        return Resolution(ActionKind.SKIP, "unrecognized format; never overwritten")

    if artifact_kind == ArtifactKind.CURRENT:
        return Resolution(ActionKind.SKIP, "already in current format")

    if artifact_kind == ArtifactKind.CUSTOM and not is_target:
        return Resolution(ActionKind.SKIP, "user-authored artifact not managed by the ruleset")

    if artifact_kind is None and not is_target:
        return Resolution(ActionKind.SKIP, "nothing to migrate")

    # Selective and merge leave paths alone when a custom counterpart exists.
    shadowed = has_custom_counterpart and strategy != MigrationStrategy.FULL

    if artifact_kind is None:
        if shadowed:
            return Resolution(ActionKind.SKIP, "custom counterpart present")
        return Resolution(ActionKind.CREATE, "current-format artifact missing")

    if artifact_kind == ArtifactKind.LEGACY:
        if not is_target:
            if shadowed:
                return Resolution(ActionKind.SKIP, "custom counterpart present")
            return Resolution(ActionKind.DELETE, "obsolete legacy artifact")
        if strategy == MigrationStrategy.MERGE and ArtifactKind.LEGACY in merge_rules:
            return Resolution(ActionKind.MERGE, "legacy artifact merged with current format")
        if shadowed:
            return Resolution(ActionKind.SKIP, "custom counterpart present")
        return Resolution(ActionKind.CREATE, "legacy artifact regenerated in current format")

    # Custom content at a target path.
    if strategy == MigrationStrategy.FULL:
        return Resolution(ActionKind.OVERWRITE, "custom artifact replaced by full strategy")
    if strategy == MigrationStrategy.MERGE and ArtifactKind.CUSTOM in merge_rules:
        return Resolution(ActionKind.MERGE, "custom artifact merged with current format")
    return Resolution(ActionKind.SKIP, "custom artifact preserved")
