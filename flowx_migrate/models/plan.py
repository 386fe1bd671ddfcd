"""
Plan models for the FlowX migration engine.

A MigrationPlan is pure data: an ordered list of actions over disjoint
target paths, computed from a scan and a strategy without any writes.
"""

from collections import Counter
from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from flowx_migrate.core.exceptions import PlanConflictError
from flowx_migrate.models.artifact import ArtifactKind


class MigrationStrategy(str, Enum):
    """Policy mapping artifact classification to action kind."""
    FULL = "full"
    SELECTIVE = "selective"
    MERGE = "merge"


class ActionKind(str, Enum):
    """Kind of mutation a plan action performs."""
    CREATE = "create"
    OVERWRITE = "overwrite"
    DELETE = "delete"
    MERGE = "merge"
    SKIP = "skip"


# Deletions run first, then in-place rewrites, then new files.
ACTION_ORDER: Dict[ActionKind, int] = {
    ActionKind.DELETE: 0,
    ActionKind.OVERWRITE: 1,
    ActionKind.MERGE: 1,
    ActionKind.CREATE: 2,
    ActionKind.SKIP: 3,
}

MUTATING_KINDS = frozenset({
    ActionKind.CREATE,
    ActionKind.OVERWRITE,
    ActionKind.DELETE,
    ActionKind.MERGE,
})


class MigrationAction(BaseModel):
    """A single planned mutation of one target path."""
    model_config = ConfigDict(frozen=True)

    kind: ActionKind
    path: str
    reason: str = ""
    artifact_kind: Optional[ArtifactKind] = Field(
        default=None, description="Classification at scan time; None if the path did not exist"
    )
    content: Optional[str] = Field(
        default=None, description="Current-format content (the template for merges)"
    )
    merge_rule: Optional[ArtifactKind] = None
    expected_hash: Optional[str] = None
    is_target: bool = Field(default=False, description="Path is a target of the ruleset")

    @property
    def is_mutating(self) -> bool:
        return self.kind in MUTATING_KINDS

    def downgrade(self, reason: str) -> "MigrationAction":
        """Return a skip action for the same path."""
        return self.model_copy(update={
            "kind": ActionKind.SKIP,
            "reason": reason,
            "content": None,
            "merge_rule": None,
        })


def _sort_key(action: MigrationAction):
    return (ACTION_ORDER[action.kind], action.path.count("/"), action.path)


class MigrationPlan(BaseModel):
    """Ordered, disjoint set of actions."""

    strategy: MigrationStrategy = MigrationStrategy.SELECTIVE
    actions: List[MigrationAction] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_disjoint(self) -> "MigrationPlan":
        duplicates = sorted(
            path for path, count in Counter(a.path for a in self.actions).items() if count > 1
        )
        if duplicates:
            raise PlanConflictError(
                f"Plan has {len(duplicates)} path(s) targeted by more than one action",
                paths=duplicates,
            )
        return self

    @classmethod
    def build(
        cls,
        actions: Iterable[MigrationAction],
        strategy: MigrationStrategy = MigrationStrategy.SELECTIVE,
    ) -> "MigrationPlan":
        """Create a plan with actions in execution order."""
        return cls(strategy=strategy, actions=sorted(actions, key=_sort_key))

    @property
    def mutating_actions(self) -> List[MigrationAction]:
        return [a for a in self.actions if a.is_mutating]

    @property
    def skipped_actions(self) -> List[MigrationAction]:
        return [a for a in self.actions if a.kind == ActionKind.SKIP]

    def touched_paths(self) -> List[str]:
        """Paths of every non-skip action, in plan order."""
        return [a.path for a in self.mutating_actions]

    def get(self, path: str) -> Optional[MigrationAction]:
        for action in self.actions:
            if action.path == path:
                return action
        return None

    def counts(self) -> Dict[str, int]:
        counter = Counter(a.kind.value for a in self.actions)
        return {kind.value: counter.get(kind.value, 0) for kind in ActionKind}
