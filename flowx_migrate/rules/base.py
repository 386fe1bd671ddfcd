"""
Base Ruleset Interface

Defines the classification capability the analyzer depends on. A ruleset
decides where configuration lives, what counts as legacy, current or
custom content, and what the current-format artifacts look like.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from flowx_migrate.models.artifact import ArtifactKind


# (path, existing content, current template) -> merged content
MergeFunction = Callable[[str, str, str], str]


@dataclass(frozen=True)
class ScanLocation:
    """A recognized configuration location.

    With no pattern, ``base`` names a single file. Otherwise ``pattern`` is
    globbed under the ``base`` directory.
    """
    base: str
    pattern: Optional[str] = None


class ClassificationRuleset(ABC):
    """Abstract base class for classification rulesets."""

    #: Directory whose presence marks an initialized project, if any.
    config_root: Optional[str] = None

    @property
    def name(self) -> str:
        """Return the ruleset name."""
        return self.__class__.__name__

    @abstractmethod
    def locations(self) -> List[ScanLocation]:
        """
        Return the locations the analyzer may scan.

        Returns:
            List of scan locations relative to the project root
        """
        pass

    @abstractmethod
    def classify(self, path: str, content: str) -> Optional[ArtifactKind]:
        """
        Classify the content found at a project-relative path.

        Args:
            path: Normalized project-relative path
            content: Decoded file content

        Returns:
            The artifact kind, or None when the content is not recognized
        """
        pass

    @abstractmethod
    def templates(self) -> Dict[str, str]:
        """
        Return the current-format artifacts keyed by target path.

        Returns:
            Mapping of project-relative path to current-format content
        """
        pass

    def custom_counterpart(self, path: str) -> Optional[str]:
        """Return the path of a user artifact that stands in for a target or obsolete file."""
        return None
