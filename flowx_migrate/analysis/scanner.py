"""
Project scanner.

Walks only the locations a ruleset declares and classifies each file
found there. Shared by the analyzer and the validator so both see the
project through the same classification.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from flowx_migrate.models.artifact import ArtifactKind, ConfigArtifact
from flowx_migrate.rules.base import ClassificationRuleset
from flowx_migrate.utils.helpers import calculate_checksum, normalize_relative_path
from flowx_migrate.utils.logging import get_logger


class ProjectScanner:
    """Scans and classifies configuration artifacts."""

    def __init__(
        self,
        ruleset: ClassificationRuleset,
        exclude: Iterable[str] = (),
        logger: Optional[logging.Logger] = None,
    ):
        self.ruleset = ruleset
        self.exclude = [normalize_relative_path(e) for e in exclude]
        self.logger = logger or get_logger("scanner")

    def is_excluded(self, relative: str) -> bool:
        return any(relative == e or relative.startswith(f"{e}/") for e in self.exclude)

    def discover(self, root: Path) -> List[str]:
        """
        List project-relative paths found in the ruleset's locations.

        Anything present at a location is listed, including directories and
        symlinks; classify_file decides what can be read.

        Args:
            root: Project root directory

        Returns:
            Sorted, de-duplicated POSIX paths
        """
        found = set()

        for location in self.ruleset.locations():
            base = root / location.base
            try:
                if location.pattern is None:
                    candidates = [base] if base.exists() or base.is_symlink() else []
                elif base.is_dir():
                    candidates = list(base.glob(location.pattern))
                else:
                    candidates = []
            except OSError as e:
                self.logger.warning(f"Cannot scan {location.base}: {e}")
                continue

            for candidate in candidates:
                relative = normalize_relative_path(candidate.relative_to(root).as_posix())
                if not self.is_excluded(relative):
                    found.add(relative)

        return sorted(found)

    def is_regular_file(self, root: Path, relative: str) -> bool:
        """Whether relative names a regular file that resolves inside root."""
        file_path = root / relative
        try:
            file_path.resolve().relative_to(root.resolve())
        except (OSError, RuntimeError, ValueError):
            return False
        return file_path.is_file()

    def classify_file(self, root: Path, relative: str) -> ConfigArtifact:
        """
        Read and classify one file.

        Ambiguous content is classified unknown, and so is anything that is
        not a regular file inside the project (directories, sockets, broken
        or escaping symlinks). Those get an empty hash so they are never
        read, backed up or replaced.
        """
        file_path = root / relative

        if not self.is_regular_file(root, relative):
            self.logger.warning(f"{relative} is not a regular file inside the project; leaving it untouched")
            return ConfigArtifact(path=relative, kind=ArtifactKind.UNKNOWN, content_hash="", size_bytes=0)

        try:
            data = file_path.read_bytes()
        except OSError as e:
            self.logger.warning(f"Cannot read {relative}: {e}")
            size = 0
            try:
                size = file_path.stat().st_size
            except OSError:
                pass
            return ConfigArtifact(path=relative, kind=ArtifactKind.UNKNOWN, content_hash="", size_bytes=size)

        return ConfigArtifact(
            path=relative,
            kind=self._classify_bytes(relative, data),
            content_hash=calculate_checksum(data),
            size_bytes=len(data),
        )

    def _classify_bytes(self, relative: str, data: bytes) -> ArtifactKind:
        if not data.strip() or b"\0" in data:
            return ArtifactKind.UNKNOWN
        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError:
            return ArtifactKind.UNKNOWN

        try:
            kind = self.ruleset.classify(relative, content)
        except Exception as e:
            self.logger.warning(f"Ruleset {self.ruleset.name} failed on {relative}: {e}")
            return ArtifactKind.UNKNOWN

        return kind if kind is not None else ArtifactKind.UNKNOWN

    def scan(self, root: Path) -> Dict[str, ConfigArtifact]:
        """Discover and classify every artifact under root."""
        return {relative: self.classify_file(root, relative) for relative in self.discover(root)}
