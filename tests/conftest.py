"""
Pytest configuration and fixtures for the flowx-migrate tests.

Provides a small key/value ruleset over ``*.cfg`` files, temporary project
trees built from it and for the FlowX ruleset, and helpers to hash a tree
before and after an operation.
"""

import hashlib
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from flowx_migrate.models.artifact import ArtifactKind
from flowx_migrate.rules.base import ClassificationRuleset, ScanLocation
from flowx_migrate.rules.flowx import render_command, render_markdown


CURRENT_A = "version=2\nname=a\n"
CURRENT_B = "version=2\nname=b\n"
LEGACY_A = "version=1\nname=a\n"
CUSTOM_B = "# hand-tuned\nname=b\ntimeout=30\n"
LEGACY_OLD = "version=1\nname=old\n"


class KeyValueRuleset(ClassificationRuleset):
    """Ruleset over a.cfg, b.cfg and an obsolete old.cfg."""

    config_root = "conf.d"

    def __init__(self, counterparts: Optional[Dict[str, str]] = None):
        self.counterparts = counterparts or {}

    def locations(self) -> List[ScanLocation]:
        return [
            ScanLocation("a.cfg"),
            ScanLocation("b.cfg"),
            ScanLocation("old.cfg"),
            ScanLocation("conf.d", "*.cfg"),
        ]

    def classify(self, path: str, content: str) -> Optional[ArtifactKind]:
        first_line = content.splitlines()[0].strip()
        if first_line == "version=2":
            return ArtifactKind.CURRENT
        if first_line == "version=1":
            return ArtifactKind.LEGACY
        if first_line.startswith("version="):
            return None
        if first_line == "explode":
            raise RuntimeError("classifier crashed")
        return ArtifactKind.CUSTOM

    def templates(self) -> Dict[str, str]:
        return {"a.cfg": CURRENT_A, "b.cfg": CURRENT_B}

    def custom_counterpart(self, path: str) -> Optional[str]:
        return self.counterparts.get(path)


def append_merge(path: str, existing: str, template: str) -> str:
    """Merge function used by tests: template first, then the user's extra keys."""
    template_keys = {line.split("=", 1)[0] for line in template.splitlines() if "=" in line}
    extra = [
        line for line in existing.splitlines()
        if "=" in line and line.split("=", 1)[0] not in template_keys
    ]
    return template + "".join(f"{line}\n" for line in extra)


def failing_merge(path: str, existing: str, template: str) -> str:
    raise RuntimeError("merge exploded")


def hash_tree(root: Path, exclude: str = ".claude-backup") -> Dict[str, str]:
    """Map every file under root (outside exclude) to its sha256."""
    hashes = {}
    for file_path in sorted(root.rglob("*")):
        relative = file_path.relative_to(root).as_posix()
        if relative == exclude or relative.startswith(f"{exclude}/"):
            continue
        if file_path.is_file():
            hashes[relative] = hashlib.sha256(file_path.read_bytes()).hexdigest()
    return hashes


@pytest.fixture
def ruleset() -> KeyValueRuleset:
    return KeyValueRuleset()


@pytest.fixture
def test_logger() -> logging.Logger:
    return logging.getLogger("flowx_migrate.tests")


@pytest.fixture
def write_files() -> Callable[[Path, Dict[str, str]], Path]:
    """Write a mapping of relative path to text under a root."""
    def _write(root: Path, files: Dict[str, str]) -> Path:
        for relative, content in files.items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return root
    return _write


@pytest.fixture
def project_dir(tmp_path: Path, write_files) -> Path:
    """Project with a legacy a.cfg and a user-authored b.cfg."""
    root = tmp_path / "project"
    root.mkdir()
    return write_files(root, {"a.cfg": LEGACY_A, "b.cfg": CUSTOM_B})


@pytest.fixture
def tree_hashes() -> Callable[..., Dict[str, str]]:
    return hash_tree


@pytest.fixture
def flowx_project(tmp_path: Path, write_files) -> Path:
    """FlowX project with legacy, custom, obsolete and unknown artifacts."""
    root = tmp_path / "flowx-project"
    root.mkdir()
    return write_files(root, {
        "CLAUDE.md": "# Claude Code Configuration - SPARC Development Environment\n\nOld instructions.\n",
        ".roomodes": '{"architect": {}, "code": {}}\n',
        ".claude/commands/sparc.md": render_command("sparc", version=1),
        ".claude/commands/sparc-tdd.md": "# My own TDD flow\n\nCustom steps.\n",
        ".claude/commands/claude-flow-help.md": render_markdown("Claude Flow Help", "Old help.", version=1),
        ".claude/commands/notes.md": "<!-- flowx:format=7 -->\n# From the future\n",
        "src/main.py": "print('untouched')\n",
    })
