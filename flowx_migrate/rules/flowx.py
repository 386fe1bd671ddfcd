"""
FlowX ruleset.

Classifies the prompt and command configuration of a FlowX project:
``CLAUDE.md``, ``.roomodes``, the guides under ``.claude/`` and the slash
commands under ``.claude/commands/``.

Markdown artifacts carry a ``<!-- flowx:format=N -->`` marker on their first
line. Format 2 is current, format 1 is legacy. Files written before markers
existed are recognized as legacy by the SPARC banner the old generator
emitted; anything else at a managed path is treated as user-authored.
"""

import json
import re
from typing import Dict, List, Optional

from flowx_migrate.models.artifact import ArtifactKind
from flowx_migrate.rules.base import ClassificationRuleset, ScanLocation


CURRENT_FORMAT = 2
LEGACY_FORMAT = 1

FORMAT_MARKER_RE = re.compile(r"^<!--\s*flowx:format=(\d+)\s*-->\s*$")

# Text the pre-marker generator wrote into every file it produced.
LEGACY_SIGNATURES = (
    "SPARC Development Environment",
    "claude-flow",
)

STANDARD_MODES = ("architect", "code", "tdd", "debug", "docs-writer")

COMMANDS_DIR = ".claude/commands"

COMMANDS = {
    "sparc": ("SPARC Orchestrator", "Run the full SPARC workflow: specification, pseudocode, architecture, refinement and completion."),
    "sparc-architect": ("SPARC Architect", "Design system architecture with clear module boundaries before any code is written."),
    "sparc-code": ("SPARC Coder", "Implement modules in small, test-backed increments following the agreed architecture."),
    "sparc-tdd": ("SPARC TDD", "Drive implementation with failing tests first, then the minimal code to pass them."),
    "flowx-help": ("FlowX Help", "Show available FlowX commands, modes and their options."),
    "flowx-memory": ("FlowX Memory", "Store and query project memory shared between agents and sessions."),
    "flowx-swarm": ("FlowX Swarm", "Coordinate several agents on one objective with batched tool calls."),
}

# Commands renamed in format 2; their legacy files have no current counterpart.
OBSOLETE_COMMANDS = ("claude-flow-help", "claude-flow-memory", "claude-flow-swarm")

GUIDES = {
    ".claude/BATCHTOOLS_GUIDE.md": (
        "BatchTools Guide",
        "Group independent file reads, searches and edits into a single batched call.\n"
        "Batching keeps context small and cuts round trips for large refactors.",
    ),
    ".claude/BATCHTOOLS_BEST_PRACTICES.md": (
        "BatchTools Best Practices",
        "- Batch operations that do not depend on each other's output.\n"
        "- Keep sequential steps sequential.\n"
        "- Prefer one wide search over many narrow ones.",
    ),
}

CLAUDE_MD_SECTIONS = (
    ("Project Overview", "Describe the project, its goals and its main components here."),
    ("SPARC Development", "Use the /sparc commands to move from specification to completion.\n"
                          "Each phase has a dedicated mode in .roomodes."),
    ("Memory Integration", "Use /flowx-memory to persist decisions and share context between sessions."),
)

MODE_DESCRIPTIONS = {
    "architect": "Designs system architecture and module boundaries",
    "code": "Implements features in small, tested increments",
    "tdd": "Writes failing tests first, then minimal passing code",
    "debug": "Reproduces, isolates and fixes defects",
    "docs-writer": "Writes and maintains project documentation",
}


def format_marker(version: int = CURRENT_FORMAT) -> str:
    return f"<!-- flowx:format={version} -->"


def render_markdown(title: str, body: str, version: int = CURRENT_FORMAT) -> str:
    """Render a markdown artifact with its format marker."""
    return f"{format_marker(version)}\n# {title}\n\n{body.rstrip()}\n"


def render_command(name: str, version: int = CURRENT_FORMAT) -> str:
    title, description = COMMANDS[name]
    body = (
        f"## Description\n\n{description}\n\n"
        "## Usage\n\n"
        f"`/{name} <task>`\n\n"
        "## Performance\n\n"
        "Batch independent operations and keep each step small for efficient execution."
    )
    return render_markdown(title, body, version)


def render_claude_md(version: int = CURRENT_FORMAT) -> str:
    body = "\n\n".join(f"## {heading}\n\n{text}" for heading, text in CLAUDE_MD_SECTIONS)
    return render_markdown("FlowX Project Configuration", body, version)


def render_roomodes() -> str:
    data = {
        "version": CURRENT_FORMAT,
        "modes": {
            mode: {"name": mode, "description": MODE_DESCRIPTIONS[mode]}
            for mode in STANDARD_MODES
        },
    }
    return json.dumps(data, indent=2) + "\n"


class FlowXRuleset(ClassificationRuleset):
    """Default ruleset for FlowX prompt configuration."""

    config_root = ".claude"

    def __init__(self):
        self._templates = self._build_templates()
        self._obsolete = {f"{COMMANDS_DIR}/{name}.md" for name in OBSOLETE_COMMANDS}

    def _build_templates(self) -> Dict[str, str]:
        templates = {
            f"{COMMANDS_DIR}/{name}.md": render_command(name) for name in COMMANDS
        }
        for path, (title, body) in GUIDES.items():
            templates[path] = render_markdown(title, body)
        templates["CLAUDE.md"] = render_claude_md()
        templates[".roomodes"] = render_roomodes()
        return templates

    def locations(self) -> List[ScanLocation]:
        return [
            ScanLocation("CLAUDE.md"),
            ScanLocation(".roomodes"),
            ScanLocation(".claude", "*.md"),
            ScanLocation(COMMANDS_DIR, "**/*.md"),
        ]

    def templates(self) -> Dict[str, str]:
        return dict(self._templates)

    def custom_counterpart(self, path: str) -> Optional[str]:
        # /sparc-code may also live at .claude/commands/sparc/code.md
        prefix = f"{COMMANDS_DIR}/sparc-"
        if path.startswith(prefix) and path.endswith(".md"):
            return f"{COMMANDS_DIR}/sparc/{path[len(prefix):]}"
        return None

    def classify(self, path: str, content: str) -> Optional[ArtifactKind]:
        if path == ".roomodes":
            return self._classify_roomodes(content)
        return self._classify_markdown(path, content)

    def _classify_markdown(self, path: str, content: str) -> Optional[ArtifactKind]:
        first_line = content.split("\n", 1)[0].strip()
        match = FORMAT_MARKER_RE.match(first_line)
        if match:
            version = int(match.group(1))
            if version == CURRENT_FORMAT:
                return ArtifactKind.CURRENT
            if version == LEGACY_FORMAT:
                return ArtifactKind.LEGACY
            return None

        managed = path in self._templates or path in self._obsolete
        if managed and any(signature in content for signature in LEGACY_SIGNATURES):
            return ArtifactKind.LEGACY
        return ArtifactKind.CUSTOM

    def _classify_roomodes(self, content: str) -> Optional[ArtifactKind]:
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict):
            return None

        if "version" in data:
            if data.get("version") == CURRENT_FORMAT and isinstance(data.get("modes"), dict):
                return ArtifactKind.CURRENT
            return None

        if set(data) <= set(STANDARD_MODES):
            return ArtifactKind.LEGACY
        return ArtifactKind.CUSTOM
