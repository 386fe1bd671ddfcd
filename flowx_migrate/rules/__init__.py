"""
Classification rulesets for the FlowX migration engine.

Rulesets and merge functions are referenced by import path
(``package.module:attribute``) so projects can plug in their own.
"""

import importlib
from typing import Any, Dict, Mapping, Optional

from flowx_migrate.core.exceptions import ConfigurationError
from flowx_migrate.models.artifact import ArtifactKind
from flowx_migrate.rules.base import ClassificationRuleset, MergeFunction, ScanLocation
from flowx_migrate.rules.flowx import FlowXRuleset


def import_object(import_path: str) -> Any:
    """Import ``module:attribute`` and return the attribute."""
    module_name, _, attribute = import_path.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(f"Invalid import path '{import_path}', expected module:attribute")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import module '{module_name}': {e}")

    target: Any = module
    for part in attribute.split("."):
        try:
            target = getattr(target, part)
        except AttributeError:
            raise ConfigurationError(f"Module '{module_name}' has no attribute '{attribute}'")
    return target


def load_ruleset(import_path: Optional[str] = None) -> ClassificationRuleset:
    """Instantiate a ruleset from an import path (defaults to FlowXRuleset)."""
    if not import_path:
        return FlowXRuleset()

    target = import_object(import_path)
    ruleset = target() if isinstance(target, type) else target
    if not isinstance(ruleset, ClassificationRuleset):
        raise ConfigurationError(f"'{import_path}' is not a ClassificationRuleset")
    return ruleset


def load_merge_rules(import_paths: Mapping[Any, str]) -> Dict[ArtifactKind, MergeFunction]:
    """Resolve merge functions keyed by artifact kind."""
    rules: Dict[ArtifactKind, MergeFunction] = {}
    for kind, import_path in import_paths.items():
        try:
            artifact_kind = ArtifactKind(kind)
        except ValueError:
            raise ConfigurationError(f"Unknown artifact kind for merge rule: {kind}")
        function = import_object(import_path)
        if not callable(function):
            raise ConfigurationError(f"Merge rule '{import_path}' is not callable")
        rules[artifact_kind] = function
    return rules


__all__ = [
    "ClassificationRuleset",
    "FlowXRuleset",
    "MergeFunction",
    "ScanLocation",
    "import_object",
    "load_ruleset",
    "load_merge_rules",
]
