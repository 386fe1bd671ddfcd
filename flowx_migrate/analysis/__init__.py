"""
Project analysis for the FlowX migration engine.
"""

from flowx_migrate.analysis.analyzer import MigrationAnalyzer, load_analysis, save_analysis
from flowx_migrate.analysis.scanner import ProjectScanner
from flowx_migrate.analysis.strategies import Resolution, resolve_action

__all__ = [
    "MigrationAnalyzer",
    "ProjectScanner",
    "Resolution",
    "load_analysis",
    "resolve_action",
    "save_analysis",
]
