"""
Artifact models for the FlowX migration engine.

This module defines the classification of configuration artifacts
discovered while scanning a project.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ArtifactKind(str, Enum):
    """Classification of a configuration artifact."""
    LEGACY = "legacy"
    CURRENT = "current"
    CUSTOM = "custom"
    UNKNOWN = "unknown"


class ConfigArtifact(BaseModel):
    """One discrete unit of project configuration found during a scan."""
    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Project-relative POSIX path")
    kind: ArtifactKind
    content_hash: str = Field(..., description="sha256 of the file content")
    size_bytes: int = Field(..., ge=0)
