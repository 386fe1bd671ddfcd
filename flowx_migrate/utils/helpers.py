"""
Helper utilities for the FlowX migration engine.

This module contains small file-system helpers shared by the analyzer,
runner, validator and backup store.
"""

import hashlib
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Union


def calculate_checksum(data: bytes, algorithm: str = "sha256") -> str:
    """Calculate the hex checksum of an in-memory byte string."""
    hash_obj = hashlib.new(algorithm)
    hash_obj.update(data)
    return hash_obj.hexdigest()


def calculate_file_checksum(file_path: Union[str, Path], algorithm: str = "sha256") -> str:
    """
    Calculate checksum for a file.

    Args:
        file_path: Path to the file
        algorithm: Hash algorithm (md5, sha1, sha256, sha512)

    Returns:
        Hexadecimal checksum string
    """
    hash_obj = hashlib.new(algorithm)

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(4096), b""):
            hash_obj.update(chunk)

    return hash_obj.hexdigest()


def format_bytes(bytes_count: int) -> str:
    """Format bytes into human-readable string."""
    size = float(bytes_count)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"


def normalize_relative_path(path: Union[str, Path]) -> str:
    """
    Normalize a project-relative path to POSIX form.

    Raises:
        ValueError: If the path is absolute or escapes the project root
    """
    posix = PurePosixPath(str(path).replace("\\", "/"))
    if posix.is_absolute():
        raise ValueError(f"Expected a relative path, got: {path}")

    parts = []
    for part in posix.parts:
        if part in ("", "."):
            continue
        if part == "..":
            if not parts:
                raise ValueError(f"Path escapes the project root: {path}")
            parts.pop()
            continue
        parts.append(part)

    if not parts:
        raise ValueError(f"Empty relative path: {path}")
    return "/".join(parts)


def resolve_under(root: Path, relative: str) -> Path:
    """Join a normalized relative path onto root."""
    return root.joinpath(*normalize_relative_path(relative).split("/"))


def atomic_write_bytes(target: Path, data: bytes) -> None:
    """Write data to target through a temp file in the same directory."""
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def utc_from_timestamp(seconds: float) -> datetime:
    """Convert a POSIX timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
