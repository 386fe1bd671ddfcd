"""
Utilities module for the FlowX migration engine.

This module contains utility functions and helper classes
used throughout the engine.
"""

from flowx_migrate.utils.helpers import (
    calculate_checksum,
    calculate_file_checksum,
    format_bytes,
    normalize_relative_path,
    resolve_under,
    atomic_write_bytes,
    utc_from_timestamp,
)
from flowx_migrate.utils.logging import (
    setup_logging,
    get_logger,
    LogCategory,
    StructuredFormatter,
)

__all__ = [
    # Helper functions
    "calculate_checksum",
    "calculate_file_checksum",
    "format_bytes",
    "normalize_relative_path",
    "resolve_under",
    "atomic_write_bytes",
    "utc_from_timestamp",
    # Logging utilities
    "setup_logging",
    "get_logger",
    "LogCategory",
    "StructuredFormatter",
]
