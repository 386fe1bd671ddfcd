"""
CLI module for flowx-migrate.

This module provides command-line interface functionality
using Click and Rich.
"""

from flowx_migrate.cli.main import main

__all__ = ["main"]
