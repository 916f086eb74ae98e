"""CLI module for examforge.

This module provides the command-line interface using Typer.
"""

from __future__ import annotations

from examforge.cli.main import app

__all__ = ["app"]
