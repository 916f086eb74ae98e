"""Reporters module for examforge.

This module provides output formatters for exam quality reports.
"""

from __future__ import annotations

from examforge.reporters.console import ConsoleReporter, print_quality_report

__all__ = [
    "ConsoleReporter",
    "print_quality_report",
]
