"""Console reporter for examforge.

This module provides terminal output for exam quality reports,
with colored score tables and status indicators.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from examforge.core.types import Exam
    from examforge.evaluators.models import QualityMetrics


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    CYAN = "\033[36m"


@dataclass
class Threshold:
    """Threshold configuration for score status indicators.

    Attributes:
        good: Minimum value for good status (green).
        warning: Minimum value for warning status (yellow).
            Below this is considered bad (red).
    """

    good: float = 0.8
    warning: float = 0.6


DEFAULT_THRESHOLDS: dict[str, Threshold] = {
    "overall": Threshold(good=0.8, warning=0.7),
    "uniqueness": Threshold(good=0.8, warning=0.6),
    "accuracy": Threshold(good=0.8, warning=0.6),
    "difficulty": Threshold(good=0.8, warning=0.6),
    "coverage": Threshold(good=0.7, warning=0.5),
}


class ConsoleReporter:
    """Reporter that prints exam quality reports to the terminal.

    Attributes:
        use_colors: Whether to use ANSI colors in output.
        thresholds: Threshold configuration for status indicators.
        output: Output stream (defaults to stdout).

    Example:
        >>> reporter = ConsoleReporter()
        >>> reporter.report_quality(metrics)
          Exam Quality
          Overall            0.84  OK
          Uniqueness         1.00  OK
          Source accuracy    0.75  WARN
          ...
    """

    def __init__(
        self,
        use_colors: bool = True,
        thresholds: dict[str, Threshold] | None = None,
        output: TextIO | None = None,
    ) -> None:
        """Initialize ConsoleReporter.

        Args:
            use_colors: Whether to use ANSI colors. Defaults to True.
            thresholds: Custom thresholds for status indicators.
            output: Output stream. Defaults to sys.stdout.
        """
        self.output = output or sys.stdout
        self.use_colors = use_colors and _supports_color(self.output)
        self.thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}

    def _color(self, text: str, color: str) -> str:
        if self.use_colors:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _get_status(self, name: str, value: float) -> tuple[str, str]:
        threshold = self.thresholds.get(name, Threshold())
        if value >= threshold.good:
            return ("OK", Colors.GREEN)
        if value >= threshold.warning:
            return ("WARN", Colors.YELLOW)
        return ("LOW", Colors.RED)

    def _print(self, text: str = "") -> None:
        print(text, file=self.output)

    def report_quality(self, metrics: QualityMetrics, title: str = "Exam Quality") -> None:
        """Report a quality report as a score table with recommendations.

        Args:
            metrics: The quality metrics to report.
            title: Title for the report section.
        """
        self._print()
        self._print(self._color(f"  {title}", Colors.BOLD))
        self._print(
            self._color(
                f"  ({metrics.total_questions} questions, {metrics.valid_questions} valid)",
                Colors.DIM,
            )
        )

        rows = [
            ("Overall", metrics.overall_score, "overall"),
            ("Uniqueness", metrics.uniqueness, "uniqueness"),
            ("Source accuracy", metrics.accuracy, "accuracy"),
            ("Difficulty", metrics.difficulty_accuracy, "difficulty"),
            ("Coverage", metrics.coverage, "coverage"),
        ]
        for label, value, name in rows:
            status, color = self._get_status(name, value)
            self._print(f"  {label:<18} {self._color(f'{value:.2f}', color)}  {self._color(status, color)}")

        self._print()
        if metrics.is_valid:
            self.print_success("Exam meets the minimum quality score")
        else:
            self.print_error("Exam is below the minimum quality score")

        if metrics.duplicates_found or metrics.source_issues or metrics.difficulty_issues:
            self.print_info(
                f"{metrics.duplicates_found} duplicate(s), {metrics.source_issues} source issue(s), "
                f"{metrics.difficulty_issues} difficulty mismatch(es)"
            )
        for recommendation in metrics.recommendations:
            self.print_warning(recommendation)
        if metrics.should_regenerate:
            self.print_warning("Regeneration recommended")

    def report_exam(self, exam: Exam) -> None:
        """Report a one-line summary of a generated exam."""
        review = len(exam.needs_review())
        self._print(self._color(f"  {exam.topic}", Colors.BOLD + Colors.CYAN))
        self._print(f"  {exam.total_questions} questions from {', '.join(exam.metadata.source_files) or '-'}")
        if review:
            self.print_warning(f"{review} placeholder question(s) need manual review")

    def print_success(self, text: str) -> None:
        """Print a success message."""
        self._print(self._color(f"  [ok] {text}", Colors.GREEN))

    def print_warning(self, text: str) -> None:
        """Print a warning message."""
        self._print(self._color(f"  [!] {text}", Colors.YELLOW))

    def print_error(self, text: str) -> None:
        """Print an error message."""
        self._print(self._color(f"  [x] {text}", Colors.RED))

    def print_info(self, text: str) -> None:
        """Print an info message."""
        self._print(self._color(f"  [i] {text}", Colors.DIM))


def print_quality_report(metrics: QualityMetrics, file: TextIO | None = None) -> None:
    """Print a quality report to a stream.

    Args:
        metrics: The quality metrics to report.
        file: Output stream. Defaults to sys.stdout.
    """
    ConsoleReporter(output=file).report_quality(metrics)


def _supports_color(stream: TextIO) -> bool:
    """Check if the output stream supports ANSI colors."""
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    if os.environ.get("NO_COLOR"):
        return False
    return os.environ.get("TERM") != "dumb"
