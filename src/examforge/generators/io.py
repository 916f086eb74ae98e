"""I/O utilities for exams.

This module provides functions for saving and loading exams as JSON.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from examforge.core.types import Exam

if TYPE_CHECKING:
    from examforge.evaluators.models import QualityMetrics


def save_exam(exam: Exam, path: Path | str, quality: QualityMetrics | None = None) -> None:
    """Save an exam to a JSON file.

    Args:
        exam: The exam to save.
        path: Output file path. Parent directories are created.
        quality: Optional quality report, stored without per-question results.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = exam.model_dump(mode="json")
    if quality is not None:
        data["quality"] = quality.model_dump(mode="json", exclude={"question_results"})

    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def load_exam(path: Path | str) -> Exam:
    """Load an exam from a JSON file.

    Args:
        path: Input file path.

    Returns:
        Loaded Exam.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file format is invalid.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Exam file not found: {path}"
        raise FileNotFoundError(msg)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return Exam.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        msg = f"Invalid exam file {path}: {e}"
        raise ValueError(msg) from e
