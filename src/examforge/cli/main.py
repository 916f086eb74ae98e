"""Main CLI entry point for examforge.

This module defines the Typer application and all CLI commands.
"""

from __future__ import annotations

import asyncio
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, TypeVar

import typer

from examforge import __version__
from examforge.core.batch import BatchPlanner
from examforge.core.config import Settings
from examforge.core.generate import ExamGenerationService, GenerationConfig, GenerationProgress, GenerationResult
from examforge.core.types import DifficultyLevel, QuestionType

E = TypeVar("E", bound=Enum)

# Create the main Typer app
app = typer.Typer(
    name="examforge",
    help="examforge: Generate and validate exams from study material with LLMs.",
    add_completion=False,
    no_args_is_help=True,
)

# Global state for options
state: dict[str, bool] = {
    "json": False,
    "no_color": False,
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"examforge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    no_color: Annotated[
        bool,
        typer.Option(
            "--no-color",
            help="Disable colored output.",
        ),
    ] = False,
) -> None:
    """examforge: Generate and validate exams from study material."""
    state["json"] = json_output
    state["no_color"] = no_color
    logging.basicConfig(
        level=Settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def version() -> None:
    """Show the current version."""
    typer.echo(f"examforge v{__version__}")


def parse_quota(values: list[str] | None, enum_type: type[E], option: str) -> dict[E, int]:
    """Parse ``name=count`` option values into a quota.

    Names match either the enum value (``multipleChoice``) or its member
    name in any case (``multiple_choice``).

    Raises:
        typer.BadParameter: If a value is malformed or names an unknown member.
    """
    lookup: dict[str, E] = {}
    for member in enum_type:
        lookup[str(member.value).lower()] = member
        lookup[member.name.lower()] = member

    quota: dict[E, int] = {}
    for value in values or []:
        name, sep, count = value.partition("=")
        member = lookup.get(name.strip().lower())
        if not sep or member is None or not count.strip().isdigit():
            valid = ", ".join(str(m.value) for m in enum_type)
            msg = f"Expected NAME=COUNT with NAME one of: {valid}. Got {value!r}"
            raise typer.BadParameter(msg, param_hint=option)
        quota[member] = quota.get(member, 0) + int(count)
    return quota


def _resolve_quotas(
    total: int,
    types: list[str] | None,
    difficulties: list[str] | None,
) -> tuple[dict[QuestionType, int], dict[DifficultyLevel, int]]:
    type_quota = parse_quota(types, QuestionType, "--type") or {QuestionType.MULTIPLE_CHOICE: total}
    level_quota = parse_quota(difficulties, DifficultyLevel, "--difficulty") or {DifficultyLevel.MODERATE: total}
    return type_quota, level_quota


TotalOption = Annotated[int, typer.Option("--total", "-n", min=1, help="Total number of questions.")]
TypeOption = Annotated[
    list[str] | None,
    typer.Option("--type", "-t", help="Question type quota as TYPE=COUNT, repeatable (e.g. multipleChoice=10)."),
]
DifficultyOption = Annotated[
    list[str] | None,
    typer.Option("--difficulty", "-d", help="Difficulty quota as LEVEL=COUNT, repeatable (e.g. hard=5)."),
]


@app.command()
def plan(
    total: TotalOption = 10,
    types: TypeOption = None,
    difficulties: DifficultyOption = None,
) -> None:
    """Show how a request would be split into batches.

    Examples:
        examforge plan --total 40
        examforge plan -n 20 -t multipleChoice=10 -t essay=10 -d easy=10 -d hard=10
    """
    settings = Settings()
    type_quota, level_quota = _resolve_quotas(total, types, difficulties)
    planner = BatchPlanner(settings.batch_split_threshold, settings.optimal_batch_size)
    batches = planner.plan(total, type_quota, level_quota, source_text="", file_name="request")

    rows = [
        {
            "batch": batch.batch_index + 1,
            "questions": batch.questions_requested,
            "question_types": {t.value: c for t, c in batch.question_type_quota.items()},
            "difficulties": {d.value: c for d, c in batch.difficulty_quota.items()},
        }
        for batch in batches
    ]

    if state["json"]:
        typer.echo(json.dumps({"total_questions": total, "batches": rows}, indent=2))
        return

    typer.echo()
    typer.echo(f"  {total} questions in {len(rows)} batch(es)")
    typer.echo("  " + "-" * 40)
    for row in rows:
        types_text = ", ".join(f"{k}={v}" for k, v in row["question_types"].items())
        levels_text = ", ".join(f"{k}={v}" for k, v in row["difficulties"].items())
        typer.echo(f"    #{row['batch']}: {row['questions']} questions | {types_text} | {levels_text}")
    typer.echo()


@app.command()
def generate(
    files: Annotated[list[Path], typer.Argument(help="Study files (.txt, .md, .docx).")],
    total: TotalOption = 10,
    types: TypeOption = None,
    difficulties: DifficultyOption = None,
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output file path for the generated exam."),
    ] = Path("exam.json"),
    fail_under: Annotated[
        float | None,
        typer.Option("--fail-under", help="Fail if the quality score is below this threshold (0.0-1.0)."),
    ] = None,
) -> None:
    """Generate an exam from study files with Groq.

    Requires the GROQ_API_KEY environment variable.

    Examples:
        examforge generate notes.txt --total 20 -t multipleChoice=15 -t trueFalse=5
        examforge generate ch1.docx ch2.docx -n 40 -d easy=20 -d hard=20 -o exam.json
    """
    from examforge.adapters.llm.groq import GroqLLM
    from examforge.core.rate_limiter import RateLimiter
    from examforge.core.types import ExamRequest, SourceFile
    from examforge.evaluators.models import QualityConfig
    from examforge.evaluators.quality import QualityScorer
    from examforge.generators.io import save_exam
    from examforge.generators.llm import LLMExamGenerator
    from examforge.loaders.files import FileTextExtractor
    from examforge.reporters.console import ConsoleReporter

    settings = Settings()
    type_quota, level_quota = _resolve_quotas(total, types, difficulties)
    request = ExamRequest(
        files=[SourceFile(path=path) for path in files],
        question_types=type_quota,
        difficulty_distribution=level_quota,
        total_questions=total,
    )

    try:
        llm = GroqLLM(base_url=settings.groq_base_url, model=settings.groq_model, timeout=settings.timeout_seconds)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    rate_limiter = RateLimiter(settings.max_requests_per_minute, settings.max_requests_per_day)
    scorer = QualityScorer(
        QualityConfig(
            duplicate_threshold=settings.duplicate_threshold,
            minimum_quality_score=settings.minimum_quality_score,
        )
    )
    reporter = ConsoleReporter(use_colors=not state["no_color"])

    def on_progress(progress: GenerationProgress) -> None:
        if not state["json"]:
            typer.echo(f"  {_describe_progress(progress)}")

    async def run() -> GenerationResult:
        async with llm:
            service = ExamGenerationService(
                LLMExamGenerator(llm, rate_limiter=rate_limiter),
                FileTextExtractor(),
                planner=BatchPlanner(settings.batch_split_threshold, settings.optimal_batch_size),
                scorer=scorer,
                config=GenerationConfig.from_settings(settings),
            )
            return await service.generate(request, on_progress=on_progress)

    result = asyncio.run(run())

    if result.error is not None or result.exam is None:
        if state["json"]:
            typer.echo(json.dumps({"status": "error", "error": str(result.error)}, indent=2))
        else:
            reporter.print_error(str(result.error))
        raise typer.Exit(1)

    save_exam(result.exam, output, quality=result.quality)

    exit_code = 0
    score = result.quality.overall_score if result.quality else None
    if fail_under is not None and score is not None and score < fail_under:
        exit_code = 1

    if state["json"]:
        summary = {
            "status": "pass" if exit_code == 0 else "fail",
            "exam_id": result.exam.id,
            "total_questions": result.exam.total_questions,
            "needs_review": len(result.exam.needs_review()),
            "failed_batches": result.failed_batches,
            "quality": round(score, 4) if score is not None else None,
            "output": str(output),
        }
        typer.echo(json.dumps(summary, indent=2))
    else:
        typer.echo()
        reporter.report_exam(result.exam)
        if result.failed_batches:
            reporter.print_warning(f"{len(result.failed_batches)} batch(es) failed: {', '.join(result.failed_batches)}")
        if result.quality:
            reporter.report_quality(result.quality)
        reporter.print_success(f"Exam saved to: {output}")
        typer.echo()

    raise typer.Exit(exit_code)


def _describe_progress(progress: GenerationProgress) -> str:
    counts = f"{progress.questions_generated}/{progress.total_questions_needed} questions"
    if progress.completed:
        return f"Done: {counts}"
    where = f"[{progress.current_file_index + 1}/{progress.total_files}] {progress.current_file}"
    if progress.batch_info:
        info = progress.batch_info
        return f"{where} batch {info.current_batch}/{info.total_batches} ({counts})"
    return f"{where} ({counts})"


@app.command()
def score(
    exam_file: Annotated[Path, typer.Argument(help="Exam JSON file produced by 'generate'.")],
    source: Annotated[
        list[Path],
        typer.Option("--source", "-s", help="Study file the exam was generated from, repeatable."),
    ],
    fail_under: Annotated[
        float | None,
        typer.Option("--fail-under", help="Fail if the quality score is below this threshold (0.0-1.0)."),
    ] = None,
) -> None:
    """Score an existing exam against its study material.

    Examples:
        examforge score exam.json --source notes.txt
        examforge score exam.json -s notes.txt --fail-under 0.7 --json
    """
    from examforge.core.exceptions import ExtractionError
    from examforge.core.types import SourceFile
    from examforge.evaluators.models import QualityConfig
    from examforge.evaluators.quality import QualityScorer
    from examforge.generators.io import load_exam
    from examforge.loaders.files import FileTextExtractor
    from examforge.reporters.console import ConsoleReporter

    settings = Settings()
    reporter = ConsoleReporter(use_colors=not state["no_color"])

    try:
        exam = load_exam(exam_file)
        extractor = FileTextExtractor()
        source_text = "\n\n".join(extractor.extract(SourceFile(path=path)).text for path in source)
    except (FileNotFoundError, ValueError, ExtractionError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    scorer = QualityScorer(
        QualityConfig(
            duplicate_threshold=settings.duplicate_threshold,
            minimum_quality_score=settings.minimum_quality_score,
        )
    )
    metrics = scorer.score(exam, source_text)

    exit_code = 0
    if fail_under is not None and metrics.overall_score < fail_under:
        exit_code = 1

    if state["json"]:
        results = metrics.model_dump(mode="json", exclude={"question_results"})
        results["status"] = "pass" if exit_code == 0 else "fail"
        if exit_code:
            results["fail_reason"] = f"Quality score {metrics.overall_score:.4f} < threshold {fail_under}"
        typer.echo(json.dumps(results, indent=2))
    else:
        reporter.report_quality(metrics, title=f"Exam Quality: {exam.topic}")
        if fail_under is not None:
            verdict = "PASS" if exit_code == 0 else "FAIL"
            typer.echo(f"    Threshold:     {fail_under} -> {verdict}")
        typer.echo()

    raise typer.Exit(exit_code)
