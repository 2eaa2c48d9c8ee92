from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console
from rich.text import Text

from deadweight import __version__
from deadweight.audit import AnalysisCallbacks, AnalysisReport, analyze_files
from deadweight.config import ConfigError, DeadweightConfig
from deadweight.logging_utils import configure_logging
from deadweight.scanner import ScanTarget, discover_files, prepare_target
from deadweight.suppressions import DEAD_CODE, DUPLICATE_CODE

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="deadweight: find dead code and duplicated functions in Python projects.",
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

_OUTPUT_FORMATS = ("text", "json")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose logs (printed to stderr)."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only print findings."),
    ] = False,
    progress: Annotated[
        bool,
        typer.Option("--progress/--no-progress", help="Show a progress bar for long scans.", show_default=True),
    ] = True,
) -> None:
    """deadweight CLI."""

    if verbose and quiet:
        raise typer.BadParameter("Choose at most one: --verbose or --quiet.")
    configure_logging(verbose=verbose, quiet=quiet)
    ctx.obj = {"verbose": verbose, "quiet": quiet, "progress": progress}


def _cli_settings() -> dict[str, bool]:
    ctx = click.get_current_context(silent=True)
    if ctx is None or not isinstance(ctx.obj, dict):
        return {"verbose": False, "quiet": False, "progress": True}
    return {
        "verbose": bool(ctx.obj.get("verbose", False)),
        "quiet": bool(ctx.obj.get("quiet", False)),
        "progress": bool(ctx.obj.get("progress", True)),
    }


def _apply_overrides(
    config: DeadweightConfig,
    *,
    threshold: float | None,
    min_tokens: int | None,
    min_lines: int | None,
    dead_code: bool | None,
    duplicate_code: bool | None,
) -> DeadweightConfig:
    duplicate = config.duplicate_code
    if threshold is not None:
        duplicate = replace(duplicate, threshold=threshold)
    if min_tokens is not None:
        duplicate = replace(duplicate, min_tokens=min_tokens)
    if min_lines is not None:
        duplicate = replace(duplicate, min_lines=min_lines)

    analyzers = list(config.analyzers)
    for analyzer_id, enabled in ((DEAD_CODE, dead_code), (DUPLICATE_CODE, duplicate_code)):
        if enabled is True and analyzer_id not in analyzers:
            analyzers.append(analyzer_id)
        elif enabled is False and analyzer_id in analyzers:
            analyzers.remove(analyzer_id)

    return replace(config, duplicate_code=duplicate, analyzers=tuple(analyzers))


def _analyze_with_optional_progress(target: ScanTarget, *, show_progress: bool) -> AnalysisReport:
    from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn

    files = discover_files(target)
    logger.debug("discovered %d candidate file(s)", len(files))

    if not show_progress:
        return analyze_files(target, files=files)

    progress = Progress(
        TextColumn("{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
    )
    task = progress.add_task("Analyze", total=len(files))

    def _on_file_analyzed(_path: Path) -> None:
        progress.advance(task, 1)

    with progress:
        return analyze_files(target, files=files, callbacks=AnalysisCallbacks(on_file_analyzed=_on_file_analyzed))


def _render_text(report: AnalysisReport, *, console: Console, show_summary: bool) -> None:
    root = report.target.project_root
    sections = (
        ("Dead code", [issue.format(project_root=root) for issue in report.dead_code_issues]),
        ("Duplicate code", [issue.format(project_root=root) for issue in report.duplicate_code_issues]),
    )
    for title, lines in sections:
        if not lines:
            continue
        if show_summary:
            console.print(Text(title, style="bold"))
        for line in lines:
            console.print(Text(line), soft_wrap=True)
        if show_summary:
            console.print()

    if show_summary:
        summary = Text()
        summary.append(f"Analyzed {report.files_analyzed} files: ", style="dim")
        summary.append(f"{len(report.dead_code_issues)} dead-code", style="bold" if report.dead_code_issues else "green")
        summary.append(", ")
        summary.append(
            f"{len(report.duplicate_code_issues)} duplicate-code",
            style="bold" if report.duplicate_code_issues else "green",
        )
        summary.append(" issue(s)")
        console.print(summary)


def _render_json(report: AnalysisReport) -> str:
    root = report.target.project_root
    payload = {
        "tool": {"name": "deadweight", "version": __version__},
        "files_analyzed": report.files_analyzed,
        "dead_code": [issue.to_dict(project_root=root) for issue in report.dead_code_issues],
        "duplicate_code": [issue.to_dict(project_root=root) for issue in report.duplicate_code_issues],
    }
    return json.dumps(payload, indent=2, sort_keys=False)


@app.command()
def scan(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=True,
            resolve_path=True,
            help="File or directory to analyze (default: current directory).",
        ),
    ] = Path("."),
    output_format: Annotated[
        str,
        typer.Option("--format", help="Output format: text, json.", show_default=True),
    ] = "text",
    threshold: Annotated[
        float | None,
        typer.Option("--threshold", min=0.0, max=1.0, help="Duplicate similarity threshold (0-1)."),
    ] = None,
    min_tokens: Annotated[
        int | None,
        typer.Option("--min-tokens", min=1, help="Ignore function bodies with fewer normalized tokens."),
    ] = None,
    min_lines: Annotated[
        int | None,
        typer.Option("--min-lines", min=1, help="Ignore function bodies with fewer non-empty lines."),
    ] = None,
    dead_code: Annotated[
        bool | None,
        typer.Option("--dead-code/--no-dead-code", help="Run the dead-code analyzer (default: use config).", show_default=False),
    ] = None,
    duplicate_code: Annotated[
        bool | None,
        typer.Option(
            "--duplicate-code/--no-duplicate-code",
            help="Run the duplicate-code analyzer (default: use config).",
            show_default=False,
        ),
    ] = None,
) -> None:
    """Report dead files, dead classes/functions, unused variables and duplicated functions."""

    settings = _cli_settings()
    normalized_format = output_format.strip().lower()
    if normalized_format not in _OUTPUT_FORMATS:
        raise typer.BadParameter("Unsupported format. Use: text, json.")

    try:
        target = prepare_target(path)
    except ConfigError as exc:
        err_console.print(f"[red]Config error:[/red] {exc}")
        raise typer.Exit(code=2) from exc

    config = _apply_overrides(
        target.config,
        threshold=threshold,
        min_tokens=min_tokens,
        min_lines=min_lines,
        dead_code=dead_code,
        duplicate_code=duplicate_code,
    )
    target = replace(target, config=config)

    report = _analyze_with_optional_progress(
        target,
        show_progress=settings["progress"] and not settings["quiet"] and normalized_format == "text",
    )

    if normalized_format == "json":
        typer.echo(_render_json(report))
    else:
        _render_text(report, console=console, show_summary=not settings["quiet"])

    if report.issue_count:
        raise typer.Exit(code=1)
