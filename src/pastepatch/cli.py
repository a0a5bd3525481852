"""CLI commands for pasting unified diffs into a workspace."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from .config import DEFAULT_CONFIG_NAME, ConfigError, PastePatchSettings, load_settings
from .engine import (
    ApplyError,
    NothingParsedError,
    PathError,
    PatchSummary,
    ResolverFailure,
    apply_all,
    apply_patch_text,
    declared_target_path,
    normalize_patch_path,
    parse_patch,
)
from .engine.orchestrator import NOTHING_PARSED_MESSAGE
from .logging_utils import configure_logging
from .schema import SummaryRecord
from .structured import FilePatch
from .workspace import WorkspaceResolver, WriteReport, write_outcomes

APP_HELP = "Apply pasted multi-file unified diffs to a workspace."

app = typer.Typer(help=APP_HELP)

_CONFIG_OPTION = typer.Option(
    DEFAULT_CONFIG_NAME,
    "--config",
    "-c",
    help="Path to the pastepatch configuration file.",
)
_VERBOSE_OPTION = typer.Option(0, "--verbose", "-v", count=True, help="Increase log verbosity.")


def _load_settings(config: str) -> PastePatchSettings:
    try:
        return load_settings(Path(config))
    except ConfigError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def _read_patch(source: str, settings: PastePatchSettings) -> str:
    """Read patch text from ``source`` (``-`` for stdin) and enforce limits."""
    if source == "-":
        text = typer.get_text_stream("stdin").read()
    else:
        path = Path(source)
        if not path.is_file():
            typer.echo(f"Patch file not found: {path}")
            raise typer.Exit(code=1)
        text = path.read_bytes().decode("utf-8", errors="replace")

    if not text.strip():
        typer.echo("Patch text is empty.")
        raise typer.Exit(code=1)

    limit = settings.engine.max_patch_bytes
    size = len(text.encode("utf-8"))
    if limit > 0 and size > limit:
        typer.echo(f"Patch size {size} bytes exceeds limit of {limit} bytes.")
        raise typer.Exit(code=1)
    return text


def _resolve_workspace(workspace: Optional[Path], settings: PastePatchSettings) -> Path:
    root = workspace.resolve() if workspace is not None else settings.workspace.root
    if not root.is_dir():
        typer.echo(f"Workspace folder not found: {root}. Cannot resolve file paths from the patch.")
        raise typer.Exit(code=1)
    return root


def _render_summary(summary: PatchSummary, report: WriteReport, *, dry_run: bool, details: bool) -> None:
    typer.echo(summary.format_report(details=details))
    if summary.nothing_parsed:
        return
    if dry_run:
        if summary.succeeded:
            typer.echo("Dry run: no files were written.")
        return
    if report.written:
        typer.echo(f"Wrote {len(report.written)} file(s).")
    if report.removed:
        typer.echo(f"Removed {len(report.removed)} file(s):")
        for path in report.removed:
            typer.echo(f"- {path.as_posix()}")


@app.command()
def apply(
    patch: str = typer.Argument("-", help="Patch file to read, or '-' for stdin."),
    workspace: Optional[Path] = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Workspace root the patch paths are relative to (overrides config).",
    ),
    config: str = _CONFIG_OPTION,
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute results without writing files."),
    as_json: bool = typer.Option(False, "--json", help="Print a JSON report instead of text."),
    verbose: int = _VERBOSE_OPTION,
) -> None:
    """Apply every file section of a multi-file patch to the workspace."""
    configure_logging(verbose)
    settings = _load_settings(config)
    root = _resolve_workspace(workspace, settings)
    patch_text = _read_patch(patch, settings)

    resolver = WorkspaceResolver(root, encoding=settings.workspace.encoding)
    summary = apply_all(patch_text, resolver)
    report = WriteReport() if summary.nothing_parsed else write_outcomes(summary, resolver, dry_run=dry_run)

    if as_json:
        record = SummaryRecord.from_summary(
            summary,
            dry_run=dry_run,
            written=[path.as_posix() for path in report.written],
            removed=[path.as_posix() for path in report.removed],
        )
        typer.echo(record.model_dump_json(indent=2))
    else:
        _render_summary(summary, report, dry_run=dry_run, details=settings.report.show_details)

    if not summary.ok:
        raise typer.Exit(code=1)


@app.command("apply-file")
def apply_file(
    patch: str = typer.Argument("-", help="Patch file to read, or '-' for stdin."),
    target: Optional[Path] = typer.Option(
        None,
        "--target",
        "-t",
        help="File to patch. Defaults to the path named in the patch header.",
    ),
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Workspace root for header paths."),
    config: str = _CONFIG_OPTION,
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute the result without writing it."),
    verbose: int = _VERBOSE_OPTION,
) -> None:
    """Apply a single-file patch to one document, ignoring other sections."""
    configure_logging(verbose)
    settings = _load_settings(config)
    patch_text = _read_patch(patch, settings)

    if target is None:
        relative = declared_target_path(patch_text)
        if relative is None:
            typer.echo("Could not parse file path from patch header (--- a/path or +++ b/path).")
            raise typer.Exit(code=1)
        root = _resolve_workspace(workspace, settings)
        try:
            target_path = WorkspaceResolver(root).resolve_path(relative)
        except ResolverFailure as error:
            typer.echo(str(error))
            raise typer.Exit(code=1) from error
    else:
        target_path = target

    if not target_path.is_file():
        typer.echo(f"Target file not found: {target_path}")
        raise typer.Exit(code=1)

    encoding = settings.workspace.encoding
    try:
        original = target_path.read_bytes().decode(encoding)
    except UnicodeDecodeError as error:
        typer.echo(f"{target_path} is not valid {encoding} text.")
        raise typer.Exit(code=1) from error

    try:
        patched = apply_patch_text(original, patch_text)
    except NothingParsedError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error
    except ApplyError as error:
        typer.echo(f"Failed to apply patch to {target_path}: {error}")
        raise typer.Exit(code=1) from error

    if dry_run:
        typer.echo(f"Dry run: patch applies cleanly to {target_path}.")
        return
    target_path.write_bytes(patched.encode(encoding))
    typer.echo(f"Patch applied successfully to {target_path}!")


def _describe_file_patch(path: str, file_patch: FilePatch) -> List[str]:
    lines = [f"- {path} [{file_patch.operation}] {len(file_patch.hunks)} hunk(s)"]
    for hunk in file_patch.hunks:
        added = sum(1 for line in hunk.lines if line.kind == "add")
        removed = sum(1 for line in hunk.lines if line.kind == "delete")
        lines.append(f"    {hunk.header} (+{added}/-{removed})")
    return lines


@app.command()
def inspect(
    patch: str = typer.Argument("-", help="Patch file to read, or '-' for stdin."),
    config: str = _CONFIG_OPTION,
    verbose: int = _VERBOSE_OPTION,
) -> None:
    """List the file sections and hunks a patch contains without applying it."""
    configure_logging(verbose)
    settings = _load_settings(config)
    patch_text = _read_patch(patch, settings)

    file_patches = parse_patch(patch_text)
    if not file_patches:
        typer.echo(NOTHING_PARSED_MESSAGE)
        raise typer.Exit(code=1)

    lines: List[str] = [f"Parsed {len(file_patches)} file patch(es):"]
    for file_patch in file_patches:
        try:
            path = normalize_patch_path(file_patch.old_path, file_patch.new_path)
        except PathError as error:
            path = f"<{error.kind}>"
        lines.extend(_describe_file_patch(path, file_patch))
    typer.echo("\n".join(lines))


if __name__ == "__main__":
    app()
