"""File-system host adapter: read originals from and persist results to a workspace."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from .engine.errors import ResolverFailure
from .engine.orchestrator import PatchSummary

__all__ = ["WorkspaceResolver", "WriteReport", "write_outcomes"]

LOGGER = logging.getLogger(__name__)


def _validate_relative_path(relative: str) -> PurePosixPath:
    """Enforce path safety rules for patch targets."""
    path = PurePosixPath(relative)
    if path.is_absolute() or relative.startswith("/") or (len(relative) > 1 and relative[1] == ":"):
        raise ResolverFailure(f"Absolute paths are not permitted in patches: {relative}", details={"path": relative})
    parts = list(path.parts)
    if any(part == ".." for part in parts):
        raise ResolverFailure(f"Path escaping detected in patch: {relative}", details={"path": relative})
    if parts and parts[0] == ".git":
        raise ResolverFailure("Patches may not target the .git directory.", details={"path": relative})
    return path


@dataclass(slots=True)
class WorkspaceResolver:
    """Resolve normalised patch paths against a workspace root directory."""

    root: Path
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        self.root = Path(self.root).resolve()

    def resolve_path(self, relative: str) -> Path:
        safe = _validate_relative_path(relative)
        return self.root.joinpath(*safe.parts)

    def __call__(self, relative: str) -> str | None:
        target = self.resolve_path(relative)
        if not target.is_file():
            return None
        # Bytes keep CRLF terminators intact; read_text would translate them.
        data = target.read_bytes()
        try:
            return data.decode(self.encoding)
        except UnicodeDecodeError as error:
            raise ResolverFailure(
                f"{relative} is not valid {self.encoding} text.",
                details={"path": relative, "encoding": self.encoding},
            ) from error


@dataclass(slots=True)
class WriteReport:
    """Paths touched while persisting a summary."""

    written: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)

    @property
    def touched_paths(self) -> tuple[Path, ...]:
        return tuple(sorted([*self.written, *self.removed], key=lambda item: item.as_posix()))


def write_outcomes(summary: PatchSummary, resolver: WorkspaceResolver, *, dry_run: bool = False) -> WriteReport:
    """Persist every patched outcome in ``summary`` into the workspace.

    Deletion patches remove the target file; everything else is written with
    the resolver's encoding, creating parent directories as needed. A rename
    read from its old path removes that file once the new one is written.
    """
    report = WriteReport()
    for outcome in summary.patched():
        target = resolver.resolve_path(outcome.path)
        relative = target.relative_to(resolver.root)
        source = resolver.resolve_path(outcome.source_path) if outcome.source_path else None
        deleting = outcome.file_patch is not None and outcome.file_patch.is_deletion and not outcome.new_text
        if dry_run:
            if source is not None:
                LOGGER.info("Dry run: would move %s to %s", outcome.source_path, relative.as_posix())
            else:
                LOGGER.info("Dry run: would %s %s", "remove" if deleting else "write", relative.as_posix())
            continue
        if deleting:
            target.unlink(missing_ok=True)
            report.removed.append(relative)
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes((outcome.new_text or "").encode(resolver.encoding))
        report.written.append(relative)
        if source is not None:
            source.unlink(missing_ok=True)
            report.removed.append(source.relative_to(resolver.root))
    return report
