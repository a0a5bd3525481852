"""Drive parsing and application across every file section of a patch."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..structured import FilePatch
from .applier import apply_file_patch
from .errors import (
    ApplyError,
    FileExistsFailure,
    FileNotFoundFailure,
    LookupFailure,
    PatchEngineError,
    PathError,
    ResolverFailure,
)
from .parser import parse_patch
from .paths import normalize_patch_path
from .telemetry import emit_patch_event

__all__ = [
    "NOTHING_PARSED_MESSAGE",
    "OutcomeStatus",
    "PatchOutcome",
    "PatchSummary",
    "PathResolver",
    "apply_all",
]

LOGGER = logging.getLogger(__name__)

NOTHING_PARSED_MESSAGE = "Could not parse any file changes from the provided patch text."

PathResolver = Callable[[str], Optional[str]]
"""Maps a normalised path to the file's current text, or ``None`` when missing."""


class OutcomeStatus(str, Enum):
    """Per-file result kinds."""

    PATCHED = "patched"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class PatchOutcome:
    """Result of attempting one file section."""

    path: str
    status: OutcomeStatus
    new_text: str | None = None
    error: PatchEngineError | None = None
    file_patch: FilePatch | None = None
    # Set when a rename was read from its old path; the host moves the file.
    source_path: str | None = None

    @property
    def reason(self) -> str | None:
        return self.error.message if self.error is not None else None

    def describe(self) -> str:
        """Return a one-line human readable description."""
        if self.status is OutcomeStatus.PATCHED:
            return f"OK {self.path}: Patched (ready to save)."
        label = "FAILED" if self.status is OutcomeStatus.FAILED else "SKIPPED"
        return f"{label} {self.path}: {self.reason or 'unknown error'}"


@dataclass(frozen=True, slots=True)
class PatchSummary:
    """Ordered per-file outcomes for one patch run."""

    outcomes: tuple[PatchOutcome, ...] = ()
    nothing_parsed: bool = False

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def succeeded(self) -> int:
        return self._count(OutcomeStatus.PATCHED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def ok(self) -> bool:
        return not self.nothing_parsed and self.failed == 0

    def patched(self) -> tuple[PatchOutcome, ...]:
        return tuple(outcome for outcome in self.outcomes if outcome.status is OutcomeStatus.PATCHED)

    def headline(self) -> str:
        if self.nothing_parsed:
            return NOTHING_PARSED_MESSAGE
        if self.succeeded == 0 and self.failed == 0:
            return "Patch processed, but no files were successfully modified."
        message = (
            f"Patch application finished. {self.succeeded} file(s) patched successfully "
            f"and are ready to save. {self.failed} file(s) failed."
        )
        if self.skipped:
            message += f" {self.skipped} file(s) skipped."
        return message

    def format_report(self, *, details: bool = True) -> str:
        lines = [self.headline()]
        if details:
            lines.extend(f"- {outcome.describe()}" for outcome in self.outcomes)
        return "\n".join(lines)


def _declared_label(file_patch: FilePatch) -> str:
    return file_patch.new_path or file_patch.old_path or "<unknown>"


def _read(resolver: PathResolver, path: str) -> str | None:
    try:
        return resolver(path)
    except FileNotFoundError:
        return None
    except LookupFailure:
        raise
    except Exception as error:
        # Whatever a resolver raises stays a per-file failure.
        raise ResolverFailure(f"Error reading {path}: {error}", details={"path": path}) from error


def _rename_source(file_patch: FilePatch, path: str) -> str | None:
    """Old-side path of a rename, when it differs from the target path."""
    if file_patch.operation != "rename":
        return None
    try:
        source = normalize_patch_path(file_patch.old_path, None)
    except PathError:
        return None
    return source if source != path else None


def _creation_matches(file_patch: FilePatch, existing: str) -> bool:
    try:
        return apply_file_patch("", file_patch) == existing
    except ApplyError:
        return False


def _resolve_original(resolver: PathResolver, path: str, file_patch: FilePatch) -> tuple[str, str | None]:
    """Return the original text and, for renames, the path it was read from."""
    text = _read(resolver, path)
    if file_patch.is_creation:
        if text:
            raise FileExistsFailure(path, identical=_creation_matches(file_patch, text))
        return "", None
    if text is not None:
        return text, None

    source = _rename_source(file_patch, path)
    if source is not None:
        text = _read(resolver, source)
        if text is not None:
            return text, source
    raise FileNotFoundFailure(path)


def _apply_one(file_patch: FilePatch, resolver: PathResolver) -> PatchOutcome:
    try:
        path = normalize_patch_path(file_patch.old_path, file_patch.new_path)
    except PathError as error:
        label = _declared_label(file_patch)
        LOGGER.warning("Skipping patch entry %s: %s", label, error)
        emit_patch_event("file_skipped", path=label, error=error.to_dict())
        return PatchOutcome(path=label, status=OutcomeStatus.SKIPPED, error=error, file_patch=file_patch)

    try:
        original, source_path = _resolve_original(resolver, path, file_patch)
        new_text = apply_file_patch(original, file_patch)
    except (LookupFailure, ApplyError) as error:
        LOGGER.warning("Failed to apply patch to %s: %s", path, error)
        emit_patch_event("file_failed", path=path, error=error.to_dict())
        return PatchOutcome(path=path, status=OutcomeStatus.FAILED, error=error, file_patch=file_patch)

    emit_patch_event(
        "file_patched",
        path=path,
        source_path=source_path,
        operation=file_patch.operation,
        hunks=len(file_patch.hunks),
    )
    return PatchOutcome(
        path=path,
        status=OutcomeStatus.PATCHED,
        new_text=new_text,
        file_patch=file_patch,
        source_path=source_path,
    )


def apply_all(raw_text: str, resolver: PathResolver) -> PatchSummary:
    """Apply every file section of ``raw_text`` and summarise the results.

    Each section is handled independently and in parse order; a failure in one
    file never stops later files from being attempted. Per-file problems are
    recorded on the returned summary rather than raised.
    """
    file_patches = parse_patch(raw_text) if raw_text and raw_text.strip() else []
    if not file_patches:
        LOGGER.warning(NOTHING_PARSED_MESSAGE)
        emit_patch_event("nothing_parsed", patch_bytes=len((raw_text or "").encode("utf-8")))
        return PatchSummary(nothing_parsed=True)

    emit_patch_event("patch_parsed", files=len(file_patches))
    outcomes = tuple(_apply_one(file_patch, resolver) for file_patch in file_patches)
    summary = PatchSummary(outcomes=outcomes)
    emit_patch_event(
        "patch_summary",
        succeeded=summary.succeeded,
        failed=summary.failed,
        skipped=summary.skipped,
    )
    return summary
