"""Failure taxonomy shared by the patch engine components.

Errors raised below the orchestrator are ordinary exceptions. The orchestrator
catches them and records them as data on each :class:`PatchOutcome`, so every
error carries a stable ``kind`` and a ``details`` mapping that explains the
failure without access to engine internals.
"""

from __future__ import annotations

from typing import Any, Mapping

__all__ = [
    "ApplyError",
    "ContextMismatchError",
    "EmptyPathError",
    "FileExistsFailure",
    "FileNotFoundFailure",
    "HunkOutOfRangeError",
    "LookupFailure",
    "MalformedHunkError",
    "NoUsablePathError",
    "NothingParsedError",
    "PatchEngineError",
    "PathError",
    "ResolverFailure",
]


class PatchEngineError(RuntimeError):
    """Base class for every failure the engine reports."""

    kind = "patch_error"

    def __init__(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = dict(details or {})

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": dict(self.details)}


class NothingParsedError(PatchEngineError):
    """Raised when patch text contains no recognisable file section."""

    kind = "nothing_parsed"


class PathError(PatchEngineError):
    """Declared patch paths cannot be turned into a target path."""

    kind = "path_error"


class NoUsablePathError(PathError):
    kind = "no_usable_path"


class EmptyPathError(PathError):
    kind = "empty_path"


class LookupFailure(PatchEngineError):
    """The hosting environment could not supply a file's original text."""

    kind = "lookup_failed"


class FileNotFoundFailure(LookupFailure):
    kind = "file_not_found"

    def __init__(self, path: str) -> None:
        super().__init__(f"File not found in workspace: {path}", details={"path": path})


class FileExistsFailure(LookupFailure):
    """A creation patch targets a file that already has content."""

    kind = "already_exists"

    def __init__(self, path: str, *, identical: bool) -> None:
        message = f"File already exists in workspace: {path}"
        if identical:
            message += " (its content already matches the patch)"
        super().__init__(message, details={"path": path, "identical": identical})


class ResolverFailure(LookupFailure):
    kind = "resolver_failed"


class ApplyError(PatchEngineError):
    """A file's hunks could not be applied to its original text."""

    kind = "apply_error"

    def __init__(self, message: str, *, hunk_index: int, details: Mapping[str, Any] | None = None) -> None:
        payload = {"hunk_index": hunk_index}
        payload.update(details or {})
        super().__init__(message, details=payload)
        self.hunk_index = hunk_index


class ContextMismatchError(ApplyError):
    """Context or deleted line differs from the original at the cursor."""

    kind = "context_mismatch"

    def __init__(
        self,
        *,
        hunk_index: int,
        line_number: int,
        expected_line: str,
        actual_line: str | None,
    ) -> None:
        actual_label = "<end of file>" if actual_line is None else repr(actual_line)
        super().__init__(
            f"Hunk #{hunk_index + 1} does not match line {line_number}: "
            f"expected {expected_line!r}, found {actual_label}.",
            hunk_index=hunk_index,
            details={
                "line_number": line_number,
                "expected_line": expected_line,
                "actual_line": actual_line,
            },
        )
        self.line_number = line_number
        self.expected_line = expected_line
        self.actual_line = actual_line


class HunkOutOfRangeError(ApplyError):
    """Declared start line lies beyond the end of the original text."""

    kind = "hunk_out_of_range"

    def __init__(self, *, hunk_index: int, old_start: int, line_count: int) -> None:
        super().__init__(
            f"Hunk #{hunk_index + 1} starts at line {old_start} but the file has {line_count} line(s).",
            hunk_index=hunk_index,
            details={"old_start": old_start, "line_count": line_count},
        )
        self.old_start = old_start
        self.line_count = line_count


class MalformedHunkError(ApplyError):
    """Hunk bookkeeping is inconsistent with its declared ranges."""

    kind = "malformed_hunk"
