"""Unified diff patch engine: parse, normalise paths, apply, summarise."""

from .applier import apply_file_patch, apply_patch_text
from .errors import (
    ApplyError,
    ContextMismatchError,
    EmptyPathError,
    FileExistsFailure,
    FileNotFoundFailure,
    HunkOutOfRangeError,
    LookupFailure,
    MalformedHunkError,
    NoUsablePathError,
    NothingParsedError,
    PatchEngineError,
    PathError,
    ResolverFailure,
)
from .orchestrator import OutcomeStatus, PatchOutcome, PatchSummary, PathResolver, apply_all
from .parser import declared_target_path, parse_patch
from .paths import normalize_patch_path

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
    "OutcomeStatus",
    "PatchEngineError",
    "PatchOutcome",
    "PatchSummary",
    "PathError",
    "PathResolver",
    "ResolverFailure",
    "apply_all",
    "apply_file_patch",
    "apply_patch_text",
    "declared_target_path",
    "normalize_patch_path",
    "parse_patch",
]
