"""Derive canonical workspace-relative paths from diff header operands."""

from __future__ import annotations

from ..structured import NO_FILE
from .errors import EmptyPathError, NoUsablePathError

__all__ = ["is_usable_path", "normalize_patch_path", "strip_diff_prefix"]

_DIFF_PREFIXES = ("a/", "b/")


def is_usable_path(entry: str | None) -> bool:
    """Return True when ``entry`` names a real file rather than the sentinel."""
    if entry is None:
        return False
    candidate = entry.strip()
    return bool(candidate) and candidate != NO_FILE


def strip_diff_prefix(entry: str) -> str:
    """Remove a single leading ``a/`` or ``b/`` prefix."""
    if entry.startswith(_DIFF_PREFIXES):
        return entry[2:]
    return entry


def normalize_patch_path(old_path: str | None, new_path: str | None) -> str:
    """Return the target path for a file patch.

    The new-side path wins unless it is missing or ``/dev/null``, in which case
    the old-side path is used. The chosen path loses one ``a/``/``b/`` prefix
    and backslashes become forward slashes. No file-system access happens here.
    """
    chosen = next((entry for entry in (new_path, old_path) if entry is not None and is_usable_path(entry)), None)
    if chosen is None:
        raise NoUsablePathError(
            "Patch entry has no usable file path.",
            details={"old_path": old_path, "new_path": new_path},
        )

    normalised = strip_diff_prefix(chosen.strip()).replace("\\", "/")
    if not normalised.strip():
        raise EmptyPathError(
            "Patch entry path is empty after removing its prefix.",
            details={"old_path": old_path, "new_path": new_path},
        )
    return normalised
