"""Typed records describing a parsed unified diff."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

NO_FILE = "/dev/null"

ChangeKind = Literal["context", "add", "delete"]
FileOperation = Literal["modify", "add", "delete", "rename"]


@dataclass(frozen=True, slots=True)
class ChangeLine:
    """Single hunk body line with its prefix character stripped."""

    kind: ChangeKind
    text: str


@dataclass(frozen=True, slots=True)
class Hunk:
    """Contiguous change region declared by an ``@@`` range marker."""

    old_start: int
    old_line_count: int
    new_start: int
    new_line_count: int
    lines: tuple[ChangeLine, ...] = ()
    old_missing_newline: bool = False
    new_missing_newline: bool = False

    @property
    def marks_newline(self) -> bool:
        """True when a ``\\ No newline at end of file`` marker was seen."""
        return self.old_missing_newline or self.new_missing_newline

    @property
    def old_span(self) -> int:
        """Number of original lines consumed by the body (context + delete)."""
        return sum(1 for line in self.lines if line.kind != "add")

    @property
    def new_span(self) -> int:
        """Number of result lines produced by the body (context + add)."""
        return sum(1 for line in self.lines if line.kind != "delete")

    @property
    def header(self) -> str:
        return f"@@ -{self.old_start},{self.old_line_count} +{self.new_start},{self.new_line_count} @@"

    def inverted(self) -> "Hunk":
        """Return the hunk that undoes this one (add and delete swapped)."""
        swapped = {"add": "delete", "delete": "add", "context": "context"}
        return Hunk(
            old_start=self.new_start,
            old_line_count=self.new_line_count,
            new_start=self.old_start,
            new_line_count=self.old_line_count,
            lines=tuple(ChangeLine(swapped[line.kind], line.text) for line in self.lines),  # type: ignore[arg-type]
            old_missing_newline=self.new_missing_newline,
            new_missing_newline=self.old_missing_newline,
        )


@dataclass(frozen=True, slots=True)
class FilePatch:
    """One file's change set as declared by a ``---``/``+++`` header pair."""

    old_path: str | None
    new_path: str | None
    hunks: tuple[Hunk, ...] = ()
    operation: FileOperation = "modify"

    @property
    def is_creation(self) -> bool:
        return self.operation == "add" or self.old_path == NO_FILE

    @property
    def is_deletion(self) -> bool:
        return self.operation == "delete" or self.new_path == NO_FILE

    def inverted(self) -> "FilePatch":
        """Return a patch that reverses this one."""
        operation: FileOperation = self.operation
        if operation == "add":
            operation = "delete"
        elif operation == "delete":
            operation = "add"
        return FilePatch(
            old_path=self.new_path,
            new_path=self.old_path,
            hunks=tuple(hunk.inverted() for hunk in self.hunks),
            operation=operation,
        )


__all__ = ["NO_FILE", "ChangeKind", "ChangeLine", "FileOperation", "FilePatch", "Hunk"]
