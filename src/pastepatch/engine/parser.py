"""Parse multi-file unified diff text into :class:`FilePatch` records.

The parser never raises on malformed input. Sections it cannot make sense of
are dropped and logged, so a patch pasted with surrounding chatter still yields
the file sections it contains. A hunk body ends as soon as the counts declared
in its ``@@`` marker are used up. That keeps a deleted line starting with
``--- `` from being mistaken for a new header, and keeps the ``-- `` trailer
of ``git format-patch`` mail out of the last hunk.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from ..structured import NO_FILE, ChangeLine, FileOperation, FilePatch, Hunk
from .paths import is_usable_path, strip_diff_prefix

__all__ = ["declared_target_path", "parse_patch", "split_patch_lines"]

LOGGER = logging.getLogger(__name__)

_DIFF_HEADER = re.compile(r"^diff --git (\S+) (\S+)$")
_HUNK_HEADER = re.compile(
    r"^@@ -(?P<old_start>\d+)(?:,(?P<old_count>\d+))? "
    r"\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))? @@"
)
_BINARY_MARKERS = ("Binary files ", "GIT binary patch")
# git format-patch separates the diff from its version trailer with this line.
_MAIL_SIGNATURE = "-- "


@dataclass(slots=True)
class _GitPreamble:
    """Extended ``diff --git`` header collected before the ``---`` line."""

    old_path: str
    new_path: str
    operation: FileOperation | None = None
    binary: bool = False


def split_patch_lines(text: str) -> list[str]:
    """Split ``text`` on LF, dropping one trailing CR per line and the final empty entry."""
    if not text:
        return []
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _default_count(value: str | None) -> int:
    """Return the number of lines represented in a hunk header."""
    return int(value) if value is not None else 1


def _declared_path(header_line: str) -> str:
    """Return the operand of a ``---``/``+++`` line without any timestamp."""
    operand = header_line[4:]
    if "\t" in operand:
        operand = operand.split("\t", 1)[0]
    return operand.strip()


def _is_file_header(lines: list[str], index: int) -> bool:
    return (
        index + 1 < len(lines)
        and lines[index].startswith("---")
        and lines[index + 1].startswith("+++")
    )


def _starts_section(lines: list[str], index: int) -> bool:
    return lines[index].startswith("diff --git ") or _is_file_header(lines, index)


def _parse_hunk(lines: list[str], index: int, match: re.Match[str]) -> tuple[Hunk, int]:
    """Parse the hunk whose ``@@`` marker sits at ``index``."""
    old_count = _default_count(match.group("old_count"))
    new_count = _default_count(match.group("new_count"))
    old_remaining = old_count
    new_remaining = new_count
    body: list[ChangeLine] = []
    old_missing_newline = False
    new_missing_newline = False

    index += 1
    while index < len(lines):
        line = lines[index]
        if line.startswith("\\"):
            # "\ No newline at end of file" refers to the side of the line before it.
            previous = body[-1].kind if body else None
            old_missing_newline = old_missing_newline or previous in ("delete", "context")
            new_missing_newline = new_missing_newline or previous in ("add", "context")
            index += 1
            continue
        if old_remaining <= 0 and new_remaining <= 0:
            break
        if line.startswith("@@") or line.startswith("diff --git "):
            break
        if _is_file_header(lines, index) and index + 2 < len(lines) and lines[index + 2].startswith("@@"):
            break

        prefix = line[:1]
        if prefix == "+":
            body.append(ChangeLine("add", line[1:]))
            new_remaining -= 1
        elif prefix == "-":
            body.append(ChangeLine("delete", line[1:]))
            old_remaining -= 1
        elif prefix == " ":
            body.append(ChangeLine("context", line[1:]))
            old_remaining -= 1
            new_remaining -= 1
        else:
            body.append(ChangeLine("context", line))
            old_remaining -= 1
            new_remaining -= 1
        index += 1

    hunk = Hunk(
        old_start=int(match.group("old_start")),
        old_line_count=old_count,
        new_start=int(match.group("new_start")),
        new_line_count=new_count,
        lines=tuple(body),
        old_missing_newline=old_missing_newline,
        new_missing_newline=new_missing_newline,
    )
    return hunk, index


def _parse_hunks(lines: list[str], index: int) -> tuple[list[Hunk], int]:
    """Collect hunks until the next file section begins."""
    hunks: list[Hunk] = []
    while index < len(lines):
        if _starts_section(lines, index):
            break
        line = lines[index]
        match = _HUNK_HEADER.match(line)
        if match:
            hunk, index = _parse_hunk(lines, index, match)
            hunks.append(hunk)
            continue
        if line.startswith("@@"):
            LOGGER.debug("Ignoring malformed hunk marker: %s", line)
        elif line[:1] in ("+", "-") and line != _MAIL_SIGNATURE:
            LOGGER.warning("Ignoring change line past the declared hunk counts at line %d: %s", index + 1, line)
        index += 1
    return hunks, index


def _resolve_operation(
    old_path: str | None,
    new_path: str | None,
    preamble: _GitPreamble | None,
) -> FileOperation:
    if old_path == NO_FILE:
        return "add"
    if new_path == NO_FILE:
        return "delete"
    if preamble is not None and preamble.operation is not None:
        return preamble.operation
    if old_path and new_path and is_usable_path(old_path) and is_usable_path(new_path):
        if strip_diff_prefix(old_path) != strip_diff_prefix(new_path):
            return "rename"
    return "modify"


def _update_preamble(preamble: _GitPreamble, line: str) -> None:
    if line.startswith("new file mode"):
        preamble.operation = "add"
    elif line.startswith("deleted file mode"):
        preamble.operation = "delete"
    elif line.startswith("rename from "):
        preamble.operation = "rename"
        preamble.old_path = line[len("rename from ") :].strip()
    elif line.startswith("rename to "):
        preamble.operation = "rename"
        preamble.new_path = line[len("rename to ") :].strip()
    elif line.startswith(_BINARY_MARKERS):
        preamble.binary = True


def _flush_preamble(preamble: _GitPreamble | None, patches: list[FilePatch]) -> None:
    """Emit a header-only ``diff --git`` block as a zero-hunk patch."""
    if preamble is None:
        return
    if preamble.binary:
        LOGGER.warning("Dropping binary patch section for %s", preamble.new_path)
        return
    patches.append(
        FilePatch(
            old_path=preamble.old_path,
            new_path=preamble.new_path,
            operation=preamble.operation or "modify",
        )
    )


def parse_patch(raw_text: str) -> list[FilePatch]:
    """Parse ``raw_text`` into file patches in the order they appear.

    Returns an empty list when no ``---``/``+++`` pair or ``diff --git`` block
    can be found.
    """
    lines = split_patch_lines(raw_text or "")
    patches: list[FilePatch] = []
    preamble: _GitPreamble | None = None

    index = 0
    while index < len(lines):
        line = lines[index]

        match = _DIFF_HEADER.match(line)
        if match:
            _flush_preamble(preamble, patches)
            preamble = _GitPreamble(old_path=match.group(1), new_path=match.group(2))
            index += 1
            continue

        if _is_file_header(lines, index):
            # Binary blocks never carry ---/+++ lines, so this header starts a new file.
            if preamble is not None and preamble.binary:
                _flush_preamble(preamble, patches)
                preamble = None
            old_path = _declared_path(line)
            new_path = _declared_path(lines[index + 1])
            hunks, index = _parse_hunks(lines, index + 2)
            patches.append(
                FilePatch(
                    old_path=old_path or None,
                    new_path=new_path or None,
                    hunks=tuple(hunks),
                    operation=_resolve_operation(old_path, new_path, preamble),
                )
            )
            preamble = None
            continue

        if preamble is not None:
            _update_preamble(preamble, line)
        elif _HUNK_HEADER.match(line):
            LOGGER.debug("Ignoring hunk outside of a file section at line %d", index + 1)
        index += 1

    _flush_preamble(preamble, patches)
    LOGGER.debug("Parsed %d file patch(es)", len(patches))
    return patches


def declared_target_path(patch_text: str) -> str | None:
    """Return the path named in the first header lines of a single-file patch.

    Only the first three lines are inspected. The ``---`` operand is preferred
    and ``+++`` is used only when no ``---`` line appears. Returns ``None`` when
    the headers name no usable file.
    """
    candidate: str | None = None
    for line in split_patch_lines(patch_text or "")[:3]:
        if line.startswith("--- "):
            candidate = _declared_path(line)
            break
        if line.startswith("+++ ") and candidate is None:
            candidate = _declared_path(line)
    if candidate is None or not is_usable_path(candidate):
        return None
    return strip_diff_prefix(candidate).replace("\\", "/") or None
