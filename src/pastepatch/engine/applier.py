"""Apply a file's hunks to its original text with exact context matching."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Sequence

from ..structured import FilePatch, Hunk
from .errors import (
    ApplyError,
    ContextMismatchError,
    HunkOutOfRangeError,
    MalformedHunkError,
    NothingParsedError,
)
from .parser import parse_patch

__all__ = [
    "SplitText",
    "apply_file_patch",
    "apply_hunks",
    "apply_patch_text",
    "detect_newline",
    "normalise_line_endings",
    "order_hunks",
    "split_text",
]

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SplitText:
    """Lines of a document plus the terminator needed to rebuild it."""

    lines: tuple[str, ...]
    newline: str
    trailing_newline: bool

    def render(self) -> str:
        if not self.lines:
            return ""
        text = self.newline.join(self.lines)
        return text + self.newline if self.trailing_newline else text


def detect_newline(text: str) -> str:
    """Return ``\\r\\n`` when the text uses CRLF terminators, otherwise ``\\n``."""
    return "\r\n" if "\r\n" in text else "\n"


def normalise_line_endings(text: str) -> str:
    """Convert CRLF/CR sequences to LF for deterministic matching."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_text(text: str, newline: str | None = None) -> SplitText:
    """Split ``text`` on ``newline`` (detected when omitted)."""
    terminator = newline or detect_newline(text)
    if not text:
        return SplitText(lines=(), newline=terminator, trailing_newline=False)
    trailing = text.endswith(terminator)
    body = text[: -len(terminator)] if trailing else text
    return SplitText(lines=tuple(body.split(terminator)), newline=terminator, trailing_newline=trailing)


def order_hunks(hunks: Sequence[Hunk]) -> list[tuple[int, Hunk]]:
    """Return ``(parsed_index, hunk)`` pairs stable-sorted by ``old_start``.

    Raises :class:`MalformedHunkError` when two hunks claim overlapping ranges
    of the original file.
    """
    ordered = sorted(enumerate(hunks), key=lambda item: item[1].old_start)
    previous: tuple[int, Hunk] | None = None
    for index, hunk in ordered:
        if previous is not None:
            prev_index, prev_hunk = previous
            prev_end = _anchor(prev_hunk) + prev_hunk.old_line_count
            if _anchor(hunk) < prev_end:
                raise MalformedHunkError(
                    f"Hunk #{index + 1} overlaps hunk #{prev_index + 1} in the original file.",
                    hunk_index=index,
                    details={"overlaps": prev_index},
                )
        previous = (index, hunk)
    return ordered


def _anchor(hunk: Hunk) -> int:
    """Zero-based index of the first original line a hunk touches."""
    # A zero-length old range inserts after line ``old_start``.
    if hunk.old_line_count == 0:
        return hunk.old_start
    return max(hunk.old_start - 1, 0)


def _check_counts(index: int, hunk: Hunk) -> None:
    old_span = hunk.old_span
    new_span = hunk.new_span
    if old_span != hunk.old_line_count or new_span != hunk.new_line_count:
        raise MalformedHunkError(
            f"Hunk #{index + 1} line count mismatch: expected "
            f"-{hunk.old_line_count}/+{hunk.new_line_count} but saw -{old_span}/+{new_span}.",
            hunk_index=index,
            details={
                "expected_old": hunk.old_line_count,
                "expected_new": hunk.new_line_count,
                "seen_old": old_span,
                "seen_new": new_span,
            },
        )


def apply_hunks(source: SplitText, hunks: Sequence[Hunk]) -> SplitText:
    """Apply ``hunks`` to the lines of ``source`` and return the patched text.

    The result keeps the original's trailing terminator, and an empty original
    gains one once lines are added. A hunk that reaches the end of the file and
    carries a ``\\ No newline at end of file`` marker decides the terminator
    from its new side instead.
    """
    original = source.lines
    output: list[str] = []
    cursor = 0
    trailing_newline = source.trailing_newline or not original

    for index, hunk in order_hunks(hunks):
        _check_counts(index, hunk)
        anchor = _anchor(hunk)
        if hunk.old_start > len(original):
            raise HunkOutOfRangeError(hunk_index=index, old_start=hunk.old_start, line_count=len(original))

        output.extend(original[cursor:anchor])
        cursor = anchor

        for change in hunk.lines:
            if change.kind == "add":
                output.append(change.text)
                continue
            actual = original[cursor] if cursor < len(original) else None
            if actual != change.text:
                raise ContextMismatchError(
                    hunk_index=index,
                    line_number=cursor + 1,
                    expected_line=change.text,
                    actual_line=actual,
                )
            if change.kind == "context":
                output.append(actual)
            cursor += 1

        if cursor == len(original) and hunk.marks_newline:
            trailing_newline = not hunk.new_missing_newline

    output.extend(original[cursor:])
    return SplitText(lines=tuple(output), newline=source.newline, trailing_newline=trailing_newline)


def _apply_once(original_text: str, patch: FilePatch, *, newline: str | None, target_newline: str) -> str:
    result = apply_hunks(split_text(original_text, newline), patch.hunks)
    return replace(result, newline=target_newline).render()


def apply_file_patch(original_text: str, patch: FilePatch) -> str:
    """Apply ``patch`` to ``original_text`` using the line-ending fallback policy.

    The first attempt runs against the text normalised to LF and rebuilds the
    result with the terminator detected in the original. If it fails, a second
    attempt runs against the raw text split on LF only, so carriage returns stay
    part of each line. When both fail the first attempt's error is raised.
    """
    if not patch.hunks:
        return original_text

    newline = detect_newline(original_text)
    try:
        return _apply_once(normalise_line_endings(original_text), patch, newline="\n", target_newline=newline)
    except ApplyError as first_error:
        LOGGER.debug("Normalised apply failed (%s); retrying against raw text", first_error)
        try:
            return _apply_once(original_text, patch, newline="\n", target_newline="\n")
        except ApplyError:
            raise first_error from None


def _with_synthetic_headers(patch_text: str) -> str:
    """Give a hunk-only patch placeholder headers so it can be parsed."""
    stripped = patch_text.lstrip()
    if stripped.startswith("@@"):
        return f"--- a/_\n+++ b/_\n{stripped}"
    return patch_text


def apply_patch_text(original_text: str, patch_text: str) -> str:
    """Apply a single-file patch to one explicitly chosen document.

    Header paths are ignored; only the first file section is used. The patch
    and the document are both normalised to LF for the first attempt and both
    used raw for the retry.
    """
    newline = detect_newline(original_text)
    attempts = (
        (normalise_line_endings(original_text), normalise_line_endings(patch_text), newline),
        (original_text, patch_text, "\n"),
    )
    first_error: ApplyError | None = None
    for original, candidate_text, target_newline in attempts:
        patches = parse_patch(_with_synthetic_headers(candidate_text))
        if not patches:
            continue
        patch = patches[0]
        if len(patches) > 1:
            LOGGER.warning("Single-file apply ignores %d additional file section(s)", len(patches) - 1)
        if not patch.hunks:
            return original_text
        try:
            return _apply_once(original, patch, newline="\n", target_newline=target_newline)
        except ApplyError as error:
            if first_error is None:
                first_error = error
    if first_error is not None:
        raise first_error
    raise NothingParsedError("Could not parse any file changes from the provided patch text.")
