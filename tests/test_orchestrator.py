from __future__ import annotations

import json
import logging
import textwrap
from typing import Mapping, Optional

import pytest

from pastepatch.engine import (
    FileExistsFailure,
    FileNotFoundFailure,
    OutcomeStatus,
    ResolverFailure,
    apply_all,
    apply_file_patch,
    parse_patch,
)
from pastepatch.engine.orchestrator import NOTHING_PARSED_MESSAGE


def _resolver(files: Mapping[str, str]):
    def resolve(path: str) -> Optional[str]:
        return files.get(path)

    return resolve


def test_multi_file_patch_applies_every_section(multi_file_patch: str) -> None:
    summary = apply_all(multi_file_patch, _resolver({"a.txt": "1\n2\n", "b.txt": "x\ny\nz\n"}))

    assert summary.ok
    assert (summary.succeeded, summary.failed, summary.skipped) == (2, 0, 0)
    assert [(outcome.path, outcome.new_text) for outcome in summary.outcomes] == [
        ("a.txt", "1\n2\n3\n"),
        ("b.txt", "x\nz\n"),
    ]


def test_failure_in_one_file_does_not_affect_others() -> None:
    patch = textwrap.dedent(
        """\
        --- a/one.txt
        +++ b/one.txt
        @@ -1 +1 @@
        -one
        +ONE
        --- a/two.txt
        +++ b/two.txt
        @@ -1 +1 @@
        -not what the file says
        +TWO
        --- a/three.txt
        +++ b/three.txt
        @@ -1,2 +1,2 @@
         three
        -3
        +III
        """
    )
    files = {"one.txt": "one\n", "two.txt": "two\n", "three.txt": "three\n3\n"}

    summary = apply_all(patch, _resolver(files))

    assert [outcome.status for outcome in summary.outcomes] == [
        OutcomeStatus.PATCHED,
        OutcomeStatus.FAILED,
        OutcomeStatus.PATCHED,
    ]
    first, second, third = parse_patch(patch)
    assert summary.outcomes[0].new_text == apply_file_patch(files["one.txt"], first)
    assert summary.outcomes[2].new_text == apply_file_patch(files["three.txt"], third)
    failure = summary.outcomes[1]
    assert failure.new_text is None
    assert failure.error is not None
    assert failure.error.kind == "context_mismatch"
    assert not summary.ok


@pytest.mark.parametrize("raw_text", ["", "   \n\t", "hello, here is no diff at all"])
def test_nothing_parsed(raw_text: str) -> None:
    summary = apply_all(raw_text, _resolver({}))

    assert summary.nothing_parsed
    assert summary.outcomes == ()
    assert not summary.ok
    assert summary.headline() == NOTHING_PARSED_MESSAGE


def test_unusable_paths_are_skipped() -> None:
    patch = "--- /dev/null\n+++ /dev/null\n@@ -0,0 +1 @@\n+x\n"

    summary = apply_all(patch, _resolver({}))

    (outcome,) = summary.outcomes
    assert outcome.status is OutcomeStatus.SKIPPED
    assert outcome.error is not None
    assert outcome.error.kind == "no_usable_path"
    assert summary.ok
    assert summary.headline() == "Patch processed, but no files were successfully modified."


def test_missing_file_is_reported() -> None:
    summary = apply_all("--- a/gone.txt\n+++ b/gone.txt\n@@ -1 +1 @@\n-a\n+b\n", _resolver({}))

    (outcome,) = summary.outcomes
    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, FileNotFoundFailure)
    assert outcome.describe() == "FAILED gone.txt: File not found in workspace: gone.txt"


def test_resolver_errors_become_failures() -> None:
    def broken(path: str) -> Optional[str]:
        raise PermissionError(f"denied: {path}")

    summary = apply_all("--- a/x\n+++ b/x\n@@ -1 +1 @@\n-a\n+b\n", broken)

    (outcome,) = summary.outcomes
    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, ResolverFailure)
    assert "denied: x" in outcome.error.message


def test_creation_applies_against_empty_text() -> None:
    patch = "--- /dev/null\n+++ b/docs/new.md\n@@ -0,0 +1,2 @@\n+# Title\n+body\n"

    summary = apply_all(patch, _resolver({}))

    (outcome,) = summary.outcomes
    assert outcome.status is OutcomeStatus.PATCHED
    assert outcome.path == "docs/new.md"
    assert outcome.new_text == "# Title\nbody\n"


def test_deletion_produces_empty_text() -> None:
    patch = "--- a/old.txt\n+++ /dev/null\n@@ -1 +0,0 @@\n-bye\n"

    summary = apply_all(patch, _resolver({"old.txt": "bye\n"}))

    (outcome,) = summary.outcomes
    assert outcome.path == "old.txt"
    assert outcome.new_text == ""
    assert outcome.file_patch is not None
    assert outcome.file_patch.is_deletion


def test_report_lists_each_outcome() -> None:
    patch = (
        "--- a/ok.txt\n+++ b/ok.txt\n@@ -1 +1 @@\n-a\n+b\n"
        "--- a/missing.txt\n+++ b/missing.txt\n@@ -1 +1 @@\n-a\n+b\n"
        "--- /dev/null\n+++ /dev/null\n"
    )

    summary = apply_all(patch, _resolver({"ok.txt": "a\n"}))

    assert summary.format_report().splitlines() == [
        "Patch application finished. 1 file(s) patched successfully and are ready to save. "
        "1 file(s) failed. 1 file(s) skipped.",
        "- OK ok.txt: Patched (ready to save).",
        "- FAILED missing.txt: File not found in workspace: missing.txt",
        "- SKIPPED /dev/null: Patch entry has no usable file path.",
    ]
    assert summary.format_report(details=False) == summary.headline()
    assert [outcome.path for outcome in summary.patched()] == ["ok.txt"]


def test_telemetry_events_are_json(caplog: pytest.LogCaptureFixture, multi_file_patch: str) -> None:
    caplog.set_level(logging.INFO, logger="pastepatch.telemetry")

    apply_all(multi_file_patch, _resolver({"a.txt": "1\n2\n", "b.txt": "x\ny\nz\n"}))

    events = [json.loads(record.getMessage()) for record in caplog.records if record.name == "pastepatch.telemetry"]
    assert [event["event"] for event in events] == [
        "patch_parsed",
        "file_patched",
        "file_patched",
        "patch_summary",
    ]
    assert events[-1]["succeeded"] == 2
    assert all("timestamp" in event for event in events)


def test_creation_over_existing_file_fails() -> None:
    patch = "--- /dev/null\n+++ b/new.txt\n@@ -0,0 +1 @@\n+fresh\n"

    repeated = apply_all(patch, _resolver({"new.txt": "fresh\n"}))
    clashing = apply_all(patch, _resolver({"new.txt": "something else\n"}))
    empty = apply_all(patch, _resolver({"new.txt": ""}))

    (outcome,) = repeated.outcomes
    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, FileExistsFailure)
    assert outcome.error.details == {"path": "new.txt", "identical": True}
    assert clashing.outcomes[0].error is not None
    assert clashing.outcomes[0].error.details["identical"] is False
    assert empty.outcomes[0].new_text == "fresh\n"


def test_rename_with_edit_reads_old_path() -> None:
    patch = textwrap.dedent(
        """\
        diff --git a/old.txt b/new.txt
        similarity index 50%
        rename from old.txt
        rename to new.txt
        --- a/old.txt
        +++ b/new.txt
        @@ -1 +1 @@
        -a
        +b
        """
    )

    summary = apply_all(patch, _resolver({"old.txt": "a\n"}))

    (outcome,) = summary.outcomes
    assert outcome.status is OutcomeStatus.PATCHED
    assert (outcome.path, outcome.source_path, outcome.new_text) == ("new.txt", "old.txt", "b\n")


def test_pure_rename_carries_text_over() -> None:
    patch = "diff --git a/docs/a.md b/docs/b.md\nsimilarity index 100%\nrename from docs/a.md\nrename to docs/b.md\n"

    (outcome,) = apply_all(patch, _resolver({"docs/a.md": "same\r\n"})).outcomes

    assert (outcome.path, outcome.source_path, outcome.new_text) == ("docs/b.md", "docs/a.md", "same\r\n")


def test_rename_without_either_file_is_not_found() -> None:
    patch = "--- a/old.txt\n+++ b/new.txt\n@@ -1 +1 @@\n-a\n+b\n"

    (outcome,) = apply_all(patch, _resolver({})).outcomes

    assert isinstance(outcome.error, FileNotFoundFailure)
    assert outcome.source_path is None


def test_format_patch_mail_applies() -> None:
    mail = "\n".join(
        [
            "From 0123456789abcdef0123456789abcdef01234567 Mon Sep 17 00:00:00 2001",
            "From: Dev <dev@example.com>",
            "Subject: [PATCH] Count to two",
            "",
            "---",
            " a.txt | 1 +",
            " 1 file changed, 1 insertion(+)",
            "",
            "diff --git a/a.txt b/a.txt",
            "index 1111111..2222222 100644",
            "--- a/a.txt",
            "+++ b/a.txt",
            "@@ -1 +1,2 @@",
            " 1",
            "+2",
            "-- ",
            "2.43.0",
            "",
        ]
    )

    summary = apply_all(mail, _resolver({"a.txt": "1\n"}))

    assert [(outcome.status, outcome.new_text) for outcome in summary.outcomes] == [(OutcomeStatus.PATCHED, "1\n2\n")]


def test_unexpected_resolver_exception_is_recorded() -> None:
    def flaky(path: str) -> Optional[str]:
        raise ValueError("boom")

    summary = apply_all("--- a/x\n+++ b/x\n@@ -1 +1 @@\n-a\n+b\n", flaky)

    (outcome,) = summary.outcomes
    assert outcome.status is OutcomeStatus.FAILED
    assert isinstance(outcome.error, ResolverFailure)
    assert outcome.reason == "Error reading x: boom"
