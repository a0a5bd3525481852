"""Serialisable records describing a patch run, used for JSON reports."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .engine.orchestrator import OutcomeStatus, PatchOutcome, PatchSummary


def utc_now() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class ErrorRecord(RecordModel):
    kind: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class OutcomeRecord(RecordModel):
    """One file's result."""

    path: str
    status: OutcomeStatus
    source_path: Optional[str] = None
    operation: Optional[str] = None
    hunks: int = 0
    error: Optional[ErrorRecord] = None

    @classmethod
    def from_outcome(cls, outcome: PatchOutcome) -> "OutcomeRecord":
        error = ErrorRecord(**outcome.error.to_dict()) if outcome.error is not None else None
        file_patch = outcome.file_patch
        return cls(
            path=outcome.path,
            status=outcome.status,
            source_path=outcome.source_path,
            operation=file_patch.operation if file_patch is not None else None,
            hunks=len(file_patch.hunks) if file_patch is not None else 0,
            error=error,
        )


class SummaryRecord(RecordModel):
    """Whole-run report with aggregate counts."""

    headline: str
    nothing_parsed: bool = False
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    dry_run: bool = False
    written: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    outcomes: List[OutcomeRecord] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_summary(
        cls,
        summary: PatchSummary,
        *,
        dry_run: bool = False,
        written: List[str] | None = None,
        removed: List[str] | None = None,
    ) -> "SummaryRecord":
        return cls(
            headline=summary.headline(),
            nothing_parsed=summary.nothing_parsed,
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=summary.skipped,
            dry_run=dry_run,
            written=list(written or []),
            removed=list(removed or []),
            outcomes=[OutcomeRecord.from_outcome(outcome) for outcome in summary.outcomes],
        )
