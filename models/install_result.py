"""
Install result data models.

These models represent the outcome of installing printers.
Used for communication between batch threads and the main Flask thread.

Thread Safety:
    - InstallOutcome, BatchProgress and BatchResult are frozen
    - Batch threads create them, routes only read them
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from models.printer_config import Printer


DEFAULT_SUMMARY_LINES = 5


class BatchStatus(Enum):
    """
    Status of a batch install.

    Lifecycle:
        PENDING -> RUNNING -> (COMPLETED | CANCELLED)
    """

    PENDING = "pending"
    """Batch accepted, thread not started yet."""

    RUNNING = "running"
    """Printers are being installed."""

    COMPLETED = "completed"
    """Every printer has an outcome."""

    CANCELLED = "cancelled"
    """Stopped early; printers never started are reported as failed."""


class InstallPolicy(Enum):
    """How a batch schedules its printers."""

    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"

    @classmethod
    def parse(cls, value: str) -> "InstallPolicy":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown install policy {value!r}; expected 'sequential' or 'parallel'"
            )


@dataclass(frozen=True)
class InstallOutcome:
    """Result of one printer installation attempt."""

    printer_name: str
    model: str
    success: bool
    reason: str = ""
    """Human-readable failure reason (empty on success)."""

    @classmethod
    def succeeded(cls, printer: Printer) -> "InstallOutcome":
        return cls(printer_name=printer.name, model=printer.model, success=True)

    @classmethod
    def failed(cls, printer: Printer, reason: str) -> "InstallOutcome":
        return cls(
            printer_name=printer.name,
            model=printer.model,
            success=False,
            reason=reason or "unknown error",
        )

    @property
    def failure_line(self) -> str:
        """'<name>: <reason>' as shown in the summary."""
        return f"{self.printer_name}: {self.reason}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "printer_name": self.printer_name,
            "model": self.model,
            "success": self.success,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class BatchProgress:
    """Snapshot of a running batch for status polling."""

    batch_id: str
    status: BatchStatus
    total: int
    completed: int = 0
    current: str = ""
    """Printer most recently started or finished (status text)."""

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 100
        return int(self.completed * 100 / self.total)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "status": self.status.value,
            "total": self.total,
            "completed": self.completed,
            "current": self.current,
            "percent": self.percent,
        }


@dataclass(frozen=True)
class BatchResult:
    """
    Aggregate result of one batch run.

    Invariant: success_count + len(failures) == total
    """

    batch_id: str
    outcomes: Tuple[InstallOutcome, ...]
    policy: InstallPolicy = InstallPolicy.SEQUENTIAL
    cancelled: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    skipped_duplicates: Tuple[str, ...] = ()
    """Queue names dropped from the selection because they repeated."""

    @classmethod
    def from_outcomes(
        cls,
        batch_id: str,
        outcomes: List[InstallOutcome],
        policy: InstallPolicy = InstallPolicy.SEQUENTIAL,
        cancelled: bool = False,
        started_at: Optional[datetime] = None,
        skipped_duplicates: Tuple[str, ...] = (),
    ) -> "BatchResult":
        return cls(
            batch_id=batch_id,
            outcomes=tuple(outcomes),
            policy=policy,
            cancelled=cancelled,
            started_at=started_at or datetime.now(timezone.utc),
            finished_at=datetime.now(timezone.utc),
            skipped_duplicates=tuple(skipped_duplicates),
        )

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failures(self) -> Tuple[str, ...]:
        """Failure lines in recorded order ('<name>: <reason>')."""
        return tuple(o.failure_line for o in self.outcomes if not o.success)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def status(self) -> BatchStatus:
        return BatchStatus.CANCELLED if self.cancelled else BatchStatus.COMPLETED

    def summary_lines(self, limit: int = DEFAULT_SUMMARY_LINES) -> Tuple[List[str], int]:
        """
        Failure lines for display, bounded to `limit`.

        Returns:
            (lines shown, number of lines omitted)
        """
        failures = list(self.failures)
        if limit < 0:
            limit = 0
        return failures[:limit], max(0, len(failures) - limit)

    def to_dict(self, summary_limit: int = DEFAULT_SUMMARY_LINES) -> Dict[str, Any]:
        """Convert to dictionary for the status endpoint."""
        shown, omitted = self.summary_lines(summary_limit)
        return {
            "batch_id": self.batch_id,
            "status": self.status.value,
            "policy": self.policy.value,
            "total": self.total,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "failures": shown,
            "omitted_failures": omitted,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "skipped_duplicates": list(self.skipped_duplicates),
        }
