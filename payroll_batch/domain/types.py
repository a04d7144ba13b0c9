"""
payroll_batch.domain.types -- Pure frozen dataclasses for period payroll runs.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.

Invariants enforced:
    - Item results are ordered by employee code regardless of the order
      in which workers finished.
    - Report counts always add up: succeeded + failed == total.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class BatchItemStatus(str, Enum):
    """Outcome of one employee within a period run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class BatchReportStatus(str, Enum):
    """Outcome of a whole period run."""

    COMPLETED = "completed"  # Every employee processed
    PARTIALLY_COMPLETED = "partially_completed"  # Some employees failed
    FAILED = "failed"  # Every employee failed


@dataclass(frozen=True)
class BatchItemResult:
    """Result of processing a single employee.

    A failed item carries the ``PayrollError.code`` of the failure, or
    ``UNHANDLED_EXCEPTION`` for anything outside the payroll hierarchy.
    """

    employee_code: str
    status: BatchItemStatus
    record_id: UUID | None = None
    net_take_home: Decimal | None = None
    error_code: str | None = None
    error_message: str | None = None
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == BatchItemStatus.SUCCEEDED


@dataclass(frozen=True)
class BatchReport:
    """Result of ``BatchOrchestrator.process_period_payroll()``."""

    batch_id: UUID
    month: int
    year: int
    status: BatchReportStatus
    total: int
    succeeded: int
    failed: int
    items: tuple[BatchItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    @property
    def failures(self) -> tuple[BatchItemResult, ...]:
        return tuple(item for item in self.items if not item.succeeded)

    def item_for(self, employee_code: str) -> BatchItemResult | None:
        for item in self.items:
            if item.employee_code == employee_code:
                return item
        return None

    @staticmethod
    def status_for(succeeded: int, failed: int) -> BatchReportStatus:
        if failed == 0:
            return BatchReportStatus.COMPLETED
        if succeeded == 0:
            return BatchReportStatus.FAILED
        return BatchReportStatus.PARTIALLY_COMPLETED
