"""
payroll_batch -- Period-wide payroll runs.

Runs the single-employee payroll pipeline for every current employee of
a period on a bounded worker pool.  Each employee gets its own session
and unit of work, so one failure never aborts or dirties the rest.

Architecture:
    payroll_batch/ is a top-level package.  Nothing in kernel/, engines/,
    modules/ or services/ imports from payroll_batch.
"""

from payroll_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchReport,
    BatchReportStatus,
)
from payroll_batch.orchestrator import BatchOrchestrator

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchOrchestrator",
    "BatchReport",
    "BatchReportStatus",
]
