"""
payroll_batch.domain -- Pure types for period payroll runs.

ZERO I/O.  All types are frozen dataclasses.
"""

from payroll_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchReport,
    BatchReportStatus,
)

__all__ = [
    "BatchItemResult",
    "BatchItemStatus",
    "BatchReport",
    "BatchReportStatus",
]
