"""
Pytest fixtures for the payroll test suite.

Provides:
- In-memory SQLite sessions with the payroll tables and immutability
  listeners installed
- A file-backed SQLite engine for tests that need several connections
  (batch runs on a worker pool)
- Deterministic clock, structured log capture
- Builders for employee master and attendance rows
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest

from payroll_config import default_policy
from payroll_engines.performance import PerformanceRules
from payroll_kernel.db.engine import (
    create_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_modules.compensation.models import (
    AttendanceRecord,
    AttendanceStatus,
    EmployeeCategory,
    EmployeeMaster,
)
from payroll_modules.compensation.orm import AttendanceRecordModel, EmployeeMasterModel
from payroll_modules.compensation.readers import SqlAttendanceReader, SqlEmployeeMasterReader
from payroll_modules.compensation.service import UnifiedPayrollService

# Test actor ID for all test operations
TEST_ACTOR_ID = UUID("00000000-0000-4000-a000-000000000001")

PERIOD_MONTH = 3
PERIOD_YEAR = 2025


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.process_employee_payroll(...)
            logs = captured_logs()
            assert any(r["message"] == "payroll_computation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    eng = init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed database, shared safely by sessions on several threads."""
    eng = init_engine_from_url(f"sqlite:///{tmp_path / 'payroll.db'}")
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def session(engine):
    s = get_session()
    yield s
    s.close()


@pytest.fixture
def session_factory(file_engine):
    return get_session_factory()


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2025, 4, 1, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy():
    return default_policy()


@pytest.fixture
def actor_id():
    return TEST_ACTOR_ID


# =============================================================================
# Builders
# =============================================================================


def make_employee(
    employee_code: str = "EMP-001",
    category: EmployeeCategory = EmployeeCategory.BACKEND,
    base_salary: str = "30000",
    target_sales: str = "0",
    rules: PerformanceRules | None = None,
    **overrides,
) -> EmployeeMaster:
    return EmployeeMaster(
        id=overrides.pop("id", uuid4()),
        employee_code=employee_code,
        category=category,
        base_salary=Decimal(base_salary),
        target_sales=Decimal(target_sales),
        performance_rules=rules or PerformanceRules(),
        name=overrides.pop("name", f"Employee {employee_code}"),
        **overrides,
    )


def make_attendance(
    employee_code: str = "EMP-001",
    total_days: str = "30",
    present_days: str | None = None,
    eligible_days: str | None = None,
    actual_sales: str = "0",
    status: AttendanceStatus = AttendanceStatus.APPROVED,
    month: int = PERIOD_MONTH,
    year: int = PERIOD_YEAR,
) -> AttendanceRecord:
    eligible = eligible_days if eligible_days is not None else total_days
    return AttendanceRecord(
        id=uuid4(),
        employee_code=employee_code,
        month=month,
        year=year,
        total_days=Decimal(total_days),
        present_days=Decimal(present_days if present_days is not None else eligible),
        eligible_days=Decimal(eligible),
        actual_sales=Decimal(actual_sales),
        status=status,
    )


def seed(session, employee: EmployeeMaster, attendance: AttendanceRecord | None = None) -> None:
    """Persist master and attendance rows and commit."""
    session.add(EmployeeMasterModel.from_dto(employee, created_by_id=TEST_ACTOR_ID))
    if attendance is not None:
        session.add(AttendanceRecordModel.from_dto(attendance, created_by_id=TEST_ACTOR_ID))
    session.commit()


@pytest.fixture
def seed_employee(session):
    """Seed one employee (and optionally attendance) into the test database."""

    def _seed(employee: EmployeeMaster, attendance: AttendanceRecord | None = None):
        seed(session, employee, attendance)
        return employee

    return _seed


@pytest.fixture
def service(session, policy, clock):
    """UnifiedPayrollService over the in-memory database."""
    return UnifiedPayrollService(
        session,
        employees=SqlEmployeeMasterReader(session),
        attendance=SqlAttendanceReader(session),
        policy=policy,
        clock=clock,
    )


@pytest.fixture
def backend_employee(seed_employee):
    """BACKEND employee, 30000 base, 28 of 30 days eligible, attendance approved."""
    return seed_employee(
        make_employee("EMP-001", EmployeeCategory.BACKEND, "30000"),
        make_attendance("EMP-001", total_days="30", eligible_days="28"),
    )


@pytest.fixture
def sales_employee(seed_employee):
    """SALES employee, 50000 base, 120% of a 100000 target, full attendance."""
    return seed_employee(
        make_employee("EMP-S01", EmployeeCategory.SALES, "50000", target_sales="100000"),
        make_attendance("EMP-S01", total_days="30", actual_sales="120000"),
    )
