"""
Typed Exception Hierarchy for the Payroll Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll errors are routed by kind: a missing employee is reported back to HR,
unapproved attendance goes to the attendance approver, and a locked record
means the period has been frozen for disbursement.  Callers must be able to
branch on the error without parsing message strings.

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA (employee_code, month, year, ...)

Example:
    try:
        service.process_employee_payroll("EMP-001", 3, 2025, actor_id)
    except AttendanceNotApprovedError as e:
        notify_approver(e.employee_code, e.month, e.year)
    except PayrollLockedError as e:
        api_response(code=e.code, status=e.status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollError (base)
    |
    +-- NotFoundError
    |   +-- EmployeeNotFoundError
    |   +-- AttendanceNotFoundError
    |   +-- PayrollRecordNotFoundError
    |
    +-- NotApprovedError
    |   +-- AttendanceNotApprovedError
    |
    +-- ValidationError
    |   +-- InvalidPayrollPeriodError
    |   +-- InvalidAttendanceError
    |   +-- InvalidCompensationError
    |   +-- InvalidPerformanceRulesError
    |   +-- DuplicateCurrentEmployeeError
    |   +-- InvalidAdjustmentError
    |   +-- IncompletePayrollRecordError
    |
    +-- ConflictError
    |   +-- PayrollLockedError
    |   +-- InvalidStatusTransitionError
    |   +-- OptimisticLockError
    |
    +-- ComputationError
    |   +-- InvalidPeriodError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                         | When Raised
--------------|------------------------------|-----------------------------------------
Not found     | EMPLOYEE_NOT_FOUND           | No current master record for the code
              | ATTENDANCE_NOT_FOUND         | No attendance for the period
              | PAYROLL_RECORD_NOT_FOUND     | No payroll record for the period
--------------|------------------------------|-----------------------------------------
Not approved  | ATTENDANCE_NOT_APPROVED      | Attendance exists but is not APPROVED
--------------|------------------------------|-----------------------------------------
Validation    | INVALID_PAYROLL_PERIOD       | month outside 1..12 or year < 2020
              | INVALID_ATTENDANCE           | eligible/present days out of range
              | INVALID_COMPENSATION         | base salary / target sales out of range
              | INVALID_PERFORMANCE_RULES    | floor/buffer/deduction % inconsistent
              | DUPLICATE_CURRENT_EMPLOYEE   | More than one current master record
              | INVALID_ADJUSTMENT           | Unknown field or empty reason
              | INCOMPLETE_PAYROLL_RECORD    | Stored record missing required fields
--------------|------------------------------|-----------------------------------------
Conflict      | PAYROLL_LOCKED               | Recompute on a LOCKED/PAID record
              | INVALID_STATUS_TRANSITION    | Workflow move not allowed
              | OPTIMISTIC_LOCK_CONFLICT     | Concurrent modification detected
--------------|------------------------------|-----------------------------------------
Computation   | INVALID_PERIOD               | total_days is zero (division by zero)
--------------|------------------------------|-----------------------------------------
Immutability  | IMMUTABILITY_VIOLATION       | ORM update/delete of a frozen record

===============================================================================
"""


class PayrollError(Exception):
    """
    Base exception for all payroll engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_ERROR"


# Not-found exceptions


class NotFoundError(PayrollError):
    """Base exception for missing collaborator data or records."""

    code: str = "NOT_FOUND"


class EmployeeNotFoundError(NotFoundError):
    """No current EmployeeMaster record exists for the code."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_code: str):
        self.employee_code = employee_code
        super().__init__(f"Employee not found: {employee_code}")


class AttendanceNotFoundError(NotFoundError):
    """No attendance record exists for the employee and period."""

    code: str = "ATTENDANCE_NOT_FOUND"

    def __init__(self, employee_code: str, month: int, year: int):
        self.employee_code = employee_code
        self.month = month
        self.year = year
        super().__init__(
            f"Attendance not found for {employee_code} in {year}-{month:02d}"
        )


class PayrollRecordNotFoundError(NotFoundError):
    """No payroll record exists for the employee and period."""

    code: str = "PAYROLL_RECORD_NOT_FOUND"

    def __init__(self, employee_code: str, month: int, year: int):
        self.employee_code = employee_code
        self.month = month
        self.year = year
        super().__init__(
            f"Payroll record not found for {employee_code} in {year}-{month:02d}"
        )


# Approval exceptions


class NotApprovedError(PayrollError):
    """Base exception for upstream data that has not been approved."""

    code: str = "NOT_APPROVED"


class AttendanceNotApprovedError(NotApprovedError):
    """Attendance exists but has not been approved for payroll use."""

    code: str = "ATTENDANCE_NOT_APPROVED"

    def __init__(self, employee_code: str, month: int, year: int, status: str):
        self.employee_code = employee_code
        self.month = month
        self.year = year
        self.status = status
        super().__init__(
            f"Attendance for {employee_code} in {year}-{month:02d} "
            f"is {status}, not APPROVED"
        )


# Validation exceptions


class ValidationError(PayrollError):
    """Base exception for missing or out-of-range inputs."""

    code: str = "VALIDATION_ERROR"


class InvalidPayrollPeriodError(ValidationError):
    """Month or year is missing or out of range."""

    code: str = "INVALID_PAYROLL_PERIOD"

    def __init__(self, month: object, year: object, reason: str):
        self.month = month
        self.year = year
        self.reason = reason
        super().__init__(f"Invalid payroll period {year}-{month}: {reason}")


class InvalidAttendanceError(ValidationError):
    """
    Attendance figures are inconsistent.

    Attendance is rejected, never clamped: the data must be corrected
    upstream before payroll can consume it.
    """

    code: str = "INVALID_ATTENDANCE"

    def __init__(self, employee_code: str | None, reason: str):
        self.employee_code = employee_code
        self.reason = reason
        super().__init__(f"Invalid attendance for {employee_code}: {reason}")


class InvalidCompensationError(ValidationError):
    """Employee master compensation figures are out of range."""

    code: str = "INVALID_COMPENSATION"

    def __init__(self, employee_code: str | None, reason: str):
        self.employee_code = employee_code
        self.reason = reason
        super().__init__(f"Invalid compensation for {employee_code}: {reason}")


class InvalidPerformanceRulesError(ValidationError):
    """Performance rule percentages are inconsistent."""

    code: str = "INVALID_PERFORMANCE_RULES"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid performance rules: {reason}")


class DuplicateCurrentEmployeeError(ValidationError):
    """More than one EmployeeMaster record is flagged current."""

    code: str = "DUPLICATE_CURRENT_EMPLOYEE"

    def __init__(self, employee_code: str):
        self.employee_code = employee_code
        super().__init__(
            f"More than one current master record for employee {employee_code}"
        )


class InvalidAdjustmentError(ValidationError):
    """A manual adjustment names an unknown field or lacks a reason."""

    code: str = "INVALID_ADJUSTMENT"

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Invalid adjustment of '{field_name}': {reason}")


class IncompletePayrollRecordError(ValidationError):
    """A stored payroll record lacks required statutory/component fields."""

    code: str = "INCOMPLETE_PAYROLL_RECORD"

    def __init__(self, record_id: str, missing_fields: list[str]):
        self.record_id = record_id
        self.missing_fields = missing_fields
        super().__init__(
            f"Payroll record {record_id} is missing required fields: "
            f"{', '.join(missing_fields)}"
        )


# Conflict exceptions


class ConflictError(PayrollError):
    """Base exception for state conflicts on payroll records."""

    code: str = "CONFLICT"


class PayrollLockedError(ConflictError):
    """Recomputation attempted on a LOCKED or PAID record."""

    code: str = "PAYROLL_LOCKED"

    def __init__(self, employee_code: str, month: int, year: int, status: str):
        self.employee_code = employee_code
        self.month = month
        self.year = year
        self.status = status
        super().__init__(
            f"Payroll for {employee_code} in {year}-{month:02d} is {status} "
            "and cannot be recomputed"
        )


class InvalidStatusTransitionError(ConflictError):
    """Requested workflow transition is not allowed from the current status."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, employee_code: str, from_status: str, to_status: str):
        self.employee_code = employee_code
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot move payroll for {employee_code} from {from_status} "
            f"to {to_status}"
        )


class OptimisticLockError(ConflictError):
    """Record was modified by another transaction since it was read."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Optimistic lock conflict on {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Computation exceptions


class ComputationError(PayrollError):
    """Base exception for arithmetic failures in the calculators."""

    code: str = "COMPUTATION_ERROR"


class InvalidPeriodError(ComputationError):
    """Attendance period has zero days; proration would divide by zero."""

    code: str = "INVALID_PERIOD"

    def __init__(self, employee_code: str | None, total_days: object):
        self.employee_code = employee_code
        self.total_days = total_days
        super().__init__(
            f"Invalid attendance period for {employee_code}: "
            f"total_days={total_days}"
        )


# Immutability exceptions


class ImmutabilityError(PayrollError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Payroll records are frozen once LOCKED or PAID; manual adjustments are
    append-only; nothing is ever physically deleted.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
