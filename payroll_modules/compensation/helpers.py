"""
Pure helper functions for unified payroll.

Period validation and the mapping between the calculator pipeline and
payroll record columns.  Inputs are snapshotted onto the record so that
``inputs_from_record`` can rebuild exactly what the pipeline saw.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal
from typing import Any

from payroll_config.schema import PayrollPolicy
from payroll_engines.components import ComponentStructure
from payroll_engines.pipeline import CompensationBreakdown, CompensationInputs
from payroll_engines.statutory import StatutoryRates
from payroll_kernel.exceptions import IncompletePayrollRecordError, InvalidPayrollPeriodError
from payroll_modules.compensation.models import (
    AttendanceRecord,
    EmployeeMaster,
    PayrollRecord,
)

MIN_PAYROLL_YEAR = 2020

# Snapshot columns a record must carry to be replayed.
REPLAY_FIELDS = (
    "base_salary",
    "total_days",
    "present_days",
    "eligible_days",
    "target_sales",
    "actual_sales",
    "safety_floor",
    "buffer_threshold",
    "deduction_percentage",
    "basic_ratio",
    "hra_ratio",
    "da_ratio",
    "professional_tax",
    "tds",
    "epf_rate",
    "epf_ceiling",
    "esic_wage_ceiling",
    "esic_employee_rate",
    "esic_employer_rate",
    "gratuity_rate",
)


def validate_period(month: Any, year: Any) -> None:
    """
    Raises:
        InvalidPayrollPeriodError: month outside 1..12, year before 2020,
            or either not an integer.
    """
    if isinstance(month, bool) or not isinstance(month, int):
        raise InvalidPayrollPeriodError(month, year, "month must be an integer")
    if isinstance(year, bool) or not isinstance(year, int):
        raise InvalidPayrollPeriodError(month, year, "year must be an integer")
    if not 1 <= month <= 12:
        raise InvalidPayrollPeriodError(month, year, "month must be within 1..12")
    if year < MIN_PAYROLL_YEAR:
        raise InvalidPayrollPeriodError(
            month, year, f"year must be {MIN_PAYROLL_YEAR} or later"
        )


def build_inputs(
    employee: EmployeeMaster,
    attendance: AttendanceRecord,
    policy: PayrollPolicy,
    tds: Decimal,
) -> CompensationInputs:
    """Assemble pipeline inputs from master data, attendance and policy."""
    return CompensationInputs(
        employee_code=employee.employee_code,
        base_salary=employee.base_salary,
        total_days=attendance.total_days,
        present_days=attendance.present_days,
        eligible_days=attendance.eligible_days,
        structure=policy.structure_for(employee.category.value),
        rules=employee.performance_rules,
        target_sales=employee.target_sales,
        actual_sales=attendance.actual_sales,
        pf_applicable=employee.pf_applicable,
        esic_applicable=employee.esic_applicable,
        professional_tax=policy.professional_tax.amount_for(
            employee.state, employee.pt_applicable
        ),
        tds=tds,
    )


def record_fields(
    employee: EmployeeMaster,
    inputs: CompensationInputs,
    breakdown: CompensationBreakdown,
    policy: PayrollPolicy,
) -> dict[str, Any]:
    """Snapshot and computed columns for ``PayrollRecordStore.save_computation``."""
    structure = inputs.structure
    fields: dict[str, Any] = {
        "category": employee.category,
        "base_salary": inputs.base_salary,
        "total_days": inputs.total_days,
        "present_days": inputs.present_days,
        "eligible_days": inputs.eligible_days,
        "target_sales": inputs.target_sales,
        "actual_sales": inputs.actual_sales,
        "safety_floor": inputs.rules.safety_floor,
        "buffer_threshold": inputs.rules.buffer_threshold,
        "deduction_percentage": inputs.rules.deduction_percentage,
        "basic_ratio": structure.basic_ratio,
        "hra_ratio": structure.hra_ratio,
        "da_ratio": structure.da_ratio,
        "commission_eligible": structure.commission_eligible,
        "incentive_ceiling_factor": policy.incentive_ceiling_factor,
        "pf_applicable": inputs.pf_applicable,
        "esic_applicable": inputs.esic_applicable,
        "sales_deduction_policy": policy.sales_deduction_policy,
        **{
            rate.name: getattr(policy.statutory, rate.name)
            for rate in dataclasses.fields(StatutoryRates)
        },
        "policy_checksum": policy.checksum,
    }
    fields.update(breakdown.as_fields())
    return fields


def inputs_from_record(record: PayrollRecord) -> CompensationInputs:
    """
    Rebuild the pipeline inputs a stored record was computed from.

    Raises:
        IncompletePayrollRecordError: a snapshot column is empty.
    """
    missing = [name for name in REPLAY_FIELDS if getattr(record, name) is None]
    if missing:
        raise IncompletePayrollRecordError(str(record.id), missing)
    return CompensationInputs(
        employee_code=record.employee_code,
        base_salary=record.base_salary,
        total_days=record.total_days,
        present_days=record.present_days,
        eligible_days=record.eligible_days,
        structure=ComponentStructure(
            basic_ratio=record.basic_ratio,
            hra_ratio=record.hra_ratio,
            da_ratio=record.da_ratio,
            commission_eligible=record.commission_eligible,
        ),
        rules=record.performance_rules,
        target_sales=record.target_sales,
        actual_sales=record.actual_sales,
        pf_applicable=record.pf_applicable,
        esic_applicable=record.esic_applicable,
        professional_tax=record.professional_tax,
        tds=record.tds,
    )
