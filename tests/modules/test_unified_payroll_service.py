"""
Tests for UnifiedPayrollService.

Covers:
- End-to-end computation for BACKEND and SALES employees
- Recompute idempotency and the locked/paid guard
- Missing or unapproved collaborator data
- Transaction rollback and failure logging
- Policy variants: professional tax, TDS source, sales deduction handling
- Manual adjustments, replay verification and period reporting
"""

import dataclasses
from decimal import Decimal

import pytest
import yaml

from payroll_config import get_active_policy
from payroll_config.loader import seal_policy
from payroll_engines.components import SalesDeductionPolicy
from payroll_engines.performance import PerformanceColor, PerformanceStatus
from payroll_kernel.exceptions import (
    AttendanceNotApprovedError,
    AttendanceNotFoundError,
    EmployeeNotFoundError,
    IncompletePayrollRecordError,
    InvalidAttendanceError,
    InvalidPayrollPeriodError,
    InvalidPeriodError,
    PayrollLockedError,
    PayrollRecordNotFoundError,
)
from payroll_modules.compensation.helpers import inputs_from_record
from payroll_modules.compensation.models import (
    AttendanceStatus,
    EmployeeCategory,
    PayrollStatus,
)
from payroll_modules.compensation.orm import PayrollRecordModel
from payroll_modules.compensation.readers import (
    FixedWithholding,
    SqlAttendanceReader,
    SqlEmployeeMasterReader,
)
from payroll_modules.compensation.service import UnifiedPayrollService

from tests.conftest import PERIOD_MONTH as M, PERIOD_YEAR as Y
from tests.conftest import make_attendance, make_employee


def service_with(session, clock, policy=None, withholding=None):
    return UnifiedPayrollService(
        session,
        employees=SqlEmployeeMasterReader(session),
        attendance=SqlAttendanceReader(session),
        policy=policy,
        clock=clock,
        withholding=withholding,
    )


def seed_sales(seed_employee, code="EMP-S02", base="40000", actual="80000"):
    return seed_employee(
        make_employee(code, EmployeeCategory.SALES, base, target_sales="100000"),
        make_attendance(code, actual_sales=actual),
    )


# =============================================================================
# Computation
# =============================================================================


class TestBackendComputation:
    def test_partial_attendance_breakdown(self, service, backend_employee, actor_id):
        record = service.process_employee_payroll("EMP-001", M, Y, actor_id)

        assert record.status == PayrollStatus.DRAFT
        assert record.version == 1
        assert record.adjusted_gross == Decimal("28000.00")
        assert record.basic == Decimal("16800.00")
        assert record.hra == Decimal("8400.00")
        assert record.da == Decimal("840.00")
        assert record.special_allowance == Decimal("1960.00")
        assert record.variable_pay == Decimal("0.00")
        assert record.epf_employee == Decimal("1800.00")
        assert record.esic_employee == Decimal("0.00")
        assert record.professional_tax == Decimal("200.00")
        assert record.total_employee_deductions == Decimal("2000.00")
        assert record.epf_employer == Decimal("1800.00")
        assert record.gratuity == Decimal("808.08")
        assert record.total_employer_contributions == Decimal("2608.08")
        assert record.net_take_home == Decimal("26000.00")
        assert record.monthly_ctc == Decimal("30608.08")
        assert record.annual_ctc == Decimal("367296.96")

    def test_backend_is_never_scored(self, service, backend_employee, actor_id):
        record = service.process_employee_payroll("EMP-001", M, Y, actor_id)
        assert record.performance_status == PerformanceStatus.AVERAGE
        assert record.performance_color == PerformanceColor.YELLOW
        assert record.sales_deduction == Decimal("0.00")
        assert record.sales_incentive == Decimal("0.00")

    def test_snapshot_is_stored(self, service, backend_employee, actor_id, policy):
        record = service.process_employee_payroll("EMP-001", M, Y, actor_id)
        assert record.base_salary == Decimal("30000.00")
        assert record.eligible_days == Decimal("28")
        assert record.basic_ratio == Decimal("0.60")
        assert record.commission_eligible is False
        assert record.policy_checksum == policy.checksum

    def test_unlisted_category_uses_backend_structure(
        self, service, seed_employee, actor_id
    ):
        seed_employee(make_employee("EMP-L01", EmployeeCategory.LAB), make_attendance("EMP-L01"))
        record = service.process_employee_payroll("EMP-L01", M, Y, actor_id)
        assert record.category == EmployeeCategory.LAB
        assert record.basic == Decimal("18000.00")
        assert record.da == Decimal("900.00")

    def test_low_salary_pays_esic(self, service, seed_employee, actor_id):
        seed_employee(make_employee("EMP-002", base_salary="15000"), make_attendance("EMP-002"))
        record = service.process_employee_payroll("EMP-002", M, Y, actor_id)
        assert record.epf_employee == Decimal("1080.00")
        assert record.esic_employee == Decimal("112.50")
        assert record.esic_employer == Decimal("487.50")


class TestSalesComputation:
    def test_excellent_performance(self, service, sales_employee, actor_id):
        record = service.process_employee_payroll("EMP-S01", M, Y, actor_id)

        assert record.sales_percentage == Decimal("120.00")
        assert record.performance_status == PerformanceStatus.EXCELLENT
        assert record.performance_color == PerformanceColor.GREEN
        assert record.sales_incentive == Decimal("1000.00")
        assert record.variable_pay == Decimal("1000.00")
        assert record.gratuity == Decimal("1202.50")
        assert record.net_take_home == Decimal("49000.00")
        assert record.monthly_ctc == Decimal("54002.50")

    def test_below_average_deduction(self, service, seed_employee, actor_id):
        seed_sales(seed_employee)
        record = service.process_employee_payroll("EMP-S02", M, Y, actor_id)

        assert record.performance_status == PerformanceStatus.BELOW_AVERAGE
        assert record.performance_color == PerformanceColor.RED
        assert record.sales_deduction == Decimal("6666.67")
        assert record.special_allowance == Decimal("3333.33")
        assert record.net_take_home == Decimal("31333.33")
        assert record.sales_deduction_policy == SalesDeductionPolicy.COMPONENT_AND_NET

    def test_net_only_policy(self, session, clock, seed_employee, actor_id, policy):
        seed_sales(seed_employee)
        net_only = seal_policy(
            policy.with_sales_deduction_policy(SalesDeductionPolicy.NET_ONLY)
        )
        record = service_with(session, clock, net_only).process_employee_payroll(
            "EMP-S02", M, Y, actor_id
        )

        assert record.sales_deduction_policy == SalesDeductionPolicy.NET_ONLY
        assert record.special_allowance == Decimal("10000.00")
        assert record.net_take_home == Decimal("31333.33")
        assert record.policy_checksum == net_only.checksum


class TestRecompute:
    def test_recompute_is_idempotent(self, service, backend_employee, actor_id):
        first = service.process_employee_payroll("EMP-001", M, Y, actor_id)
        second = service.process_employee_payroll("EMP-001", M, Y, actor_id)

        assert second.id == first.id
        assert second.version == first.version + 1
        workflow = {"version", "computed_at", "computed_by_id"}
        for field in dataclasses.fields(first):
            if field.name in workflow:
                continue
            assert str(getattr(second, field.name)) == str(getattr(first, field.name)), field.name
        assert len(service.list_period_payroll(M, Y)) == 1

    def test_recompute_after_approval_resets_to_draft(self, service, backend_employee, actor_id):
        service.process_employee_payroll("EMP-001", M, Y, actor_id)
        service.submit_payroll("EMP-001", M, Y, actor_id)
        service.approve_payroll("EMP-001", M, Y, actor_id)

        record = service.process_employee_payroll("EMP-001", M, Y, actor_id)
        assert record.status == PayrollStatus.DRAFT
        assert record.approved_by_id is None

    @pytest.mark.parametrize("pay", [False, True])
    def test_frozen_record_is_not_recomputed(
        self, service, backend_employee, actor_id, pay
    ):
        service.process_employee_payroll("EMP-001", M, Y, actor_id)
        service.lock_period(M, Y, actor_id)
        if pay:
            service.mark_paid("EMP-001", M, Y, actor_id)
        before = service.get_employee_payroll("EMP-001", M, Y)

        with pytest.raises(PayrollLockedError):
            service.process_employee_payroll("EMP-001", M, Y, actor_id)

        after = service.get_employee_payroll("EMP-001", M, Y)
        assert after == before


# =============================================================================
# Collaborator data and validation
# =============================================================================


class TestInputErrors:
    def test_unknown_employee(self, service, actor_id):
        with pytest.raises(EmployeeNotFoundError) as exc_info:
            service.process_employee_payroll("EMP-404", M, Y, actor_id)
        assert exc_info.value.code == "EMPLOYEE_NOT_FOUND"

    def test_missing_attendance(self, service, seed_employee, actor_id):
        seed_employee(make_employee("EMP-001"))
        with pytest.raises(AttendanceNotFoundError):
            service.process_employee_payroll("EMP-001", M, Y, actor_id)

    @pytest.mark.parametrize("status", [AttendanceStatus.DRAFT, AttendanceStatus.SUBMITTED])
    def test_unapproved_attendance(self, service, seed_employee, actor_id, status):
        seed_employee(make_employee("EMP-001"), make_attendance("EMP-001", status=status))
        with pytest.raises(AttendanceNotApprovedError) as exc_info:
            service.process_employee_payroll("EMP-001", M, Y, actor_id)
        assert exc_info.value.code == "ATTENDANCE_NOT_APPROVED"
        assert service.list_period_payroll(M, Y) == []

    def test_locked_attendance_is_usable(self, service, seed_employee, actor_id):
        seed_employee(
            make_employee("EMP-001"),
            make_attendance("EMP-001", status=AttendanceStatus.LOCKED),
        )
        record = service.process_employee_payroll("EMP-001", M, Y, actor_id)
        assert record.adjusted_gross == Decimal("30000.00")

    def test_zero_day_period(self, service, seed_employee, actor_id):
        seed_employee(make_employee("EMP-001"), make_attendance("EMP-001", total_days="0"))
        with pytest.raises(InvalidPeriodError):
            service.process_employee_payroll("EMP-001", M, Y, actor_id)

    def test_eligible_days_beyond_total(self, service, seed_employee, actor_id):
        seed_employee(
            make_employee("EMP-001"),
            make_attendance("EMP-001", total_days="30", present_days="30", eligible_days="31"),
        )
        with pytest.raises(InvalidAttendanceError):
            service.process_employee_payroll("EMP-001", M, Y, actor_id)

    @pytest.mark.parametrize("month, year", [(0, 2025), (13, 2025), (3, 2019), ("3", 2025)])
    def test_invalid_period(self, service, actor_id, month, year):
        with pytest.raises(InvalidPayrollPeriodError):
            service.process_employee_payroll("EMP-001", month, year, actor_id)


class TestTransactionBoundary:
    def test_failure_is_logged_with_error_code(self, service, seed_employee, actor_id, captured_logs):
        seed_employee(
            make_employee("EMP-001"),
            make_attendance("EMP-001", status=AttendanceStatus.DRAFT),
        )
        with pytest.raises(AttendanceNotApprovedError):
            service.process_employee_payroll("EMP-001", M, Y, actor_id)

        failures = [r for r in captured_logs() if r["message"] == "payroll_operation_failed"]
        assert len(failures) == 1
        assert failures[0]["error_code"] == "ATTENDANCE_NOT_APPROVED"
        assert failures[0]["employee_code"] == "EMP-001"
        assert failures[0]["month"] == M
        assert failures[0]["year"] == Y

    def test_unexpected_error_rolls_back(
        self, service, backend_employee, actor_id, captured_logs, monkeypatch
    ):
        store = service._store
        original = store.save_computation

        def save_then_fail(*args, **kwargs):
            original(*args, **kwargs)
            raise RuntimeError("disk full")

        monkeypatch.setattr(store, "save_computation", save_then_fail)
        with pytest.raises(RuntimeError):
            service.process_employee_payroll("EMP-001", M, Y, actor_id)

        with pytest.raises(PayrollRecordNotFoundError):
            service.get_employee_payroll("EMP-001", M, Y)
        errors = [r for r in captured_logs() if r["message"] == "payroll_operation_error"]
        assert errors[0]["error_code"] == "UNHANDLED_EXCEPTION"

    def test_success_logs_carry_context(self, service, backend_employee, actor_id, captured_logs):
        service.process_employee_payroll("EMP-001", M, Y, actor_id)
        completed = [
            r for r in captured_logs() if r["message"] == "payroll_computation_completed"
        ]
        assert completed[0]["period"] == "2025-03"
        assert completed[0]["actor_id"] == str(actor_id)
        assert completed[0]["net_take_home"] == "26000.00"


# =============================================================================
# Policy variants
# =============================================================================


class TestPolicyVariants:
    def test_professional_tax_by_state(self, session, clock, seed_employee, actor_id, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text(
            yaml.safe_dump({"professional_tax": {"default_amount": "200", "states": {"KA": "300"}}})
        )
        svc = service_with(session, clock, get_active_policy(path))
        seed_employee(make_employee("EMP-001", state="KA"), make_attendance("EMP-001"))
        seed_employee(make_employee("EMP-002", state="MH"), make_attendance("EMP-002"))

        assert svc.process_employee_payroll("EMP-001", M, Y, actor_id).professional_tax == (
            Decimal("300.00")
        )
        assert svc.process_employee_payroll("EMP-002", M, Y, actor_id).professional_tax == (
            Decimal("200.00")
        )

    def test_professional_tax_not_applicable(self, service, seed_employee, actor_id):
        seed_employee(make_employee("EMP-001", pt_applicable=False), make_attendance("EMP-001"))
        record = service.process_employee_payroll("EMP-001", M, Y, actor_id)
        assert record.professional_tax == Decimal("0.00")
        assert record.net_take_home == Decimal("28200.00")

    def test_withholding_source_supplies_tds(self, session, clock, backend_employee, actor_id):
        svc = service_with(
            session, clock, withholding=FixedWithholding({"EMP-001": Decimal("500")})
        )
        record = svc.process_employee_payroll("EMP-001", M, Y, actor_id)
        assert record.tds == Decimal("500.00")
        assert record.total_employee_deductions == Decimal("2500.00")
        assert record.net_take_home == Decimal("25500.00")

    def test_default_tds_is_zero(self, service, backend_employee, actor_id):
        assert service.process_employee_payroll("EMP-001", M, Y, actor_id).tds == Decimal("0.00")


# =============================================================================
# Workflow and adjustments
# =============================================================================


class TestWorkflow:
    def test_lifecycle(self, service, backend_employee, actor_id):
        service.process_employee_payroll("EMP-001", M, Y, actor_id)
        assert service.submit_payroll("EMP-001", M, Y, actor_id).status == PayrollStatus.SUBMITTED
        assert service.approve_payroll("EMP-001", M, Y, actor_id).status == PayrollStatus.APPROVED
        assert service.lock_period(M, Y, actor_id) == 1
        paid = service.mark_paid("EMP-001", M, Y, actor_id)
        assert paid.status == PayrollStatus.PAID
        assert paid.is_frozen

    def test_get_missing_record(self, service):
        with pytest.raises(PayrollRecordNotFoundError):
            service.get_employee_payroll("EMP-001", M, Y)

    def test_list_filters_by_status(self, service, backend_employee, sales_employee, actor_id):
        service.process_employee_payroll("EMP-001", M, Y, actor_id)
        service.process_employee_payroll("EMP-S01", M, Y, actor_id)
        service.submit_payroll("EMP-S01", M, Y, actor_id)

        submitted = service.list_period_payroll(M, Y, [PayrollStatus.SUBMITTED])
        assert [r.employee_code for r in submitted] == ["EMP-S01"]
        assert len(service.list_period_payroll(M, Y)) == 2


class TestAdjustments:
    def test_adjust_locked_record(self, service, backend_employee, actor_id):
        service.process_employee_payroll("EMP-001", M, Y, actor_id)
        service.lock_period(M, Y, actor_id)

        adjustment = service.adjust_payroll_field(
            "EMP-001", M, Y, "net_take_home", Decimal("26250"), "Arrears", actor_id
        )
        record = service.get_employee_payroll("EMP-001", M, Y)

        assert adjustment.old_value == Decimal("26000.00")
        assert record.net_take_home == Decimal("26000.00")
        assert record.effective_net_take_home == Decimal("26250.00")
        assert record.status == PayrollStatus.LOCKED
        assert service.get_payroll_adjustments("EMP-001", M, Y) == [adjustment]

    def test_adjust_paid_record(self, service, backend_employee, actor_id):
        service.process_employee_payroll("EMP-001", M, Y, actor_id)
        service.lock_period(M, Y, actor_id)
        service.mark_paid("EMP-001", M, Y, actor_id)

        service.adjust_payroll_field("EMP-001", M, Y, "tds", Decimal("100"), "Late proof", actor_id)
        assert len(service.get_payroll_adjustments("EMP-001", M, Y)) == 1

    def test_adjustments_survive_recompute(self, service, backend_employee, actor_id):
        service.process_employee_payroll("EMP-001", M, Y, actor_id)
        service.adjust_payroll_field("EMP-001", M, Y, "tds", Decimal("100"), "Late proof", actor_id)
        record = service.process_employee_payroll("EMP-001", M, Y, actor_id)
        assert len(record.adjustments) == 1
        assert record.effective_value("tds") == Decimal("100.00")


# =============================================================================
# Verification
# =============================================================================


class TestVerification:
    def test_untouched_record_matches(self, service, sales_employee, actor_id):
        service.process_employee_payroll("EMP-S01", M, Y, actor_id)
        result = service.verify_payroll_record("EMP-S01", M, Y)
        assert result.matches
        assert result.mismatches == {}
        assert result.policy_checksum_matches

    def test_net_only_record_replays(self, session, clock, seed_employee, actor_id, policy):
        seed_sales(seed_employee)
        svc = service_with(
            session,
            clock,
            seal_policy(policy.with_sales_deduction_policy(SalesDeductionPolicy.NET_ONLY)),
        )
        svc.process_employee_payroll("EMP-S02", M, Y, actor_id)
        assert svc.verify_payroll_record("EMP-S02", M, Y).matches

    def test_tampered_amount_detected(self, service, session, backend_employee, actor_id):
        record = service.process_employee_payroll("EMP-001", M, Y, actor_id)
        model = session.get(PayrollRecordModel, record.id)
        model.net_take_home = Decimal("99999.00")
        session.commit()

        result = service.verify_payroll_record("EMP-001", M, Y)
        assert not result.matches
        assert result.mismatches["net_take_home"] == ("99999.00", "26000.00")

    def test_policy_change_reported(self, session, clock, backend_employee, actor_id, tmp_path):
        service_with(session, clock).process_employee_payroll("EMP-001", M, Y, actor_id)

        path = tmp_path / "policy.yaml"
        path.write_text(yaml.safe_dump({"professional_tax": {"default_amount": "250"}}))
        result = service_with(session, clock, get_active_policy(path)).verify_payroll_record(
            "EMP-001", M, Y
        )
        assert result.matches
        assert not result.policy_checksum_matches

    def test_rate_change_does_not_flag_untouched_record(
        self, session, clock, backend_employee, actor_id, tmp_path
    ):
        record = service_with(session, clock).process_employee_payroll("EMP-001", M, Y, actor_id)
        assert record.gratuity_rate == Decimal("0.0481")
        assert record.epf_ceiling == Decimal("1800")

        path = tmp_path / "policy.yaml"
        path.write_text(yaml.safe_dump({"statutory": {"gratuity_rate": "0.05"}}))
        result = service_with(session, clock, get_active_policy(path)).verify_payroll_record(
            "EMP-001", M, Y
        )
        assert result.matches, result.mismatches
        assert not result.policy_checksum_matches

    def test_incomplete_snapshot_rejected(self, service, backend_employee, actor_id):
        record = service.process_employee_payroll("EMP-001", M, Y, actor_id)
        damaged = dataclasses.replace(record, tds=None, present_days=None)

        with pytest.raises(IncompletePayrollRecordError) as exc_info:
            inputs_from_record(damaged)
        assert exc_info.value.code == "INCOMPLETE_PAYROLL_RECORD"
        assert exc_info.value.missing_fields == ["present_days", "tds"]
        assert exc_info.value.record_id == str(record.id)


# =============================================================================
# Reporting
# =============================================================================


class TestReporting:
    @pytest.fixture
    def approved_period(self, service, backend_employee, sales_employee, seed_employee, actor_id):
        seed_sales(seed_employee)
        for code in ("EMP-001", "EMP-S01", "EMP-S02"):
            service.process_employee_payroll(code, M, Y, actor_id)
        for code in ("EMP-001", "EMP-S01"):
            service.submit_payroll(code, M, Y, actor_id)
            service.approve_payroll(code, M, Y, actor_id)
        return service

    def test_summary_counts_reportable_records_only(self, approved_period, clock):
        summary = approved_period.get_period_summary(M, Y)

        assert summary.employee_count == 2
        assert summary.total_gross == Decimal("78000.00")
        assert summary.total_net_pay == Decimal("75000.00")
        assert summary.total_ctc == Decimal("84610.58")
        assert summary.total_epf_employee == Decimal("3600.00")
        assert summary.total_professional_tax == Decimal("400.00")
        assert summary.generated_at == clock.now()

    def test_summary_with_explicit_statuses(self, approved_period):
        summary = approved_period.get_period_summary(M, Y, [PayrollStatus.DRAFT])
        assert summary.employee_count == 1
        assert summary.total_net_pay == Decimal("31333.33")

    def test_empty_period(self, service):
        summary = service.get_period_summary(4, 2025)
        assert summary.employee_count == 0
        assert summary.total_net_pay == Decimal("0.00")

    def test_performance_analytics(self, approved_period):
        buckets = approved_period.get_performance_analytics(M, Y)
        by_status = {b.performance_status: b for b in buckets}

        assert set(by_status) == {PerformanceStatus.EXCELLENT, PerformanceStatus.AVERAGE}
        assert by_status[PerformanceStatus.EXCELLENT].count == 1
        assert by_status[PerformanceStatus.EXCELLENT].avg_incentive == Decimal("1000.00")

        everything = approved_period.get_performance_analytics(
            M, Y, list(PayrollStatus)
        )
        assert PerformanceStatus.BELOW_AVERAGE in {b.performance_status for b in everything}
