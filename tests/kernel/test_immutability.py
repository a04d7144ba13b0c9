"""
Tests for ORM-level immutability enforcement.

LOCKED and PAID payroll records accept only workflow metadata changes;
payroll records and manual adjustments are never deleted; adjustments
are never updated.
"""

from decimal import Decimal

import pytest
from sqlalchemy import delete, select, update

from payroll_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from payroll_kernel.exceptions import ImmutabilityViolationError
from payroll_modules.compensation.orm import ManualAdjustmentModel, PayrollRecordModel

from tests.conftest import PERIOD_MONTH as M, PERIOD_YEAR as Y


@pytest.fixture
def computed(service, backend_employee, actor_id):
    return service.process_employee_payroll("EMP-001", M, Y, actor_id)


@pytest.fixture
def locked(service, computed, actor_id):
    service.lock_period(M, Y, actor_id)
    return service.get_employee_payroll("EMP-001", M, Y)


def _model(session, record_id) -> PayrollRecordModel:
    return session.get(PayrollRecordModel, record_id)


class TestPayrollRecordImmutability:
    def test_draft_record_can_be_modified(self, session, computed):
        model = _model(session, computed.id)
        model.tds = Decimal("10.00")
        session.flush()
        session.rollback()

    def test_locked_record_amount_cannot_change(self, session, locked):
        model = _model(session, locked.id)
        model.net_take_home = Decimal("1.00")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        session.rollback()
        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"

    def test_locked_record_cannot_be_unlocked(self, session, locked):
        model = _model(session, locked.id)
        model.status = "DRAFT"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_locked_to_paid_allowed(self, session, locked, actor_id):
        model = _model(session, locked.id)
        model.status = "PAID"
        model.paid_by_id = actor_id
        model.version = model.version + 1
        session.flush()
        session.commit()
        assert _model(session, locked.id).status == "PAID"

    def test_paid_record_frozen(self, service, session, locked, actor_id):
        paid = service.mark_paid("EMP-001", M, Y, actor_id)
        model = _model(session, paid.id)
        model.status = "LOCKED"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_record_cannot_be_deleted(self, session, computed):
        session.delete(_model(session, computed.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_bulk_delete_rejected(self, session, computed):
        with pytest.raises(ImmutabilityViolationError):
            session.execute(delete(PayrollRecordModel))
        session.rollback()
        assert session.scalar(select(PayrollRecordModel.id)) == computed.id


class TestManualAdjustmentImmutability:
    @pytest.fixture
    def adjustment(self, service, computed, actor_id):
        return service.adjust_payroll_field(
            "EMP-001", M, Y, "tds", Decimal("500"), "Late declaration", actor_id
        )

    def test_adjustment_cannot_be_updated(self, session, adjustment):
        model = session.get(ManualAdjustmentModel, adjustment.id)
        model.new_value = Decimal("1")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_adjustment_cannot_be_deleted(self, session, adjustment):
        session.delete(session.get(ManualAdjustmentModel, adjustment.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_bulk_update_rejected(self, session, adjustment):
        with pytest.raises(ImmutabilityViolationError):
            session.execute(update(ManualAdjustmentModel).values(reason="rewritten"))
        session.rollback()


class TestListenerRegistration:
    def test_unregister_then_register(self, session, locked):
        unregister_immutability_listeners()
        try:
            model = _model(session, locked.id)
            model.tds = Decimal("1.00")
            session.flush()
            session.rollback()
        finally:
            register_immutability_listeners()

        model = _model(session, locked.id)
        model.tds = Decimal("1.00")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_register_is_idempotent(self):
        register_immutability_listeners()
        register_immutability_listeners()
