"""Compensation Workflows.

State machine for the payroll record lifecycle:

    DRAFT -> SUBMITTED -> APPROVED -> LOCKED -> PAID

``recompute`` re-enters DRAFT from any unlocked state.  ``lock`` is the
period sweep and may fire from any unlocked state.
"""

from payroll_kernel.domain.workflow import Transition, Workflow
from payroll_kernel.logging_config import get_logger
from payroll_modules.compensation.models import PayrollStatus

logger = get_logger("modules.compensation.workflows")

_DRAFT = PayrollStatus.DRAFT.value
_SUBMITTED = PayrollStatus.SUBMITTED.value
_APPROVED = PayrollStatus.APPROVED.value
_LOCKED = PayrollStatus.LOCKED.value
_PAID = PayrollStatus.PAID.value

ACTION_RECOMPUTE = "recompute"
ACTION_SUBMIT = "submit"
ACTION_APPROVE = "approve"
ACTION_LOCK = "lock"
ACTION_MARK_PAID = "mark_paid"

PAYROLL_RECORD_WORKFLOW = Workflow(
    name="payroll_record",
    description="Unified payroll record lifecycle",
    initial_state=_DRAFT,
    states=(_DRAFT, _SUBMITTED, _APPROVED, _LOCKED, _PAID),
    transitions=(
        Transition(_DRAFT, _DRAFT, action=ACTION_RECOMPUTE),
        Transition(_SUBMITTED, _DRAFT, action=ACTION_RECOMPUTE),
        Transition(_APPROVED, _DRAFT, action=ACTION_RECOMPUTE),
        Transition(_DRAFT, _SUBMITTED, action=ACTION_SUBMIT),
        Transition(_SUBMITTED, _APPROVED, action=ACTION_APPROVE),
        Transition(_DRAFT, _LOCKED, action=ACTION_LOCK),
        Transition(_SUBMITTED, _LOCKED, action=ACTION_LOCK),
        Transition(_APPROVED, _LOCKED, action=ACTION_LOCK),
        Transition(_LOCKED, _PAID, action=ACTION_MARK_PAID),
    ),
    terminal_states=(_PAID,),
)

logger.debug(
    "payroll_workflow_defined",
    extra={
        "workflow": PAYROLL_RECORD_WORKFLOW.name,
        "transition_count": len(PAYROLL_RECORD_WORKFLOW.transitions),
    },
)


def next_status(current: PayrollStatus, action: str) -> PayrollStatus | None:
    """Target status for ``action`` from ``current``, or None if illegal."""
    transition = PAYROLL_RECORD_WORKFLOW.find(current.value, action)
    if transition is None:
        return None
    return PayrollStatus(transition.to_state)


def statuses_allowing(action: str) -> tuple[PayrollStatus, ...]:
    return tuple(PayrollStatus(s) for s in PAYROLL_RECORD_WORKFLOW.sources_for(action))
