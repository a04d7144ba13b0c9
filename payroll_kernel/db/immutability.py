"""
ORM-Level Immutability Enforcement.

===============================================================================
WHAT IS PROTECTED
===============================================================================

Entity                 | When Immutable                 | Allowed changes
-----------------------|--------------------------------|---------------------------
PayrollRecord          | After status = LOCKED or PAID  | LOCKED -> PAID, paid_by/at,
                       |                                | version, updated_at/by
PayrollRecord          | ALWAYS for DELETE              | none
ManualAdjustment       | ALWAYS (from creation)         | none

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Bulk ``DELETE`` statements issued through a Session against either table
are rejected by a ``do_orm_execute`` hook.  Bulk ``UPDATE`` of payroll
records is the store's guarded write path; its WHERE clause carries the
status filter, so it is not intercepted here.

The kernel does not import model modules.  Each ORM module declares its
protected classes with ``protect_frozen_records`` or
``protect_append_only`` when it is imported.

If a check fails, ImmutabilityViolationError is raised and the flush is
aborted.  The database is never modified.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

from payroll_kernel.exceptions import ImmutabilityViolationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_FROZEN_STATUSES = ("LOCKED", "PAID")

# Model class -> columns that may still change once the row is frozen.
_frozen_models: dict[type, frozenset[str]] = {}
_append_only_models: set[type] = set()


def protect_frozen_records(model: type, workflow_columns: frozenset[str]) -> None:
    """
    Declare ``model`` immutable once its ``status`` is LOCKED or PAID.

    Rows of the model are also never deleted.  Takes effect when
    ``register_immutability_listeners`` is called.
    """
    _frozen_models[model] = frozenset(workflow_columns)


def protect_append_only(model: type) -> None:
    """Declare ``model`` append-only: no updates, no deletes."""
    _append_only_models.add(model)


def _status_value(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


def _entity_name(target) -> str:
    return type(target).__name__.removesuffix("Model")


def _check_frozen_record_immutability(mapper, connection, target):
    """
    Prevent changes to LOCKED or PAID records.

    Logic:
        1. If status is changing FROM LOCKED/PAID: only LOCKED -> PAID passes.
        2. If status is unchanged and LOCKED/PAID: block every non-workflow field.
        3. If status is changing TO LOCKED from an unlocked state: allow.
    """
    workflow_columns = _frozen_models.get(type(target))
    if workflow_columns is None:
        return

    entity = _entity_name(target)
    status_history = get_history(target, "status")

    was_frozen = False
    if status_history.deleted:
        old_status = _status_value(status_history.deleted[0])
        was_frozen = old_status in _FROZEN_STATUSES
        if was_frozen:
            new_status = _status_value(status_history.added[0]) if status_history.added else None
            if not (old_status == "LOCKED" and new_status == "PAID"):
                _violation(
                    entity,
                    target.id,
                    "status",
                    f"Cannot move {entity} from {old_status} to {new_status}",
                )
    elif not status_history.added:
        was_frozen = _status_value(target.status) in _FROZEN_STATUSES

    if not was_frozen:
        return

    for attr in inspect(target).attrs:
        if attr.key in workflow_columns:
            continue
        if attr.history.has_changes():
            _violation(
                entity,
                target.id,
                attr.key,
                f"Cannot modify field '{attr.key}' on a locked {entity}",
            )


def _check_frozen_record_delete(mapper, connection, target):
    if type(target) not in _frozen_models:
        return
    entity = _entity_name(target)
    _violation(entity, target.id, None, f"{entity} rows cannot be deleted")


def _check_append_only_update(mapper, connection, target):
    if type(target) not in _append_only_models:
        return
    entity = _entity_name(target)
    _violation(entity, target.id, None, f"{entity} rows are append-only")


def _check_append_only_delete(mapper, connection, target):
    if type(target) not in _append_only_models:
        return
    entity = _entity_name(target)
    _violation(entity, target.id, None, f"{entity} rows cannot be deleted")


def _check_bulk_statements(orm_execute_state):
    """Reject Session-level bulk DELETE of protected tables and bulk UPDATE of append-only ones."""
    if not (orm_execute_state.is_delete or orm_execute_state.is_update):
        return
    mapper = orm_execute_state.bind_mapper
    if mapper is None:
        return

    entity = mapper.class_
    protected = entity in _frozen_models or entity in _append_only_models
    if orm_execute_state.is_delete and protected:
        _violation(entity.__name__, None, None, "Bulk delete is not permitted")
    if orm_execute_state.is_update and entity in _append_only_models:
        _violation(entity.__name__, None, None, f"{entity.__name__} rows are append-only")


def _violation(entity_type: str, entity_id, field: str | None, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id) if entity_id is not None else None,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else "*",
        reason=reason,
    )


def register_immutability_listeners():
    """
    Register the enforcement listeners for every protected model.

    Call this after the model modules are imported (they declare their
    protection on import) but before any database operations begin.
    Safe to call more than once.
    """
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally exercise raw
    mutation paths.
    """
    for target, name, fn in _listeners():
        if event.contains(target, name, fn):
            event.remove(target, name, fn)


def _listeners():
    listeners = []
    for model in _frozen_models:
        listeners.append((model, "before_update", _check_frozen_record_immutability))
        listeners.append((model, "before_delete", _check_frozen_record_delete))
    for model in sorted(_append_only_models, key=lambda m: m.__name__):
        listeners.append((model, "before_update", _check_append_only_update))
        listeners.append((model, "before_delete", _check_append_only_delete))
    listeners.append((Session, "do_orm_execute", _check_bulk_statements))
    return listeners
