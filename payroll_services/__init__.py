"""Cross-record payroll services."""

from payroll_services.lock_coordinator import LockCoordinator

__all__ = ["LockCoordinator"]
