"""
payroll_config -- single public entrypoint for payroll policy.

Responsibility:
    Provides the ONLY way to obtain payroll policy at runtime through
    ``get_active_policy()``.  Services, the batch orchestrator and the
    engines receive the returned ``PayrollPolicy`` (or pieces of it) by
    parameter and never read configuration files themselves.

Architecture position:
    Configuration -- YAML-driven policy.  Sits above ``payroll_engines``
    (whose parameter types it composes) and below ``payroll_modules``.
    The kernel MUST NEVER import from ``payroll_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested policy file does not exist.
    - ``ValueError`` -- schema or range validation failures.

Audit relevance:
    Every successful ``get_active_policy()`` call emits a
    ``PAYROLL_POLICY_TRACE`` log entry with the policy id, version and
    checksum.  The checksum is stamped on every payroll record so each
    record can be tied back to the policy that produced it.
"""

from __future__ import annotations

from pathlib import Path

from payroll_config.loader import compute_checksum, load_policy, seal_policy
from payroll_config.schema import BatchSettings, PayrollPolicy, ProfessionalTaxSchedule
from payroll_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_POLICY_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_policy(path: Path | None = None) -> PayrollPolicy:
    """The ONLY public policy entrypoint.

    Args:
        path: Override path to a YAML policy file.
            Defaults to payroll_config/sets/default.yaml.

    Returns:
        A validated, checksummed ``PayrollPolicy``.

    Raises:
        FileNotFoundError: If the policy file does not exist.
        ValueError: If the policy fails validation.
    """
    policy = load_policy(path or _DEFAULT_POLICY_PATH)

    _logger.info(
        "PAYROLL_POLICY_TRACE",
        extra={
            "trace_type": "PAYROLL_POLICY_TRACE",
            "policy_id": policy.policy_id,
            "policy_version": policy.version,
            "checksum": policy.checksum,
            "sales_deduction_policy": policy.sales_deduction_policy.value,
            "structure_count": len(policy.structures),
            "max_workers": policy.batch.max_workers,
        },
    )
    return policy


def default_policy() -> PayrollPolicy:
    """Built-in policy from code defaults, sealed with its checksum."""
    return seal_policy(PayrollPolicy())


__all__ = [
    "BatchSettings",
    "PayrollPolicy",
    "ProfessionalTaxSchedule",
    "compute_checksum",
    "default_policy",
    "get_active_policy",
]
