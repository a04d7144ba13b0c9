"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads a YAML policy file and parses it into the frozen
``payroll_config.schema`` types.  The single public entry point for
runtime config is ``payroll_config.get_active_policy()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; amounts are parsed from strings into ``Decimal``.
* ``compute_checksum`` produces a deterministic SHA-256 hash over the
  canonical form of the parsed policy, so two YAML files that spell the
  same policy differently share a checksum.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError`` (or
  ``InvalidPerformanceRulesError``, a ``ValidationError``, for rules).
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import BatchSettings, PayrollPolicy, ProfessionalTaxSchedule
from payroll_engines.components import ComponentStructure, SalesDeductionPolicy
from payroll_engines.performance import PerformanceRules
from payroll_engines.statutory import StatutoryRates


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a YAML scalar into Decimal.  Floats go through ``str``."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name} must be numeric, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be numeric, got {value!r}") from exc


def parse_statutory(data: dict[str, Any]) -> StatutoryRates:
    defaults = StatutoryRates()
    values = {
        f.name: parse_decimal(data.get(f.name, getattr(defaults, f.name)), f.name)
        for f in dataclasses.fields(StatutoryRates)
    }
    return StatutoryRates(**values)


def parse_structure(name: str, data: dict[str, Any]) -> ComponentStructure:
    return ComponentStructure(
        basic_ratio=parse_decimal(data["basic_ratio"], f"{name}.basic_ratio"),
        hra_ratio=parse_decimal(data["hra_ratio"], f"{name}.hra_ratio"),
        da_ratio=parse_decimal(data.get("da_ratio", 0), f"{name}.da_ratio"),
        commission_eligible=bool(data.get("commission_eligible", False)),
    )


def parse_rules(data: dict[str, Any]) -> PerformanceRules:
    defaults = PerformanceRules()
    return PerformanceRules(
        safety_floor=parse_decimal(
            data.get("safety_floor", defaults.safety_floor), "safety_floor"
        ),
        buffer_threshold=parse_decimal(
            data.get("buffer_threshold", defaults.buffer_threshold), "buffer_threshold"
        ),
        deduction_percentage=parse_decimal(
            data.get("deduction_percentage", defaults.deduction_percentage),
            "deduction_percentage",
        ),
    )


def parse_professional_tax(data: dict[str, Any]) -> ProfessionalTaxSchedule:
    states = data.get("states") or {}
    return ProfessionalTaxSchedule(
        default_amount=parse_decimal(data.get("default_amount", "200"), "default_amount"),
        by_state={
            str(state).upper(): parse_decimal(amount, f"professional_tax.{state}")
            for state, amount in states.items()
        },
    )


def parse_policy(data: dict[str, Any]) -> PayrollPolicy:
    """
    Parse a ``PayrollPolicy`` from a dict.

    Omitted sections fall back to the schema defaults.  The returned
    policy has no checksum; see ``seal_policy``.
    """
    structures_data = data.get("component_structures")
    kwargs: dict[str, Any] = {}
    if structures_data:
        kwargs["structures"] = {
            str(name).upper(): parse_structure(str(name), body)
            for name, body in structures_data.items()
        }

    performance = data.get("performance") or {}
    raw_policy = data.get("sales_deduction_policy", SalesDeductionPolicy.COMPONENT_AND_NET.value)
    try:
        sales_deduction_policy = SalesDeductionPolicy(str(raw_policy).lower())
    except ValueError as exc:
        raise ValueError(f"Unknown sales_deduction_policy {raw_policy!r}") from exc

    return PayrollPolicy(
        policy_id=str(data.get("policy_id", "default")),
        version=int(data.get("version", 1)),
        statutory=parse_statutory(data.get("statutory") or {}),
        default_structure=str(data.get("default_structure", "BACKEND")).upper(),
        incentive_ceiling_factor=parse_decimal(
            performance.get("incentive_ceiling_factor", "0.10"), "incentive_ceiling_factor"
        ),
        default_rules=parse_rules(performance.get("default_rules") or {}),
        professional_tax=parse_professional_tax(data.get("professional_tax") or {}),
        sales_deduction_policy=sales_deduction_policy,
        batch=BatchSettings(max_workers=int((data.get("batch") or {}).get("max_workers", 4))),
        **kwargs,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def seal_policy(policy: PayrollPolicy) -> PayrollPolicy:
    """Return ``policy`` with its checksum populated."""
    return dataclasses.replace(policy, checksum=compute_checksum(policy.to_dict()))


def load_policy(path: Path) -> PayrollPolicy:
    """Load, parse and seal a policy file."""
    return seal_policy(parse_policy(load_yaml_file(path)))
