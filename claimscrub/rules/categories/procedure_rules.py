"""Procedure line rules."""

from __future__ import annotations

import re
from typing import Any

from claimscrub.rules.models import (
    FixOutcome,
    RuleCategory,
    RuleCheck,
    RuleContext,
    Severity,
    ValidationRule,
)

# CPT: 5 digits, HCPCS Level II: letter followed by 4 digits
PROCEDURE_CODE_PATTERN = re.compile(r"^(\d{5}|[A-Z]\d{4})$")


def _procedures(claim: dict[str, Any]) -> list[dict[str, Any]]:
    return claim.get("procedures") or []


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def procedure_required_check(context: RuleContext) -> RuleCheck | None:
    procedures = context.claim.get("procedures")
    if not procedures:
        return RuleCheck(field="procedures", value=procedures)
    return None


def procedure_code_format_check(context: RuleContext) -> RuleCheck | None:
    invalid_codes = [
        proc.get("code")
        for proc in _procedures(context.claim)
        if not isinstance(proc.get("code"), str)
        or not PROCEDURE_CODE_PATTERN.match(proc["code"])
    ]
    if invalid_codes:
        return RuleCheck(
            field="procedures.code",
            value=invalid_codes,
            details={"invalid_codes": invalid_codes},
        )
    return None


def procedure_charge_check(context: RuleContext) -> RuleCheck | None:
    missing_charges = [
        idx
        for idx, proc in enumerate(_procedures(context.claim))
        if not _is_number(proc.get("charge")) or proc["charge"] <= 0
    ]
    if missing_charges:
        return RuleCheck(
            field="procedures.charge",
            value=missing_charges,
            details={"indices": missing_charges},
        )
    return None


def diagnosis_pointer_check(context: RuleContext) -> RuleCheck | None:
    """Check that each line points at one or more existing diagnoses (1-based)."""
    claim = context.claim
    diagnosis_count = len(claim.get("diagnosis_codes") or [])
    invalid_pointers: list[dict[str, Any]] = []

    for idx, proc in enumerate(_procedures(claim)):
        pointers = proc.get("diagnosis_pointers") or []
        if not pointers:
            invalid_pointers.append({"index": idx, "issue": "missing"})
            continue
        for pointer in pointers:
            if not isinstance(pointer, int) or pointer < 1 or pointer > diagnosis_count:
                invalid_pointers.append({"index": idx, "issue": "invalid", "pointer": pointer})

    if invalid_pointers:
        return RuleCheck(
            field="procedures.diagnosis_pointers",
            value=invalid_pointers,
            details={"invalid_pointers": invalid_pointers},
        )
    return None


def _pointer_message(claim: dict[str, Any], result: RuleCheck) -> str:
    issues = []
    for item in result.value:
        if item["issue"] == "missing":
            issues.append(f"Procedure {item['index'] + 1}: missing diagnosis pointer")
        else:
            issues.append(f"Procedure {item['index'] + 1}: invalid pointer {item['pointer']}")
    return "; ".join(issues)


def procedure_units_check(context: RuleContext) -> RuleCheck | None:
    invalid_units = [
        idx
        for idx, proc in enumerate(_procedures(context.claim))
        if not isinstance(proc.get("units"), int)
        or isinstance(proc.get("units"), bool)
        or proc["units"] < 1
    ]
    if invalid_units:
        return RuleCheck(
            field="procedures.units",
            value=invalid_units,
            expected_value=1,
            details={"indices": invalid_units},
        )
    return None


def procedure_units_fix(claim: dict[str, Any]) -> FixOutcome:
    """Default missing or zero units to a single unit.

    Lines carrying fractional or negative units are left alone; those need
    a coder to decide.
    """
    updates: list[tuple[int, Any, int]] = []
    unfixable: list[int] = []

    for idx, proc in enumerate(_procedures(claim)):
        units = proc.get("units")
        if isinstance(units, int) and not isinstance(units, bool) and units >= 1:
            continue
        if units is None or units is False or units == 0 or units in ("", "0"):
            updates.append((idx, units, 1))
        elif isinstance(units, str) and units.strip().isdigit():
            updates.append((idx, units, int(units)))
        else:
            unfixable.append(idx)

    if unfixable:
        positions = ", ".join(str(i + 1) for i in unfixable)
        return FixOutcome(
            fixed=False,
            message=f"Units need manual review at positions: {positions}",
        )

    changes: dict[str, dict[str, Any]] = {}
    for idx, before, after in updates:
        claim["procedures"][idx]["units"] = after
        changes[f"procedures[{idx}].units"] = {"from": before, "to": after}

    return FixOutcome(
        fixed=True,
        message=f"Set units on {len(changes)} procedure line(s)",
        changes=changes,
    )


PROCEDURE_RULES = [
    ValidationRule(
        id="PC001",
        name="Procedure Code Required",
        description="At least one procedure code is required",
        category=RuleCategory.PROCEDURE,
        severity=Severity.ERROR,
        check=procedure_required_check,
        message=lambda claim, result: "At least one procedure code is required",
    ),
    ValidationRule(
        id="PC002",
        name="Valid CPT/HCPCS Format",
        description="Procedure codes must be valid CPT or HCPCS format",
        category=RuleCategory.PROCEDURE,
        severity=Severity.ERROR,
        check=procedure_code_format_check,
        message=lambda claim, result: (
            f"Invalid CPT/HCPCS codes: {', '.join(str(code) for code in result.value)}"
        ),
    ),
    ValidationRule(
        id="PC003",
        name="Procedure Charge Required",
        description="Each procedure must have a charge amount",
        category=RuleCategory.PROCEDURE,
        severity=Severity.ERROR,
        check=procedure_charge_check,
        message=lambda claim, result: (
            "Procedures missing charges at positions: "
            + ", ".join(str(i + 1) for i in result.value)
        ),
    ),
    ValidationRule(
        id="PC004",
        name="Diagnosis Pointer Required",
        description="Each procedure must link to at least one diagnosis",
        category=RuleCategory.PROCEDURE,
        severity=Severity.ERROR,
        check=diagnosis_pointer_check,
        message=_pointer_message,
    ),
    ValidationRule(
        id="PC005",
        name="Procedure Units Required",
        description="Each procedure must bill a positive whole number of units",
        category=RuleCategory.PROCEDURE,
        severity=Severity.ERROR,
        check=procedure_units_check,
        message=lambda claim, result: (
            "Procedures with invalid units at positions: "
            + ", ".join(str(i + 1) for i in result.value)
        ),
        fix=procedure_units_fix,
    ),
]
