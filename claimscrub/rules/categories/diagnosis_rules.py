"""Diagnosis code rules."""

from __future__ import annotations

import re

from claimscrub.rules.models import (
    RuleCategory,
    RuleCheck,
    RuleContext,
    Severity,
    ValidationRule,
)

# Letter, digit, alphanumeric, then an optional 1-4 character extension
ICD10_PATTERN = re.compile(r"^[A-Z][0-9][0-9A-Z](\.[0-9A-Z]{1,4})?$")


def primary_diagnosis_check(context: RuleContext) -> RuleCheck | None:
    diagnosis_codes = context.claim.get("diagnosis_codes")
    if not diagnosis_codes:
        return RuleCheck(field="diagnosis_codes", value=diagnosis_codes)
    return None


def icd10_format_check(context: RuleContext) -> RuleCheck | None:
    diagnosis_codes = context.claim.get("diagnosis_codes") or []
    invalid_codes = [
        code
        for code in diagnosis_codes
        if not isinstance(code, str) or not ICD10_PATTERN.match(code)
    ]
    if invalid_codes:
        return RuleCheck(
            field="diagnosis_codes",
            value=invalid_codes,
            details={"invalid_codes": invalid_codes},
        )
    return None


def max_diagnosis_check(context: RuleContext) -> RuleCheck | None:
    diagnosis_codes = context.claim.get("diagnosis_codes") or []
    limit = context.settings.max_diagnosis_codes
    if len(diagnosis_codes) > limit:
        return RuleCheck(
            field="diagnosis_codes",
            value=len(diagnosis_codes),
            expected_value=limit,
            details={"count": len(diagnosis_codes)},
        )
    return None


DIAGNOSIS_RULES = [
    ValidationRule(
        id="DX001",
        name="Primary Diagnosis Required",
        description="At least one diagnosis code is required",
        category=RuleCategory.DIAGNOSIS,
        severity=Severity.ERROR,
        check=primary_diagnosis_check,
        message=lambda claim, result: "At least one diagnosis code is required",
    ),
    ValidationRule(
        id="DX002",
        name="Valid ICD-10 Format",
        description="Diagnosis codes must be valid ICD-10 format",
        category=RuleCategory.DIAGNOSIS,
        severity=Severity.ERROR,
        check=icd10_format_check,
        message=lambda claim, result: (
            f"Invalid ICD-10 codes: {', '.join(str(code) for code in result.value)}"
        ),
    ),
    ValidationRule(
        id="DX003",
        name="Maximum Diagnosis Codes",
        description="Most payers accept up to 12 diagnosis codes",
        category=RuleCategory.DIAGNOSIS,
        severity=Severity.WARNING,
        check=max_diagnosis_check,
        message=lambda claim, result: (
            f"Too many diagnosis codes: {result.value} (maximum {result.expected_value})"
        ),
    ),
]
