"""Patient demographic rules."""

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
from claimscrub.utils import coerce_date

VALID_GENDERS = {"M", "F", "U", "male", "female", "unknown"}
_NON_DIGIT = re.compile(r"[^0-9]")


def _patient(claim: dict[str, Any]) -> dict[str, Any]:
    return claim.get("patient") or {}


def patient_name_check(context: RuleContext) -> RuleCheck | None:
    """Check that the patient first and last name are present."""
    patient = _patient(context.claim)
    first_name = (patient.get("first_name") or "").strip()
    last_name = (patient.get("last_name") or "").strip()

    if not first_name or not last_name:
        return RuleCheck(
            field="patient.name",
            value=f"{first_name} {last_name}".strip(),
            details={"first_name": first_name, "last_name": last_name},
        )
    return None


def patient_dob_check(context: RuleContext) -> RuleCheck | None:
    """Check that the patient date of birth is present, valid and not future."""
    dob = _patient(context.claim).get("date_of_birth")

    if not dob:
        return RuleCheck(field="patient.date_of_birth", value=None)

    dob_date = coerce_date(dob)
    if dob_date is None:
        return RuleCheck(field="patient.date_of_birth", value=dob, details="invalid")

    if dob_date > context.today:
        return RuleCheck(
            field="patient.date_of_birth",
            value=dob,
            details="Date of birth cannot be in the future",
        )
    return None


def _dob_message(claim: dict[str, Any], result: RuleCheck) -> str:
    if not result.value:
        return "Patient date of birth is required"
    if result.details and result.details != "invalid":
        return result.details
    return "Patient date of birth is invalid"


def patient_gender_check(context: RuleContext) -> RuleCheck | None:
    gender = _patient(context.claim).get("gender")
    if not gender or gender not in VALID_GENDERS:
        return RuleCheck(field="patient.gender", value=gender)
    return None


def patient_address_check(context: RuleContext) -> RuleCheck | None:
    """Check that street, city, state and ZIP are all present."""
    address = _patient(context.claim).get("address") or {}
    missing = {
        "street": not address.get("street"),
        "city": not address.get("city"),
        "state": not address.get("state"),
        "zip_code": not address.get("zip_code"),
    }
    if any(missing.values()):
        return RuleCheck(field="patient.address", value=address or None, details=missing)
    return None


def _address_message(claim: dict[str, Any], result: RuleCheck) -> str:
    labels = {"street": "street", "city": "city", "state": "state", "zip_code": "ZIP code"}
    missing = [labels[key] for key, is_missing in result.details.items() if is_missing]
    return f"Patient address missing: {', '.join(missing)}"


def patient_zip_format_check(context: RuleContext) -> RuleCheck | None:
    """Check that the ZIP code is formatted as XXXXX or XXXXX-XXXX."""
    address = _patient(context.claim).get("address") or {}
    zip_code = address.get("zip_code")
    if not zip_code:
        return None

    zip_code = str(zip_code)
    if re.fullmatch(r"\d{5}(-\d{4})?", zip_code):
        return None
    return RuleCheck(field="patient.address.zip_code", value=zip_code)


def patient_zip_format_fix(claim: dict[str, Any]) -> FixOutcome:
    """Reformat the ZIP code from its digits when it has 5 or 9 of them."""
    address = _patient(claim).get("address") or {}
    zip_code = str(address.get("zip_code") or "")
    cleaned = _NON_DIGIT.sub("", zip_code)

    if len(cleaned) not in (5, 9):
        return FixOutcome(
            fixed=False,
            message=f"ZIP code '{zip_code}' does not contain 5 or 9 digits",
        )

    formatted = cleaned[:5]
    if len(cleaned) == 9:
        formatted += "-" + cleaned[5:]
    claim["patient"]["address"]["zip_code"] = formatted

    return FixOutcome(
        fixed=True,
        message=f"Formatted ZIP code: {formatted}",
        changes={"patient.address.zip_code": {"from": zip_code, "to": formatted}},
    )


PATIENT_RULES = [
    ValidationRule(
        id="PI001",
        name="Patient Name Required",
        description="Patient first and last name are required",
        category=RuleCategory.PATIENT_INFO,
        severity=Severity.ERROR,
        check=patient_name_check,
        message=lambda claim, result: "Patient first and last name are required",
    ),
    ValidationRule(
        id="PI002",
        name="Patient DOB Required",
        description="Patient date of birth is required and must be valid",
        category=RuleCategory.PATIENT_INFO,
        severity=Severity.ERROR,
        check=patient_dob_check,
        message=_dob_message,
    ),
    ValidationRule(
        id="PI003",
        name="Patient Gender Required",
        description="Patient gender is required",
        category=RuleCategory.PATIENT_INFO,
        severity=Severity.ERROR,
        check=patient_gender_check,
        message=lambda claim, result: "Patient gender is required (M, F, or U)",
    ),
    ValidationRule(
        id="PI004",
        name="Patient Address Required",
        description="Patient address, city, state, and ZIP are required",
        category=RuleCategory.PATIENT_INFO,
        severity=Severity.ERROR,
        check=patient_address_check,
        message=_address_message,
    ),
    ValidationRule(
        id="PI005",
        name="Valid ZIP Code Format",
        description="ZIP code must be 5 or 9 digits",
        category=RuleCategory.PATIENT_INFO,
        severity=Severity.WARNING,
        check=patient_zip_format_check,
        message=lambda claim, result: "ZIP code must be 5 or 9 digits",
        fix=patient_zip_format_fix,
    ),
]
