"""Billing and charge rules."""

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

PLACE_OF_SERVICE_PATTERN = re.compile(r"^\d{2}$")


def _line_total(claim: dict[str, Any]) -> float:
    total = 0.0
    for proc in claim.get("procedures") or []:
        charge = proc.get("charge")
        if isinstance(charge, (int, float)) and not isinstance(charge, bool):
            total += charge
    return round(total, 2)


def place_of_service_check(context: RuleContext) -> RuleCheck | None:
    place_of_service = context.claim.get("place_of_service")
    if place_of_service is None or place_of_service == "":
        return RuleCheck(field="place_of_service", value=place_of_service)
    if not PLACE_OF_SERVICE_PATTERN.match(str(place_of_service)):
        return RuleCheck(field="place_of_service", value=place_of_service)
    return None


def total_charges_check(context: RuleContext) -> RuleCheck | None:
    """Check the claim total against the sum of its line charges."""
    claim = context.claim
    calculated_total = _line_total(claim)
    claim_total = claim.get("total_charges") or 0
    difference = abs(calculated_total - claim_total)

    if difference > context.settings.charge_tolerance:
        return RuleCheck(
            field="total_charges",
            value=claim_total,
            expected_value=calculated_total,
            details={
                "calculated_total": calculated_total,
                "claim_total": claim_total,
                "difference": round(difference, 2),
            },
        )
    return None


def total_charges_fix(claim: dict[str, Any]) -> FixOutcome:
    old_total = claim.get("total_charges")
    new_total = _line_total(claim)
    claim["total_charges"] = new_total
    return FixOutcome(
        fixed=True,
        message=f"Updated total charges to match procedure sum: ${new_total:.2f}",
        changes={"total_charges": {"from": old_total, "to": new_total}},
    )


def high_dollar_check(context: RuleContext) -> RuleCheck | None:
    total_charges = context.claim.get("total_charges") or 0
    threshold = context.settings.high_dollar_threshold
    if total_charges > threshold:
        return RuleCheck(
            field="total_charges",
            value=total_charges,
            details={"threshold": threshold},
        )
    return None


BILLING_RULES = [
    ValidationRule(
        id="BL001",
        name="Place of Service Required",
        description="Place of service code is required",
        category=RuleCategory.BILLING,
        severity=Severity.ERROR,
        check=place_of_service_check,
        message=lambda claim, result: "Place of service code is required (2-digit code)",
    ),
    ValidationRule(
        id="BL002",
        name="Total Charges Match",
        description="Total charges should match sum of procedure charges",
        category=RuleCategory.BILLING,
        severity=Severity.WARNING,
        check=total_charges_check,
        message=lambda claim, result: (
            f"Total charges (${result.value}) doesn't match sum of procedures "
            f"(${result.expected_value})"
        ),
        fix=total_charges_fix,
    ),
    ValidationRule(
        id="BL003",
        name="High Dollar Claim",
        description="Claims above the high-dollar threshold get extra payer scrutiny",
        category=RuleCategory.BILLING,
        severity=Severity.INFO,
        check=high_dollar_check,
        message=lambda claim, result: (
            f"High-dollar claim: ${result.value} exceeds ${result.details['threshold']:.2f}"
        ),
    ),
]
