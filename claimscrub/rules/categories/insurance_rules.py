"""Insurance coverage rules."""

from __future__ import annotations

from typing import Any

from claimscrub.rules.models import (
    RuleCategory,
    RuleCheck,
    RuleContext,
    Severity,
    ValidationRule,
)
from claimscrub.utils import coerce_date


def _insurance(claim: dict[str, Any]) -> dict[str, Any]:
    return claim.get("insurance") or {}


def policy_number_check(context: RuleContext) -> RuleCheck | None:
    policy_number = str(_insurance(context.claim).get("policy_number") or "").strip()
    if not policy_number:
        return RuleCheck(field="insurance.policy_number", value=policy_number or None)
    return None


def group_number_check(context: RuleContext) -> RuleCheck | None:
    """Check group number for payers that require one."""
    insurance = _insurance(context.claim)
    group_number = insurance.get("group_number")
    payer_id = str(insurance.get("payer_id") or "").strip().upper()

    if (
        not group_number
        and payer_id
        and payer_id in context.settings.group_number_required_payers
    ):
        return RuleCheck(
            field="insurance.group_number",
            value=group_number,
            details={"payer_id": payer_id},
        )
    return None


def coverage_active_check(context: RuleContext) -> RuleCheck | None:
    """Check that the service date falls inside the coverage period."""
    claim = context.claim
    insurance = _insurance(claim)
    service_date = coerce_date(claim.get("service_date"))
    if service_date is None:
        # DT001 reports a missing or invalid service date
        return None

    coverage_start = coerce_date(insurance.get("coverage_start"))
    coverage_end = coerce_date(insurance.get("coverage_end"))

    if coverage_start and service_date < coverage_start:
        return RuleCheck(
            field="insurance.coverage_start",
            value=insurance.get("coverage_start"),
            details="Service date is before coverage start date",
        )
    if coverage_end and service_date > coverage_end:
        return RuleCheck(
            field="insurance.coverage_end",
            value=insurance.get("coverage_end"),
            details="Service date is after coverage end date",
        )
    return None


def payer_id_check(context: RuleContext) -> RuleCheck | None:
    payer_id = str(_insurance(context.claim).get("payer_id") or "").strip()
    if not payer_id:
        return RuleCheck(field="insurance.payer_id", value=payer_id or None)
    return None


def secondary_coverage_check(context: RuleContext) -> RuleCheck | None:
    """Check that flagged secondary coverage has enough detail to bill."""
    secondary = context.claim.get("secondary_insurance") or {}
    if not secondary.get("has_secondary"):
        return None

    required_fields = ["payer_id", "policy_number", "relationship_to_insured"]
    missing = [f for f in required_fields if not secondary.get(f)]
    if missing:
        return RuleCheck(
            field="secondary_insurance",
            value=missing,
            details={"missing_fields": missing},
        )
    return None


INSURANCE_RULES = [
    ValidationRule(
        id="IN001",
        name="Insurance Policy Number Required",
        description="Insurance policy/member ID is required",
        category=RuleCategory.INSURANCE_INFO,
        severity=Severity.ERROR,
        check=policy_number_check,
        message=lambda claim, result: "Insurance policy/member ID is required",
    ),
    ValidationRule(
        id="IN002",
        name="Insurance Group Number",
        description="Group number may be required by some payers",
        category=RuleCategory.INSURANCE_INFO,
        severity=Severity.WARNING,
        check=group_number_check,
        message=lambda claim, result: (
            f"Group number may be required for {result.details['payer_id']}"
        ),
    ),
    ValidationRule(
        id="IN003",
        name="Insurance Coverage Active",
        description="Service date must be within coverage period",
        category=RuleCategory.INSURANCE_INFO,
        severity=Severity.ERROR,
        check=coverage_active_check,
        message=lambda claim, result: result.details,
    ),
    ValidationRule(
        id="IN004",
        name="Payer ID Required",
        description="Insurance payer ID is required",
        category=RuleCategory.INSURANCE_INFO,
        severity=Severity.ERROR,
        check=payer_id_check,
        message=lambda claim, result: "Insurance payer ID is required",
    ),
    ValidationRule(
        id="IN005",
        name="Secondary Coverage Complete",
        description="Secondary insurance flagged on the claim must be fully described",
        category=RuleCategory.INSURANCE_INFO,
        severity=Severity.WARNING,
        check=secondary_coverage_check,
        message=lambda claim, result: (
            f"Secondary insurance missing: {', '.join(result.value)}"
        ),
    ),
]
