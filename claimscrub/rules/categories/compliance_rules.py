"""Coordination of Benefits (COB) compliance rules."""

from __future__ import annotations

from claimscrub.rules.models import (
    RuleCategory,
    RuleCheck,
    RuleContext,
    Severity,
    ValidationRule,
)


def secondary_links_primary_check(context: RuleContext) -> RuleCheck | None:
    """A secondary claim must point back at the primary it was derived from."""
    cob = context.claim.get("cob") or {}
    if cob.get("is_secondary") and not cob.get("primary_claim_id"):
        return RuleCheck(field="cob.primary_claim_id", value=None)
    return None


def secondary_primary_eob_check(context: RuleContext) -> RuleCheck | None:
    """Secondary payers adjudicate against the primary EOB."""
    cob = context.claim.get("cob") or {}
    if not cob.get("is_secondary"):
        return None

    primary_payment = cob.get("primary_payment") or {}
    if not primary_payment.get("eob_received"):
        return RuleCheck(
            field="cob.primary_payment.eob_received",
            value=primary_payment.get("eob_received"),
            expected_value=True,
        )
    return None


COMPLIANCE_RULES = [
    ValidationRule(
        id="CO001",
        name="Secondary Claim References Primary",
        description="A secondary claim must reference its primary claim",
        category=RuleCategory.COMPLIANCE,
        severity=Severity.ERROR,
        check=secondary_links_primary_check,
        message=lambda claim, result: "Secondary claim is missing its primary claim reference",
    ),
    ValidationRule(
        id="CO002",
        name="Secondary Claim Requires Primary EOB",
        description="A secondary claim must carry the primary payer's EOB",
        category=RuleCategory.COMPLIANCE,
        severity=Severity.ERROR,
        check=secondary_primary_eob_check,
        message=lambda claim, result: "Primary EOB must be received before billing the secondary payer",
    ),
]
