"""Rendering provider rules."""

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

NPI_PATTERN = re.compile(r"^\d{10}$")
TAX_ID_PATTERN = re.compile(r"^\d{2}-\d{7}$")


def _provider(claim: dict[str, Any]) -> dict[str, Any]:
    return claim.get("provider") or {}


def provider_npi_check(context: RuleContext) -> RuleCheck | None:
    npi = str(_provider(context.claim).get("npi") or "").strip()
    if not npi:
        return RuleCheck(field="provider.npi", value=None)
    if not NPI_PATTERN.match(npi):
        return RuleCheck(field="provider.npi", value=npi, details="NPI must be 10 digits")
    return None


def provider_tax_id_check(context: RuleContext) -> RuleCheck | None:
    tax_id = str(_provider(context.claim).get("tax_id") or "").strip()
    if not tax_id:
        return RuleCheck(field="provider.tax_id", value=None)
    return None


def tax_id_format_check(context: RuleContext) -> RuleCheck | None:
    """Check that the EIN is formatted as XX-XXXXXXX."""
    tax_id = _provider(context.claim).get("tax_id")
    if not tax_id:
        return None
    if TAX_ID_PATTERN.match(str(tax_id).strip()):
        return None
    return RuleCheck(field="provider.tax_id", value=tax_id)


def tax_id_format_fix(claim: dict[str, Any]) -> FixOutcome:
    tax_id = str(_provider(claim).get("tax_id") or "")
    cleaned = re.sub(r"[^0-9]", "", tax_id)

    if len(cleaned) != 9:
        return FixOutcome(
            fixed=False,
            message=f"Tax ID '{tax_id}' does not contain 9 digits",
        )

    formatted = f"{cleaned[:2]}-{cleaned[2:]}"
    claim["provider"]["tax_id"] = formatted
    return FixOutcome(
        fixed=True,
        message=f"Formatted tax ID: {formatted}",
        changes={"provider.tax_id": {"from": tax_id, "to": formatted}},
    )


PROVIDER_RULES = [
    ValidationRule(
        id="PR001",
        name="Provider NPI Required",
        description="Rendering provider NPI is required",
        category=RuleCategory.PROVIDER_INFO,
        severity=Severity.ERROR,
        check=provider_npi_check,
        message=lambda claim, result: result.details or "Provider NPI is required",
    ),
    ValidationRule(
        id="PR002",
        name="Provider Tax ID Required",
        description="Provider tax ID (EIN) is required",
        category=RuleCategory.PROVIDER_INFO,
        severity=Severity.ERROR,
        check=provider_tax_id_check,
        message=lambda claim, result: "Provider tax ID is required",
    ),
    ValidationRule(
        id="PR003",
        name="Valid Tax ID Format",
        description="Tax ID must be in format XX-XXXXXXX",
        category=RuleCategory.PROVIDER_INFO,
        severity=Severity.WARNING,
        check=tax_id_format_check,
        message=lambda claim, result: "Tax ID should be formatted as XX-XXXXXXX",
        fix=tax_id_format_fix,
    ),
]
