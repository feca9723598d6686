"""Service date and timely filing rules."""

from __future__ import annotations

from claimscrub.rules.models import (
    RuleCategory,
    RuleCheck,
    RuleContext,
    Severity,
    ValidationRule,
)
from claimscrub.utils import coerce_date


def service_date_required_check(context: RuleContext) -> RuleCheck | None:
    service_date = context.claim.get("service_date")
    if not service_date or coerce_date(service_date) is None:
        return RuleCheck(field="service_date", value=service_date)
    return None


def service_date_future_check(context: RuleContext) -> RuleCheck | None:
    service_date = coerce_date(context.claim.get("service_date"))
    if service_date and service_date > context.today:
        return RuleCheck(
            field="service_date",
            value=context.claim.get("service_date"),
            details="Service date cannot be in the future",
        )
    return None


def timely_filing_check(context: RuleContext) -> RuleCheck | None:
    """Check the claim is still inside the payer's filing window."""
    claim = context.claim
    service_date = coerce_date(claim.get("service_date"))
    if service_date is None:
        return None

    insurance = claim.get("insurance") or {}
    filing_limit_days = insurance.get("timely_filing_limit")
    if filing_limit_days is None:
        filing_limit_days = context.settings.timely_filing_days
    days_since_service = (context.today - service_date).days

    if days_since_service > filing_limit_days:
        return RuleCheck(
            field="service_date",
            value=claim.get("service_date"),
            expected_value=filing_limit_days,
            details={
                "days_since_service": days_since_service,
                "timely_filing_days": filing_limit_days,
            },
        )
    return None


def service_date_range_check(context: RuleContext) -> RuleCheck | None:
    claim = context.claim
    start = coerce_date(claim.get("service_date"))
    end = coerce_date(claim.get("service_date_end"))
    if start and end and end < start:
        return RuleCheck(
            field="service_date_end",
            value=claim.get("service_date_end"),
            expected_value=claim.get("service_date"),
        )
    return None


DATE_RULES = [
    ValidationRule(
        id="DT001",
        name="Service Date Required",
        description="Service date is required",
        category=RuleCategory.DATES,
        severity=Severity.ERROR,
        check=service_date_required_check,
        message=lambda claim, result: "Service date is required and must be valid",
    ),
    ValidationRule(
        id="DT002",
        name="Service Date Not Future",
        description="Service date cannot be in the future",
        category=RuleCategory.DATES,
        severity=Severity.ERROR,
        check=service_date_future_check,
        message=lambda claim, result: "Service date cannot be in the future",
    ),
    ValidationRule(
        id="DT003",
        name="Timely Filing Limit",
        description="Claim must be filed within payer timely filing limit",
        category=RuleCategory.DATES,
        severity=Severity.WARNING,
        check=timely_filing_check,
        message=lambda claim, result: (
            f"Service date was {result.details['days_since_service']} days ago "
            f"(limit: {result.details['timely_filing_days']} days)"
        ),
    ),
    ValidationRule(
        id="DT004",
        name="Service Date Range",
        description="Service end date cannot precede the start date",
        category=RuleCategory.DATES,
        severity=Severity.ERROR,
        check=service_date_range_check,
        message=lambda claim, result: "Service end date is before the service start date",
    ),
]
