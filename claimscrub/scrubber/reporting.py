"""Summaries, recommendations and reports built from scrub results.

All functions are pure: they read a ScrubResult (or a list of them) and
return plain dictionaries ready for serialization.
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from claimscrub.rules.models import RuleCategory

from .models import ScrubResult, ScrubStatus

TOP_ISSUE_LIMIT = 5
COMMON_FINDING_LIMIT = 10
WARNING_REVIEW_THRESHOLD = 5

CATEGORY_RECOMMENDATIONS = {
    RuleCategory.INSURANCE_INFO: {
        "action": "verify_insurance",
        "message": "Insurance information has errors",
        "details": "Verify insurance eligibility and coverage details",
    },
    RuleCategory.DIAGNOSIS: {
        "action": "review_diagnosis",
        "message": "Diagnosis codes have errors",
        "details": "Verify all diagnosis codes are correct and properly formatted",
    },
    RuleCategory.PROCEDURE: {
        "action": "review_procedures",
        "message": "Procedure codes have errors",
        "details": "Verify CPT/HCPCS codes and diagnosis pointers",
    },
}


def get_summary(scrub_result: ScrubResult) -> dict[str, Any]:
    status = scrub_result.status
    return {
        "status": status.value,
        "can_submit": status != ScrubStatus.FAIL,
        "review_required": status in (ScrubStatus.FIXED, ScrubStatus.PASS_WITH_WARNINGS),
        "error_count": scrub_result.summary.error_count,
        "warning_count": scrub_result.summary.warning_count,
        "fixed_count": scrub_result.summary.fixed_count,
        "auto_fixable_count": scrub_result.summary.auto_fixable_count,
        "top_issues": get_top_issues(scrub_result),
        "recommendations": get_recommendations(scrub_result),
    }


def get_top_issues(scrub_result: ScrubResult) -> list[dict[str, Any]]:
    """Categories with the most outstanding errors and warnings."""
    issues = [
        {
            "category": category,
            "total": counts.errors + counts.warnings,
            "errors": counts.errors,
            "warnings": counts.warnings,
        }
        for category, counts in scrub_result.categories.items()
    ]
    issues.sort(key=lambda issue: issue["total"], reverse=True)
    return issues[:TOP_ISSUE_LIMIT]


def get_recommendations(scrub_result: ScrubResult) -> list[dict[str, str]]:
    summary = scrub_result.summary
    recommendations: list[dict[str, str]] = []

    if summary.auto_fixable_count > 0:
        recommendations.append(
            {
                "priority": "high",
                "action": "auto_fix",
                "message": f"{summary.auto_fixable_count} issues can be automatically fixed",
                "details": "Run auto-fix to correct these issues",
            }
        )

    if summary.error_count > 0:
        recommendations.append(
            {
                "priority": "critical",
                "action": "review_errors",
                "message": f"{summary.error_count} errors must be corrected before submission",
                "details": "Review and correct all error-level issues",
            }
        )

    if summary.warning_count > WARNING_REVIEW_THRESHOLD:
        recommendations.append(
            {
                "priority": "medium",
                "action": "review_warnings",
                "message": f"{summary.warning_count} warnings found",
                "details": "Review warnings to improve claim quality",
            }
        )

    for category, recommendation in CATEGORY_RECOMMENDATIONS.items():
        counts = scrub_result.categories.get(category.value)
        if counts is not None and counts.errors > 0:
            recommendations.append({"priority": "high", **recommendation})

    if summary.execution_error_count > 0:
        recommendations.append(
            {
                "priority": "high",
                "action": "review_execution_errors",
                "message": f"{summary.execution_error_count} rules could not be evaluated",
                "details": "Claim data may be malformed; results are incomplete",
            }
        )

    return recommendations


def generate_report(scrub_result: ScrubResult) -> dict[str, Any]:
    return {
        "header": {
            "claim_id": scrub_result.claim_id,
            "status": scrub_result.status.value,
            "timestamp": scrub_result.timestamp,
            "duration": f"{scrub_result.duration_ms}ms",
        },
        "summary": get_summary(scrub_result),
        "issues": {
            "errors": [f.to_dict() for f in scrub_result.errors],
            "warnings": [f.to_dict() for f in scrub_result.warnings],
            "info": [f.to_dict() for f in scrub_result.info],
        },
        "fixes": [f.to_dict() for f in scrub_result.fixed_issues],
        "fix_failures": [f.to_dict() for f in scrub_result.fix_failures],
        "execution_errors": [e.to_dict() for e in scrub_result.execution_errors],
        "categories": {k: v.to_dict() for k, v in scrub_result.categories.items()},
        "statistics": scrub_result.summary.to_dict(),
    }


def _diff(
    before: Any, after: dict[str, Any], path: str, changes: list[dict[str, Any]]
) -> None:
    before = before if isinstance(before, dict) else {}
    for key, new_value in after.items():
        field_path = f"{path}.{key}" if path else key
        old_value = before.get(key)
        if isinstance(new_value, dict):
            _diff(old_value, new_value, field_path, changes)
        elif old_value != new_value:
            changes.append({"field": field_path, "before": old_value, "after": new_value})


def compare_claims(original: dict[str, Any], scrubbed: dict[str, Any]) -> dict[str, Any]:
    """List the dotted paths whose values differ between two claim versions.

    Nested mappings are walked; lists are compared as whole values. Keys
    removed in ``scrubbed`` are not reported.
    """
    changes: list[dict[str, Any]] = []
    _diff(original, scrubbed, "", changes)
    return {
        "has_changes": bool(changes),
        "change_count": len(changes),
        "changes": changes,
    }


def _tally(counter: dict[str, dict[str, Any]], rule_id: str, rule_name: str) -> None:
    entry = counter.setdefault(rule_id, {"rule_id": rule_id, "rule_name": rule_name, "count": 0})
    entry["count"] += 1


def _most_common(counter: dict[str, dict[str, Any]]) -> list[dict[str, Any]]:
    ranked = sorted(counter.values(), key=lambda entry: entry["count"], reverse=True)
    return ranked[:COMMON_FINDING_LIMIT]


def get_statistics(results: Sequence[ScrubResult]) -> dict[str, Any]:
    """Aggregate statistics over many scrub results.

    ``auto_fix_rate`` is the percentage of error-level problems that were
    fixed: fixed / (remaining errors + fixed).
    """
    by_status: dict[str, int] = {}
    common_errors: dict[str, dict[str, Any]] = {}
    common_warnings: dict[str, dict[str, Any]] = {}
    category_stats: dict[str, dict[str, int]] = {}

    for result in results:
        by_status[result.status.value] = by_status.get(result.status.value, 0) + 1
        for finding in result.errors:
            _tally(common_errors, finding.rule_id, finding.rule_name)
        for finding in result.warnings:
            _tally(common_warnings, finding.rule_id, finding.rule_name)
        for category, counts in result.categories.items():
            stats = category_stats.setdefault(category, {"errors": 0, "warnings": 0, "info": 0})
            stats["errors"] += counts.errors
            stats["warnings"] += counts.warnings
            stats["info"] += counts.info

    total_fixed = sum(r.summary.fixed_count for r in results)
    total_errors = sum(r.summary.error_count for r in results)
    total_duration = sum(r.duration_ms for r in results)
    denominator = total_errors + total_fixed

    return {
        "total_claims": len(results),
        "by_status": by_status,
        "common_errors": _most_common(common_errors),
        "common_warnings": _most_common(common_warnings),
        "category_stats": category_stats,
        "average_duration_ms": round(total_duration / len(results), 3) if results else 0.0,
        "auto_fix_rate": round(total_fixed / denominator * 100, 2) if denominator else 0.0,
    }
