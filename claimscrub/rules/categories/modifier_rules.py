"""Procedure modifier rules."""

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

MODIFIER_PATTERN = re.compile(r"^[A-Z0-9]{2}$")
# Claim forms carry up to four modifiers per line
MAX_MODIFIERS = 4


def _normalize_modifier(modifier: Any) -> str:
    return str(modifier).strip().upper()


def modifier_format_check(context: RuleContext) -> RuleCheck | None:
    """Check modifiers are two uppercase alphanumerics, at most four per line."""
    invalid: list[dict[str, Any]] = []

    for idx, proc in enumerate(context.claim.get("procedures") or []):
        modifiers = proc.get("modifiers") or []
        if len(modifiers) > MAX_MODIFIERS:
            invalid.append({"index": idx, "issue": "too_many", "count": len(modifiers)})
        for modifier in modifiers:
            if not isinstance(modifier, str) or not MODIFIER_PATTERN.match(modifier):
                invalid.append({"index": idx, "issue": "format", "modifier": modifier})

    if invalid:
        return RuleCheck(
            field="procedures.modifiers",
            value=invalid,
            details={"invalid_modifiers": invalid},
        )
    return None


def _modifier_message(claim: dict[str, Any], result: RuleCheck) -> str:
    issues = []
    for item in result.value:
        if item["issue"] == "too_many":
            issues.append(
                f"Procedure {item['index'] + 1}: {item['count']} modifiers (maximum {MAX_MODIFIERS})"
            )
        else:
            issues.append(f"Procedure {item['index'] + 1}: invalid modifier {item['modifier']!r}")
    return "; ".join(issues)


def modifier_format_fix(claim: dict[str, Any]) -> FixOutcome:
    """Normalize case and whitespace; anything else is left for review."""
    changes: dict[str, dict[str, Any]] = {}
    normalized_lines: dict[int, list[str]] = {}

    for idx, proc in enumerate(claim.get("procedures") or []):
        modifiers = proc.get("modifiers") or []
        normalized = [_normalize_modifier(m) for m in modifiers]
        bad = [m for m in normalized if not MODIFIER_PATTERN.match(m)]
        if bad or len(normalized) > MAX_MODIFIERS:
            return FixOutcome(
                fixed=False,
                message=f"Procedure {idx + 1} modifiers need manual review",
            )
        if normalized != modifiers:
            normalized_lines[idx] = normalized
            changes[f"procedures[{idx}].modifiers"] = {
                "from": list(modifiers),
                "to": normalized,
            }

    for idx, normalized in normalized_lines.items():
        claim["procedures"][idx]["modifiers"] = normalized

    return FixOutcome(
        fixed=bool(changes),
        message=f"Normalized modifiers on {len(changes)} procedure line(s)",
        changes=changes,
    )


MODIFIER_RULES = [
    ValidationRule(
        id="MD001",
        name="Valid Modifier Format",
        description="Modifiers must be two alphanumeric characters, at most four per line",
        category=RuleCategory.MODIFIERS,
        severity=Severity.ERROR,
        check=modifier_format_check,
        message=_modifier_message,
        fix=modifier_format_fix,
    ),
]
