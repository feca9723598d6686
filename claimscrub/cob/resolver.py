"""Coordination of benefits (COB) precedence rules.

``determine_cob_order`` applies the standard automatic chain
(self, birthday, active/inactive, default). The Medicare, ESRD and gender
rules are separate strategies that callers invoke explicitly.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from claimscrub.utils.date_parser import coerce_date

INACTIVE_EMPLOYMENT_STATUSES = {"retired", "cobra", "inactive", "terminated"}

# Medicare Secondary Payer employer-size thresholds
WORKING_AGED_EMPLOYER_SIZE = 20
DISABLED_EMPLOYER_SIZE = 100
ESRD_COORDINATION_MONTHS = 30


@dataclass(frozen=True)
class COBDetermination:
    """Which coverage pays first, and the rule that decided it."""

    primary: dict[str, Any]
    secondary: dict[str, Any]
    rule: str
    notes: str | None = None
    confidence: str = "high"
    requires_review: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary": self.primary,
            "secondary": self.secondary,
            "rule": self.rule,
            "notes": self.notes,
            "confidence": self.confidence,
            "requires_review": self.requires_review,
        }


def _ordered(
    first: dict[str, Any], second: dict[str, Any], rule: str, **kwargs: Any
) -> COBDetermination:
    return COBDetermination(primary=first, secondary=second, rule=rule, **kwargs)


def _insured(insurance: dict[str, Any]) -> dict[str, Any]:
    return insurance.get("insured") or {}


def birthday_rule(parent1_dob: Any, parent2_dob: Any) -> int | None:
    """Return 1 or 2 for the parent whose birthday falls first in the year.

    Only month and day are compared. Returns None for an exact tie or an
    unparseable date.
    """
    dob1 = coerce_date(parent1_dob)
    dob2 = coerce_date(parent2_dob)
    if dob1 is None or dob2 is None:
        return None

    key1 = (dob1.month, dob1.day)
    key2 = (dob2.month, dob2.day)
    if key1 < key2:
        return 1
    if key2 < key1:
        return 2
    return None


def is_active_coverage(insurance: dict[str, Any]) -> bool:
    if insurance.get("is_active") is False:
        return False
    status = str(_insured(insurance).get("employment_status") or "").lower()
    return status not in INACTIVE_EMPLOYMENT_STATUSES


def determine_cob_order(
    patient_info: dict[str, Any] | None,
    insurance1: dict[str, Any],
    insurance2: dict[str, Any],
) -> COBDetermination:
    """Determine primary and secondary coverage for two plans.

    Rules are applied in order, stopping at the first that resolves:
    self coverage, birthday rule for dependent children, active over
    inactive coverage. When none resolves, ``insurance1`` is primary under
    ``default_order`` and the result is flagged for manual review.
    """
    self1 = insurance1.get("relationship_to_insured") == "self"
    self2 = insurance2.get("relationship_to_insured") == "self"
    if self1 != self2:
        if self1:
            return _ordered(insurance1, insurance2, "self")
        return _ordered(insurance2, insurance1, "self")

    both_children = (
        insurance1.get("relationship_to_insured") == "child"
        and insurance2.get("relationship_to_insured") == "child"
    )
    dob1 = _insured(insurance1).get("date_of_birth")
    dob2 = _insured(insurance2).get("date_of_birth")
    if both_children and dob1 and dob2:
        winner = birthday_rule(dob1, dob2)
        if winner == 1:
            return _ordered(insurance1, insurance2, "birthday")
        if winner == 2:
            return _ordered(insurance2, insurance1, "birthday")

    active1 = is_active_coverage(insurance1)
    active2 = is_active_coverage(insurance2)
    if active1 != active2:
        if active1:
            return _ordered(insurance1, insurance2, "active")
        return _ordered(insurance2, insurance1, "active")

    return _ordered(
        insurance1,
        insurance2,
        "default_order",
        notes="Unable to determine definitively, using provided order",
        confidence="low",
        requires_review=True,
    )


def is_medicare(insurance: dict[str, Any]) -> bool:
    coverage_type = insurance.get("coverage_type") or insurance.get("plan_type") or ""
    return str(coverage_type).upper() == "MEDICARE"


def calculate_age(date_of_birth: Any, today: date | None = None) -> int | None:
    dob = coerce_date(date_of_birth)
    if dob is None:
        return None
    today = today or date.today()
    age = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        age -= 1
    return age


def months_between(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def _medicare_pair(
    insurance1: dict[str, Any], insurance2: dict[str, Any]
) -> tuple[dict[str, Any], dict[str, Any]] | None:
    """Return (medicare, other) when exactly one side is Medicare."""
    medicare1 = is_medicare(insurance1)
    medicare2 = is_medicare(insurance2)
    if medicare1 == medicare2:
        return None
    return (insurance1, insurance2) if medicare1 else (insurance2, insurance1)


def determine_medicare_order(
    patient_info: dict[str, Any] | None,
    insurance1: dict[str, Any],
    insurance2: dict[str, Any],
    *,
    is_working: bool,
    employer_size: int | None = None,
    today: date | None = None,
) -> COBDetermination | None:
    """Medicare Secondary Payer precedence against employer group coverage.

    Returns None unless exactly one plan is Medicare and the patient's age
    is known. For a working patient the employer plan is primary when the
    employer meets the size threshold (20 employees at 65+, 100 under 65);
    an unknown employer size assumes the threshold is met and asks for
    review. A patient who is not working has Medicare as primary.
    """
    pair = _medicare_pair(insurance1, insurance2)
    if pair is None:
        return None
    medicare, employer = pair

    age = calculate_age((patient_info or {}).get("date_of_birth"), today)
    if age is None:
        return None

    if not is_working:
        return _ordered(
            medicare,
            employer,
            "medicare_retiree",
            notes="Patient is not actively working; Medicare is primary",
        )

    rule = "medicare_working_aged" if age >= 65 else "medicare_disabled"
    threshold = WORKING_AGED_EMPLOYER_SIZE if age >= 65 else DISABLED_EMPLOYER_SIZE

    if employer_size is None:
        return _ordered(
            employer,
            medicare,
            rule,
            notes=f"Employer coverage is primary if employer has {threshold}+ employees; verify employer size",
            confidence="medium",
            requires_review=True,
        )
    if employer_size >= threshold:
        return _ordered(
            employer,
            medicare,
            rule,
            notes=f"Patient is {age} and working for an employer with {employer_size} employees",
        )
    return _ordered(
        medicare,
        employer,
        rule,
        notes=f"Employer has fewer than {threshold} employees; Medicare is primary",
    )


def determine_esrd_order(
    insurance1: dict[str, Any],
    insurance2: dict[str, Any],
    *,
    esrd_start_date: Any,
    today: date | None = None,
) -> COBDetermination | None:
    """Employer coverage is primary for the first 30 months of ESRD, Medicare after."""
    pair = _medicare_pair(insurance1, insurance2)
    start = coerce_date(esrd_start_date)
    if pair is None or start is None:
        return None
    medicare, employer = pair

    months = months_between(start, today or date.today())
    if months <= ESRD_COORDINATION_MONTHS:
        return _ordered(
            employer,
            medicare,
            "medicare_esrd",
            notes=f"{months} months since ESRD onset; employer coverage is primary for the first 30 months",
        )
    return _ordered(
        medicare,
        employer,
        "medicare_esrd",
        notes=f"{months} months since ESRD onset; Medicare is primary after 30 months",
    )


def apply_gender_rule(
    insurance1: dict[str, Any], insurance2: dict[str, Any]
) -> COBDetermination | None:
    """Legacy rule: the father's plan is primary for a dependent child.

    Superseded by the birthday rule in most states; results always require
    review.
    """
    male1 = str(_insured(insurance1).get("gender") or "").upper() == "M"
    male2 = str(_insured(insurance2).get("gender") or "").upper() == "M"
    if male1 == male2:
        return None
    first, second = (insurance1, insurance2) if male1 else (insurance2, insurance1)
    return _ordered(
        first,
        second,
        "gender",
        notes="Legacy gender rule applied; confirm the plan does not use the birthday rule",
        confidence="medium",
        requires_review=True,
    )


def _coverage_overlaps(plan1: dict[str, Any], plan2: dict[str, Any]) -> bool:
    start1 = coerce_date(plan1.get("coverage_start")) or date.min
    end1 = coerce_date(plan1.get("coverage_end")) or date.max
    start2 = coerce_date(plan2.get("coverage_start")) or date.min
    end2 = coerce_date(plan2.get("coverage_end")) or date.max
    return start1 <= end2 and start2 <= end1


def detect_cob_conflicts(
    plans: list[dict[str, Any]],
    determination: COBDetermination | None = None,
) -> list[dict[str, str]]:
    """List data problems that make a COB order unreliable."""
    conflicts: list[dict[str, str]] = []

    for i, plan in enumerate(plans):
        for other in plans[i + 1 :]:
            if (
                plan.get("priority") == 1
                and other.get("priority") == 1
                and _coverage_overlaps(plan, other)
            ):
                conflicts.append(
                    {
                        "type": "multiple_primary",
                        "description": (
                            f"Both {plan.get('payer_name')} and {other.get('payer_name')} "
                            "marked as primary"
                        ),
                        "severity": "critical",
                    }
                )

    for plan in plans:
        payer_name = plan.get("payer_name")
        if plan.get("relationship_to_insured") == "child" and not _insured(plan).get(
            "date_of_birth"
        ):
            conflicts.append(
                {
                    "type": "missing_information",
                    "description": f"Missing insured date of birth for {payer_name}",
                    "severity": "high",
                }
            )
        if not plan.get("coverage_start"):
            conflicts.append(
                {
                    "type": "missing_information",
                    "description": f"Missing effective date for {payer_name}",
                    "severity": "medium",
                }
            )

    if determination is not None and determination.confidence == "low":
        conflicts.append(
            {
                "type": "rule_conflict",
                "description": "COB order determined with low confidence. Manual review recommended.",
                "severity": "medium",
            }
        )

    return conflicts
