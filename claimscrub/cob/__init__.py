"""Coordination of benefits order resolution."""

from .resolver import (
    COBDetermination,
    apply_gender_rule,
    birthday_rule,
    calculate_age,
    detect_cob_conflicts,
    determine_cob_order,
    determine_esrd_order,
    determine_medicare_order,
    is_active_coverage,
    is_medicare,
)

__all__ = [
    "COBDetermination",
    "apply_gender_rule",
    "birthday_rule",
    "calculate_age",
    "detect_cob_conflicts",
    "determine_cob_order",
    "determine_esrd_order",
    "determine_medicare_order",
    "is_active_coverage",
    "is_medicare",
]
