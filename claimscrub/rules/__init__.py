"""Claim validation rules registry."""

from .models import (
    Finding,
    FixOutcome,
    RuleCategory,
    RuleCheck,
    RuleContext,
    Severity,
    ValidationRule,
    coerce_enum,
)
from .registry import RuleRegistry, default_registry
from .ruleset import (
    all_rules,
    get_auto_fixable_rules,
    get_rules_by_category,
    get_rules_by_severity,
    register_default_rules,
)

__all__ = [
    "Finding",
    "FixOutcome",
    "RuleCategory",
    "RuleCheck",
    "RuleContext",
    "RuleRegistry",
    "Severity",
    "ValidationRule",
    "all_rules",
    "coerce_enum",
    "default_registry",
    "get_auto_fixable_rules",
    "get_rules_by_category",
    "get_rules_by_severity",
    "register_default_rules",
]
