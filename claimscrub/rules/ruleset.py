"""Default claim validation rule set."""

from __future__ import annotations

from .categories import (
    BILLING_RULES,
    COMPLIANCE_RULES,
    DATE_RULES,
    DIAGNOSIS_RULES,
    INSURANCE_RULES,
    MODIFIER_RULES,
    PATIENT_RULES,
    PROCEDURE_RULES,
    PROVIDER_RULES,
)
from .models import RuleCategory, Severity, ValidationRule
from .registry import RuleRegistry, default_registry


def register_default_rules(registry: RuleRegistry) -> None:
    """Register all default claim validation rules.

    Registration order is report order:
    1. Demographics (patient, insurance, provider)
    2. Coding (diagnosis, procedure, modifiers)
    3. Dates and billing totals
    4. COB compliance
    """
    registry.extend(
        [
            *PATIENT_RULES,
            *INSURANCE_RULES,
            *PROVIDER_RULES,
            *DIAGNOSIS_RULES,
            *PROCEDURE_RULES,
            *MODIFIER_RULES,
            *DATE_RULES,
            *BILLING_RULES,
            *COMPLIANCE_RULES,
        ]
    )


register_default_rules(default_registry)


def all_rules() -> tuple[ValidationRule, ...]:
    return default_registry.all_rules()


def get_rules_by_category(category: RuleCategory | str) -> tuple[ValidationRule, ...]:
    return default_registry.get_rules_by_category(category)


def get_rules_by_severity(severity: Severity | str) -> tuple[ValidationRule, ...]:
    return default_registry.get_rules_by_severity(severity)


def get_auto_fixable_rules() -> tuple[ValidationRule, ...]:
    return default_registry.get_auto_fixable_rules()
