"""Claim validation rules organized by category."""

from __future__ import annotations

from .billing_rules import BILLING_RULES
from .compliance_rules import COMPLIANCE_RULES
from .date_rules import DATE_RULES
from .diagnosis_rules import DIAGNOSIS_RULES
from .insurance_rules import INSURANCE_RULES
from .modifier_rules import MODIFIER_RULES
from .patient_rules import PATIENT_RULES
from .procedure_rules import PROCEDURE_RULES
from .provider_rules import PROVIDER_RULES

__all__ = [
    "BILLING_RULES",
    "COMPLIANCE_RULES",
    "DATE_RULES",
    "DIAGNOSIS_RULES",
    "INSURANCE_RULES",
    "MODIFIER_RULES",
    "PATIENT_RULES",
    "PROCEDURE_RULES",
    "PROVIDER_RULES",
]
