"""Data models for the claim validation rules."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from claimscrub.errors import BadRequestError
from claimscrub.settings import DEFAULT_SETTINGS, ScrubSettings


class Severity(str, Enum):
    """Validation rule severity levels."""

    ERROR = "error"  # Must be fixed before submission
    WARNING = "warning"  # Should be reviewed but can submit
    INFO = "info"  # Informational only


class RuleCategory(str, Enum):
    """Validation rule categories."""

    PATIENT_INFO = "patient_info"
    PROVIDER_INFO = "provider_info"
    INSURANCE_INFO = "insurance_info"
    DIAGNOSIS = "diagnosis"
    PROCEDURE = "procedure"
    BILLING = "billing"
    DATES = "dates"
    MODIFIERS = "modifiers"
    AUTHORIZATION = "authorization"
    COMPLIANCE = "compliance"


def coerce_enum(enum_cls: type[Enum], value: Any, label: str) -> Any:
    """Resolve an enum member from a member, its value, or its name.

    Raises:
        BadRequestError: If ``value`` matches no member
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.strip()
        for member in enum_cls:
            if key.lower() == member.value or key.upper() == member.name:
                return member
    raise BadRequestError(f"Unknown {label}: {value!r}")


@dataclass(frozen=True)
class RuleContext:
    """Inputs required to evaluate a rule against one claim snapshot."""

    claim: dict[str, Any]
    settings: ScrubSettings = field(default_factory=lambda: DEFAULT_SETTINGS)
    today: date = field(default_factory=date.today)


@dataclass(frozen=True)
class RuleCheck:
    """What a failed check observed."""

    field: str | None = None
    value: Any = None
    expected_value: Any = None
    details: Any = None


@dataclass(frozen=True)
class Finding:
    """A single failed validation. Absence of a Finding means the rule passed."""

    rule_id: str
    rule_name: str
    category: RuleCategory
    severity: Severity
    message: str
    auto_fixable: bool
    field: str | None = None
    value: Any = None
    expected_value: Any = None
    details: Any = None
    valid: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "auto_fixable": self.auto_fixable,
            "field": self.field,
            "value": self.value,
            "expected_value": self.expected_value,
            "details": self.details,
            "valid": self.valid,
        }


@dataclass(frozen=True)
class FixOutcome:
    """Result of a rule's auto-fix."""

    fixed: bool
    message: str
    changes: dict[str, dict[str, Any]] = field(default_factory=dict)
    # Set when the fix raised instead of returning an outcome
    error_type: str | None = None


CheckFn = Callable[[RuleContext], "RuleCheck | None"]
MessageFn = Callable[[dict[str, Any], RuleCheck], str]
FixFn = Callable[[dict[str, Any]], FixOutcome]


@dataclass(frozen=True)
class ValidationRule:
    """A catalog entry: metadata plus a pure check and an optional fix."""

    id: str
    name: str
    description: str
    category: RuleCategory
    severity: Severity
    check: CheckFn
    message: MessageFn
    fix: FixFn | None = None

    @property
    def auto_fixable(self) -> bool:
        return self.fix is not None

    def execute(
        self,
        claim: dict[str, Any],
        settings: ScrubSettings | None = None,
        today: date | None = None,
    ) -> Finding | None:
        """Evaluate the rule. Never mutates ``claim``; exceptions propagate."""
        context = RuleContext(
            claim=claim,
            settings=settings or DEFAULT_SETTINGS,
            today=today or date.today(),
        )
        result = self.check(context)
        if result is None:
            return None

        return Finding(
            rule_id=self.id,
            rule_name=self.name,
            category=self.category,
            severity=self.severity,
            message=self.message(claim, result),
            auto_fixable=self.auto_fixable,
            field=result.field,
            value=result.value,
            expected_value=result.expected_value,
            details=result.details,
        )

    def auto_fix(self, claim: dict[str, Any]) -> FixOutcome:
        """Apply the rule's corrective mutation to ``claim``."""
        if self.fix is None:
            return FixOutcome(fixed=False, message="Auto-fix not available")
        return self.fix(claim)

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "severity": self.severity.value,
            "auto_fixable": self.auto_fixable,
        }
