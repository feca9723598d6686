"""Rule registry for managing active rules."""

from __future__ import annotations

from collections.abc import Iterable

from .models import RuleCategory, Severity, ValidationRule, coerce_enum


class RuleRegistry:
    def __init__(self) -> None:
        self._rules: list[ValidationRule] = []
        self._by_id: dict[str, ValidationRule] = {}

    def register(self, rule: ValidationRule) -> None:
        existing = self._by_id.get(rule.id)
        if existing is rule:
            return
        if existing is not None:
            raise ValueError(f"Duplicate rule id: {rule.id}")
        self._rules.append(rule)
        self._by_id[rule.id] = rule

    def extend(self, rules: Iterable[ValidationRule]) -> None:
        for rule in rules:
            self.register(rule)

    def all_rules(self) -> tuple[ValidationRule, ...]:
        return tuple(self._rules)

    def get_rule(self, rule_id: str) -> ValidationRule | None:
        return self._by_id.get(rule_id)

    def get_rules_by_category(
        self, category: RuleCategory | str
    ) -> tuple[ValidationRule, ...]:
        category = coerce_enum(RuleCategory, category, "rule category")
        return tuple(rule for rule in self._rules if rule.category == category)

    def get_rules_by_severity(
        self, severity: Severity | str
    ) -> tuple[ValidationRule, ...]:
        severity = coerce_enum(Severity, severity, "severity")
        return tuple(rule for rule in self._rules if rule.severity == severity)

    def get_auto_fixable_rules(self) -> tuple[ValidationRule, ...]:
        return tuple(rule for rule in self._rules if rule.auto_fixable)

    def __len__(self) -> int:
        return len(self._rules)


default_registry = RuleRegistry()
