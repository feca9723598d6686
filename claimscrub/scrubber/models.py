"""Data models for claim scrubbing results."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from claimscrub.errors import ExecutionError
from claimscrub.rules.models import Finding, Severity


class ScrubStatus(str, Enum):
    """Overall scrub outcome, in priority order."""

    PASS = "pass"  # No errors, ready to submit
    PASS_WITH_WARNINGS = "pass_with_warnings"  # Warnings only, can submit
    FAIL = "fail"  # Errors found, cannot submit
    FIXED = "fixed"  # Errors auto-fixed, review recommended


@dataclass
class CategoryCounts:
    errors: int = 0
    warnings: int = 0
    info: int = 0
    fixed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "errors": self.errors,
            "warnings": self.warnings,
            "info": self.info,
            "fixed": self.fixed,
        }


@dataclass
class ScrubSummary:
    total_checks: int = 0
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    fixed_count: int = 0
    auto_fixable_count: int = 0
    execution_error_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total_checks": self.total_checks,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "info_count": self.info_count,
            "fixed_count": self.fixed_count,
            "auto_fixable_count": self.auto_fixable_count,
            "execution_error_count": self.execution_error_count,
        }


@dataclass(frozen=True)
class FixedIssue:
    rule_id: str
    rule_name: str
    severity: Severity
    message: str
    changes: dict[str, dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "severity": self.severity.value,
            "message": self.message,
            "changes": self.changes,
        }


@dataclass(frozen=True)
class FixFailure:
    rule_id: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"rule_id": self.rule_id, "reason": self.reason}


@dataclass(frozen=True)
class RuleExecutionFailure:
    """A rule or auto-fix that raised instead of returning a result."""

    rule_id: str
    stage: str  # "execute" or "auto_fix"
    error: str
    error_type: str

    @classmethod
    def from_error(
        cls, error: ExecutionError, stage: str, error_type: str | None = None
    ) -> RuleExecutionFailure:
        return cls(
            rule_id=error.rule_id or "",
            stage=stage,
            error=error.message,
            error_type=error_type or type(error.cause or error).__name__,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "stage": self.stage,
            "error": self.error,
            "error_type": self.error_type,
        }


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ScrubResult:
    """Container for all findings of one scrub run."""

    claim_id: str | None
    status: ScrubStatus = ScrubStatus.PASS
    errors: list[Finding] = field(default_factory=list)
    warnings: list[Finding] = field(default_factory=list)
    info: list[Finding] = field(default_factory=list)
    fixed_issues: list[FixedIssue] = field(default_factory=list)
    fix_failures: list[FixFailure] = field(default_factory=list)
    execution_errors: list[RuleExecutionFailure] = field(default_factory=list)
    summary: ScrubSummary = field(default_factory=ScrubSummary)
    categories: dict[str, CategoryCounts] = field(default_factory=dict)
    timestamp: str = field(default_factory=_utc_now)
    duration_ms: float = 0.0

    def _counts(self, finding: Finding) -> CategoryCounts:
        key = finding.category.value
        if key not in self.categories:
            self.categories[key] = CategoryCounts()
        return self.categories[key]

    def add_finding(self, finding: Finding) -> None:
        counts = self._counts(finding)
        if finding.severity == Severity.ERROR:
            self.errors.append(finding)
            self.summary.error_count += 1
            counts.errors += 1
        elif finding.severity == Severity.WARNING:
            self.warnings.append(finding)
            self.summary.warning_count += 1
            counts.warnings += 1
        else:
            self.info.append(finding)
            self.summary.info_count += 1
            counts.info += 1

        if finding.auto_fixable:
            self.summary.auto_fixable_count += 1

    def mark_fixed(self, finding: Finding, fixed_issue: FixedIssue) -> None:
        """Move a reported finding into ``fixed_issues``."""
        counts = self._counts(finding)
        if finding.severity == Severity.ERROR:
            self.errors.remove(finding)
            self.summary.error_count -= 1
            counts.errors -= 1
        elif finding.severity == Severity.WARNING:
            self.warnings.remove(finding)
            self.summary.warning_count -= 1
            counts.warnings -= 1
        else:
            self.info.remove(finding)
            self.summary.info_count -= 1
            counts.info -= 1

        counts.fixed += 1
        self.summary.fixed_count += 1
        self.summary.auto_fixable_count -= 1
        self.fixed_issues.append(fixed_issue)

    def add_execution_failure(self, failure: RuleExecutionFailure) -> None:
        self.execution_errors.append(failure)
        self.summary.execution_error_count += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "status": self.status.value,
            "errors": [f.to_dict() for f in self.errors],
            "warnings": [f.to_dict() for f in self.warnings],
            "info": [f.to_dict() for f in self.info],
            "fixed_issues": [f.to_dict() for f in self.fixed_issues],
            "fix_failures": [f.to_dict() for f in self.fix_failures],
            "execution_errors": [e.to_dict() for e in self.execution_errors],
            "summary": self.summary.to_dict(),
            "categories": {k: v.to_dict() for k, v in self.categories.items()},
            "timestamp": self.timestamp,
            "duration_ms": self.duration_ms,
        }


@dataclass(frozen=True)
class ScrubExecutionFailure:
    """Batch item for a claim whose scrub raised; not a validation result."""

    claim_id: str | None
    error: str
    error_type: str
    execution_error: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "claim_id": self.claim_id,
            "error": self.error,
            "error_type": self.error_type,
            "execution_error": self.execution_error,
        }


@dataclass
class BatchSummary:
    total_claims: int = 0
    passed: int = 0
    passed_with_warnings: int = 0
    failed: int = 0
    fixed: int = 0
    execution_errors: int = 0
    cancelled: int = 0
    total_errors: int = 0
    total_warnings: int = 0
    total_fixed: int = 0

    def to_dict(self) -> dict[str, int]:
        return dict(self.__dict__)


@dataclass
class BatchScrubResult:
    results: list[ScrubResult | ScrubExecutionFailure] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
        }
