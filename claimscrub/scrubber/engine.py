"""Claim scrubbing engine.

Validates claims against the rule registry before submission and
optionally applies rule-specific auto-fixes.
"""
from __future__ import annotations

import copy
import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any

from claimscrub import config
from claimscrub.errors import BadRequestError, ExecutionError
from claimscrub.rules import (
    Finding,
    FixOutcome,
    RuleCategory,
    RuleRegistry,
    Severity,
    ValidationRule,
    coerce_enum,
    default_registry,
)
from claimscrub.settings import ScrubSettings, load_settings

from . import reporting
from .models import (
    BatchScrubResult,
    BatchSummary,
    FixedIssue,
    FixFailure,
    RuleExecutionFailure,
    ScrubExecutionFailure,
    ScrubResult,
    ScrubStatus,
)

logger = logging.getLogger(__name__)

# Keyword options scrub_batch forwards to scrub
SCRUB_OPTIONS = frozenset({"auto_fix", "categories", "skip_warnings"})


def _claim_id(claim: Any) -> str | None:
    if not isinstance(claim, dict):
        return None
    claim_id = claim.get("id") or claim.get("_id")
    return str(claim_id) if claim_id is not None else None


def _restore(claim: dict[str, Any], snapshot: dict[str, Any]) -> None:
    claim.clear()
    claim.update(snapshot)


def determine_status(result: ScrubResult) -> ScrubStatus:
    """Derive the overall status; earlier checks take priority."""
    if result.summary.error_count > 0:
        return ScrubStatus.FAIL
    if result.summary.fixed_count > 0:
        return ScrubStatus.FIXED
    if result.summary.warning_count > 0:
        return ScrubStatus.PASS_WITH_WARNINGS
    return ScrubStatus.PASS


class ClaimScrubber:
    """Runs validation rules over claims and reports their findings."""

    def __init__(
        self,
        registry: RuleRegistry | None = None,
        settings: ScrubSettings | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        """Initialize the scrubber.

        Args:
            registry: Rule registry to run. Defaults to the built-in rule set.
            settings: Rule thresholds. Defaults to ``load_settings()``.
            logger: Logger receiving structured scrub events.
            today: Clock used to evaluate date-relative rules.
        """
        self.registry = registry or default_registry
        self.settings = settings or load_settings()
        self.logger = logger or logging.getLogger(__name__)
        self._today = today or date.today

    # ------------------------------------------------------------------
    # Single claim
    # ------------------------------------------------------------------

    def select_rules(
        self, categories: Iterable[RuleCategory | str] | None = None
    ) -> tuple[ValidationRule, ...]:
        rules = self.registry.all_rules()
        if categories is None:
            return rules
        wanted = {coerce_enum(RuleCategory, c, "rule category") for c in categories}
        return tuple(rule for rule in rules if rule.category in wanted)

    def scrub(
        self,
        claim: dict[str, Any],
        auto_fix: bool = False,
        categories: Iterable[RuleCategory | str] | None = None,
        skip_warnings: bool = False,
    ) -> ScrubResult:
        """Scrub a claim.

        Every selected rule runs against the same snapshot of the claim;
        auto-fixes, when enabled, are applied only after all rules have
        been evaluated.

        Args:
            claim: Claim document. Mutated only by successful auto-fixes.
            auto_fix: Apply fixes for auto-fixable findings.
            categories: Restrict to these rule categories (None = all).
            skip_warnings: Drop warning-level findings from the result.

        Returns:
            ScrubResult with findings, fixes and the derived status
        """
        if not isinstance(claim, dict):
            raise BadRequestError("Claim must be a document mapping")

        start = time.perf_counter()
        today = self._today()
        rules = self.select_rules(categories)
        result = ScrubResult(claim_id=_claim_id(claim))
        result.summary.total_checks = len(rules)

        reported: list[tuple[ValidationRule, Finding]] = []
        for rule in rules:
            finding = self._execute_rule(rule, claim, today, result)
            if finding is None:
                continue
            if skip_warnings and finding.severity == Severity.WARNING:
                continue
            result.add_finding(finding)
            reported.append((rule, finding))

        if auto_fix:
            for rule, finding in reported:
                if finding.auto_fixable:
                    self._apply_fix(rule, finding, claim, today, result)

        result.status = determine_status(result)
        result.duration_ms = round((time.perf_counter() - start) * 1000, 3)

        self.logger.info(
            "Claim scrubbed",
            extra={
                "claim_id": result.claim_id,
                "status": result.status.value,
                "error_count": result.summary.error_count,
                "warning_count": result.summary.warning_count,
                "fixed_count": result.summary.fixed_count,
                "duration_ms": result.duration_ms,
            },
        )
        return result

    def _execute_rule(
        self,
        rule: ValidationRule,
        claim: dict[str, Any],
        today: date,
        result: ScrubResult,
    ) -> Finding | None:
        try:
            return rule.execute(claim, self.settings, today)
        except Exception as e:
            error = ExecutionError(
                f"Rule {rule.id} failed: {e}",
                claim_id=result.claim_id,
                rule_id=rule.id,
                cause=e,
            )
            self.logger.error(
                "Validation rule execution failed",
                extra={"claim_id": result.claim_id, "rule_id": rule.id, "error": str(e)},
            )
            result.add_execution_failure(RuleExecutionFailure.from_error(error, "execute"))
            return None

    def fix_issue(
        self,
        claim: dict[str, Any],
        rule: ValidationRule,
        today: date | None = None,
    ) -> FixOutcome:
        """Apply one rule's fix, keeping it only if the rule then passes.

        The claim is restored from a snapshot whenever the fix raises,
        reports failure, or leaves the rule still failing.
        """
        today = today or self._today()
        snapshot = copy.deepcopy(claim)

        try:
            outcome = rule.auto_fix(claim)
        except Exception as e:
            _restore(claim, snapshot)
            self.logger.error(
                "Auto-fix failed",
                extra={"claim_id": _claim_id(claim), "rule_id": rule.id, "error": str(e)},
            )
            return FixOutcome(
                fixed=False,
                message=f"Auto-fix failed: {e}",
                error_type=type(e).__name__,
            )

        if not outcome.fixed:
            _restore(claim, snapshot)
            return outcome

        try:
            still_failing = rule.execute(claim, self.settings, today) is not None
        except Exception as e:
            _restore(claim, snapshot)
            return FixOutcome(
                fixed=False,
                message=f"Auto-fix could not be verified: {e}",
                error_type=type(e).__name__,
            )

        if still_failing:
            _restore(claim, snapshot)
            return FixOutcome(fixed=False, message="Auto-fix did not resolve the issue")

        return outcome

    def _apply_fix(
        self,
        rule: ValidationRule,
        finding: Finding,
        claim: dict[str, Any],
        today: date,
        result: ScrubResult,
    ) -> None:
        outcome = self.fix_issue(claim, rule, today)

        if outcome.fixed:
            result.mark_fixed(
                finding,
                FixedIssue(
                    rule_id=rule.id,
                    rule_name=rule.name,
                    severity=rule.severity,
                    message=outcome.message,
                    changes=outcome.changes,
                ),
            )
            return

        result.fix_failures.append(FixFailure(rule_id=rule.id, reason=outcome.message))
        if outcome.error_type is not None:
            error = ExecutionError(outcome.message, claim_id=result.claim_id, rule_id=rule.id)
            result.add_execution_failure(
                RuleExecutionFailure.from_error(error, "auto_fix", outcome.error_type)
            )

    def auto_fix_all(self, claim: dict[str, Any]) -> dict[str, Any]:
        """Fix every auto-fixable error and warning found on the claim."""
        scrub_result = self.scrub(claim, auto_fix=False)
        fixable = [
            f for f in (*scrub_result.errors, *scrub_result.warnings) if f.auto_fixable
        ]

        if not fixable:
            return {
                "fixed": False,
                "fixed_count": 0,
                "fixes": [],
                "message": "No auto-fixable issues found",
            }

        today = self._today()
        fixes = []
        for finding in fixable:
            rule = self.registry.get_rule(finding.rule_id)
            if rule is None:
                continue
            outcome = self.fix_issue(claim, rule, today)
            if outcome.fixed:
                fixes.append(
                    {
                        "rule_id": rule.id,
                        "rule_name": rule.name,
                        "message": outcome.message,
                        "changes": outcome.changes,
                    }
                )

        return {
            "fixed": bool(fixes),
            "fixed_count": len(fixes),
            "fixes": fixes,
            "message": f"Auto-fixed {len(fixes)} of {len(fixable)} issues",
        }

    def validate_category(
        self, claim: dict[str, Any], category: RuleCategory | str
    ) -> ScrubResult:
        return self.scrub(claim, categories=[category])

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def scrub_batch(
        self,
        claims: Sequence[dict[str, Any]],
        concurrency: int = config.BATCH_CONCURRENCY,
        cancel_event: threading.Event | None = None,
        **options: Any,
    ) -> BatchScrubResult:
        """Scrub claims in chunks of ``concurrency``, each chunk in parallel.

        A claim whose scrub raises is recorded as a ScrubExecutionFailure
        and the batch continues. Setting ``cancel_event`` stops scheduling
        of further chunks; chunks already running complete.

        Raises:
            BadRequestError: If ``claims`` is not a list, concurrency < 1, or
                ``options`` holds an unknown option or category
        """
        if not isinstance(claims, (list, tuple)):
            raise BadRequestError("Claims must be a list")
        if not isinstance(concurrency, int) or concurrency < 1:
            raise BadRequestError("Concurrency must be a positive integer")
        unknown = sorted(set(options) - SCRUB_OPTIONS)
        if unknown:
            raise BadRequestError(f"Unknown scrub option(s): {', '.join(unknown)}")
        if options.get("categories") is not None:
            options["categories"] = list(options["categories"])
            self.select_rules(options["categories"])

        batch = BatchScrubResult()
        batch.summary.total_claims = len(claims)

        with ThreadPoolExecutor(max_workers=concurrency) as executor:
            for offset in range(0, len(claims), concurrency):
                if cancel_event is not None and cancel_event.is_set():
                    batch.summary.cancelled = len(claims) - offset
                    self.logger.warning(
                        "Batch scrub cancelled",
                        extra={
                            "processed": offset,
                            "cancelled": batch.summary.cancelled,
                        },
                    )
                    break
                chunk = claims[offset : offset + concurrency]
                futures = [
                    executor.submit(self._scrub_batch_item, claim, options)
                    for claim in chunk
                ]
                batch.results.extend(future.result() for future in futures)

        batch.summary = summarize_batch(batch.results, batch.summary)
        return batch

    def _scrub_batch_item(
        self, claim: Any, options: dict[str, Any]
    ) -> ScrubResult | ScrubExecutionFailure:
        try:
            return self.scrub(claim, **options)
        except Exception as e:
            self.logger.error(
                "Claim scrubbing failed",
                extra={"claim_id": _claim_id(claim), "error": str(e)},
            )
            return ScrubExecutionFailure(
                claim_id=_claim_id(claim),
                error=str(e),
                error_type=type(e).__name__,
            )

    # ------------------------------------------------------------------
    # Submission gate and reports
    # ------------------------------------------------------------------

    def pre_submit_validation(self, claim: dict[str, Any]) -> dict[str, Any]:
        """Scrub without fixing and decide whether the claim can be submitted."""
        scrub_result = self.scrub(claim, auto_fix=False, skip_warnings=False)
        return {
            "can_submit": scrub_result.status != ScrubStatus.FAIL,
            "status": scrub_result.status.value,
            "blockers": [f.to_dict() for f in scrub_result.errors],
            "warnings": [f.to_dict() for f in scrub_result.warnings],
            "summary": reporting.get_summary(scrub_result),
            "report": reporting.generate_report(scrub_result),
        }

    def get_summary(self, scrub_result: ScrubResult) -> dict[str, Any]:
        return reporting.get_summary(scrub_result)

    def get_recommendations(self, scrub_result: ScrubResult) -> list[dict[str, str]]:
        return reporting.get_recommendations(scrub_result)

    def generate_report(self, scrub_result: ScrubResult) -> dict[str, Any]:
        return reporting.generate_report(scrub_result)


def summarize_batch(
    results: Sequence[ScrubResult | ScrubExecutionFailure],
    summary: BatchSummary | None = None,
) -> BatchSummary:
    """Aggregate per-status counts and totals across batch items."""
    summary = summary or BatchSummary(total_claims=len(results))
    status_fields = {
        ScrubStatus.PASS: "passed",
        ScrubStatus.PASS_WITH_WARNINGS: "passed_with_warnings",
        ScrubStatus.FAIL: "failed",
        ScrubStatus.FIXED: "fixed",
    }

    for item in results:
        if isinstance(item, ScrubExecutionFailure):
            summary.execution_errors += 1
            continue
        name = status_fields[item.status]
        setattr(summary, name, getattr(summary, name) + 1)
        summary.total_errors += item.summary.error_count
        summary.total_warnings += item.summary.warning_count
        summary.total_fixed += item.summary.fixed_count

    return summary
