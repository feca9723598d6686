"""Tests for the claim scrubbing engine."""

from __future__ import annotations

import copy
import logging
import threading
from datetime import date

import pytest

from claimscrub.errors import BadRequestError
from claimscrub.rules import (
    FixOutcome,
    RuleCategory,
    RuleCheck,
    RuleRegistry,
    Severity,
    ValidationRule,
    default_registry,
)
from claimscrub.scrubber import (
    ClaimScrubber,
    ScrubExecutionFailure,
    ScrubResult,
    ScrubStatus,
    summarize_batch,
)
from claimscrub.settings import DEFAULT_SETTINGS


def _scrubber_with(*rules: ValidationRule) -> ClaimScrubber:
    registry = RuleRegistry()
    registry.extend(rules)
    return ClaimScrubber(
        registry=registry, settings=DEFAULT_SETTINGS, today=lambda: date(2024, 3, 1)
    )


def _always_fails(context):
    return RuleCheck(field="x")


# ============================================================================
# STATUS DERIVATION
# ============================================================================
class TestScrubStatus:
    """Status derivation for single claims."""

    def test_clean_claim_passes(self, scrubber, clean_claim):
        """Test that a claim with no findings is PASS."""
        result = scrubber.scrub(clean_claim)

        assert result.status == ScrubStatus.PASS
        assert result.errors == []
        assert result.warnings == []
        assert result.info == []
        assert result.summary.total_checks == len(default_registry)
        assert result.claim_id == "CLM-001"

    def test_error_fails_regardless_of_warnings(self, scrubber, make_claim, clean_claim):
        """Test that any error yields FAIL even with warnings present."""
        insurance = dict(clean_claim["insurance"], policy_number="")
        patient = copy.deepcopy(clean_claim["patient"])
        patient["address"]["zip_code"] = "6270"
        claim = make_claim(insurance=insurance, patient=patient)

        result = scrubber.scrub(claim)

        assert result.status == ScrubStatus.FAIL
        assert [f.rule_id for f in result.errors] == ["IN001"]
        assert [f.rule_id for f in result.warnings] == ["PI005"]

    def test_warnings_only_pass_with_warnings(self, scrubber, make_claim):
        """Test that warnings without errors yield PASS_WITH_WARNINGS."""
        claim = make_claim(total_charges=175.0)

        result = scrubber.scrub(claim)

        assert result.status == ScrubStatus.PASS_WITH_WARNINGS
        assert [f.rule_id for f in result.warnings] == ["BL002"]
        assert result.summary.warning_count == 1

    def test_info_does_not_change_status(self, scrubber, make_claim):
        """Test that info findings leave a clean claim at PASS."""
        claim = make_claim(
            total_charges=12000.0,
            procedures=[
                {
                    "code": "27447",
                    "charge": 12000.0,
                    "units": 1,
                    "modifiers": [],
                    "diagnosis_pointers": [1],
                }
            ],
        )

        result = scrubber.scrub(claim)

        assert result.status == ScrubStatus.PASS
        assert [f.rule_id for f in result.info] == ["BL003"]

    def test_findings_carry_rule_metadata(self, scrubber, make_claim):
        """Test that findings report rule id, category, severity and field."""
        claim = make_claim(diagnosis_codes=["J06.9", "bad"])

        result = scrubber.scrub(claim)

        finding = result.errors[0]
        assert finding.rule_id == "DX002"
        assert finding.category == RuleCategory.DIAGNOSIS
        assert finding.severity == Severity.ERROR
        assert finding.field == "diagnosis_codes"
        assert finding.valid is False
        assert "bad" in finding.message
        assert result.categories["diagnosis"].errors == 1

    def test_scrub_without_auto_fix_does_not_mutate(self, scrubber, make_claim):
        """Test that rule evaluation never mutates the claim."""
        claim = make_claim(total_charges=999.0, place_of_service="1")
        before = copy.deepcopy(claim)

        scrubber.scrub(claim)

        assert claim == before

    def test_skip_warnings_drops_warnings(self, scrubber, make_claim):
        """Test that skip_warnings removes warnings from the result."""
        claim = make_claim(total_charges=175.0)

        result = scrubber.scrub(claim, skip_warnings=True)

        assert result.warnings == []
        assert result.status == ScrubStatus.PASS

    def test_category_filter(self, scrubber, make_claim):
        """Test that only the requested categories run."""
        claim = make_claim(diagnosis_codes=[], total_charges=175.0)

        result = scrubber.scrub(claim, categories=["patient_info"])

        assert result.summary.total_checks == 5
        assert result.status == ScrubStatus.PASS

    def test_validate_category(self, scrubber, make_claim):
        """Test scrubbing a single category."""
        claim = make_claim(diagnosis_codes=[])

        result = scrubber.validate_category(claim, RuleCategory.DIAGNOSIS)

        assert result.summary.total_checks == 3
        assert [f.rule_id for f in result.errors] == ["DX001"]

    def test_category_names_accepted(self, scrubber, clean_claim):
        """Test that upper-case category names select the same rules as values."""
        result = scrubber.scrub(clean_claim, categories=["PATIENT_INFO"])

        assert result.summary.total_checks == 5

    @pytest.mark.parametrize("category", ["astrology", None, 3])
    def test_unknown_category_rejected(self, scrubber, clean_claim, category):
        """Test that an unknown category raises BadRequestError."""
        with pytest.raises(BadRequestError, match="Unknown rule category"):
            scrubber.scrub(clean_claim, categories=[category])

    def test_rejects_non_mapping_claim(self, scrubber):
        """Test that a non-dict claim raises BadRequestError."""
        with pytest.raises(BadRequestError):
            scrubber.scrub(["not", "a", "claim"])

    def test_logs_scrub_event(self, scrubber, clean_claim, caplog):
        """Test that each scrub logs a structured event."""
        with caplog.at_level(logging.INFO, logger="claimscrub.scrubber.engine"):
            scrubber.scrub(clean_claim)

        records = [r for r in caplog.records if r.getMessage() == "Claim scrubbed"]
        assert len(records) == 1
        assert records[0].claim_id == "CLM-001"
        assert records[0].status == "pass"


# ============================================================================
# AUTO-FIX
# ============================================================================
class TestAutoFix:
    """Auto-fix application and rollback."""

    def test_fixable_error_moves_to_fixed_issues(self, scrubber, make_claim):
        """Test that a fixed error leaves errors and yields FIXED."""
        claim = make_claim(
            procedures=[
                {
                    "code": "99213",
                    "charge": 150.0,
                    "units": 0,
                    "modifiers": [],
                    "diagnosis_pointers": [1],
                }
            ]
        )

        result = scrubber.scrub(claim, auto_fix=True)

        assert result.status == ScrubStatus.FIXED
        assert result.errors == []
        assert [f.rule_id for f in result.fixed_issues] == ["PC005"]
        assert result.summary.error_count == 0
        assert result.summary.fixed_count == 1
        assert result.categories["procedure"].errors == 0
        assert result.categories["procedure"].fixed == 1
        assert claim["procedures"][0]["units"] == 1

    def test_fixed_issue_records_changes(self, scrubber, make_claim, clean_claim):
        """Test that fixed issues carry the applied changes."""
        patient = copy.deepcopy(clean_claim["patient"])
        patient["address"]["zip_code"] = "627011234"
        claim = make_claim(patient=patient)

        result = scrubber.scrub(claim, auto_fix=True)

        assert result.status == ScrubStatus.FIXED
        assert result.warnings == []
        fixed = result.fixed_issues[0]
        assert fixed.rule_id == "PI005"
        assert fixed.changes == {
            "patient.address.zip_code": {"from": "627011234", "to": "62701-1234"}
        }
        assert claim["patient"]["address"]["zip_code"] == "62701-1234"

    def test_remaining_error_still_fails_after_fix(self, scrubber, make_claim):
        """Test that FAIL wins over FIXED when errors remain."""
        claim = make_claim(
            place_of_service="",
            procedures=[
                {
                    "code": "99213",
                    "charge": 150.0,
                    "units": None,
                    "modifiers": ["lt "],
                    "diagnosis_pointers": [1],
                }
            ],
        )

        result = scrubber.scrub(claim, auto_fix=True)

        assert result.status == ScrubStatus.FAIL
        assert {f.rule_id for f in result.fixed_issues} == {"PC005", "MD001"}
        assert [f.rule_id for f in result.errors] == ["BL001"]
        assert claim["procedures"][0]["modifiers"] == ["LT"]

    def test_failed_fix_leaves_claim_unchanged(self, scrubber, make_claim):
        """Test that a fix reporting failure restores the claim."""
        claim = make_claim(
            procedures=[
                {
                    "code": "99213",
                    "charge": 150.0,
                    "units": 1.5,
                    "modifiers": [],
                    "diagnosis_pointers": [1],
                }
            ]
        )
        before = copy.deepcopy(claim)

        result = scrubber.scrub(claim, auto_fix=True)

        assert result.status == ScrubStatus.FAIL
        assert [f.rule_id for f in result.errors] == ["PC005"]
        assert result.fix_failures[0].rule_id == "PC005"
        assert "manual review" in result.fix_failures[0].reason
        assert claim == before

    def test_unverified_fix_is_rolled_back(self, clean_claim):
        """Test that a fix leaving the rule failing is undone."""

        def bogus_fix(claim):
            claim["touched"] = True
            return FixOutcome(fixed=True, message="Touched", changes={"touched": {}})

        rule = ValidationRule(
            id="TS001",
            name="Always Fails",
            description="Test rule",
            category=RuleCategory.COMPLIANCE,
            severity=Severity.ERROR,
            check=_always_fails,
            message=lambda claim, result: "Always fails",
            fix=bogus_fix,
        )
        scrubber = _scrubber_with(rule)

        result = scrubber.scrub(clean_claim, auto_fix=True)

        assert "touched" not in clean_claim
        assert result.status == ScrubStatus.FAIL
        assert result.fix_failures[0].reason == "Auto-fix did not resolve the issue"
        assert result.fixed_issues == []

    def test_raising_fix_recorded_as_execution_error(self, clean_claim):
        """Test that a fix raising is caught, rolled back and recorded."""

        def exploding_fix(claim):
            claim["half_written"] = True
            raise KeyError("boom")

        rule = ValidationRule(
            id="TS002",
            name="Exploding Fix",
            description="Test rule",
            category=RuleCategory.COMPLIANCE,
            severity=Severity.ERROR,
            check=_always_fails,
            message=lambda claim, result: "Always fails",
            fix=exploding_fix,
        )
        scrubber = _scrubber_with(rule)

        result = scrubber.scrub(clean_claim, auto_fix=True)

        assert "half_written" not in clean_claim
        assert result.status == ScrubStatus.FAIL
        assert result.execution_errors[0].rule_id == "TS002"
        assert result.execution_errors[0].stage == "auto_fix"
        assert result.execution_errors[0].error_type == "KeyError"

    def test_auto_fix_all(self, scrubber, make_claim, clean_claim):
        """Test fixing every fixable issue in one call."""
        patient = copy.deepcopy(clean_claim["patient"])
        patient["address"]["zip_code"] = "62701 1234"
        claim = make_claim(patient=patient, total_charges=10.0)

        outcome = scrubber.auto_fix_all(claim)

        assert outcome["fixed"] is True
        assert outcome["fixed_count"] == 2
        assert claim["total_charges"] == 150.0
        assert scrubber.scrub(claim).status == ScrubStatus.PASS

    def test_auto_fix_all_nothing_to_fix(self, scrubber, clean_claim):
        """Test auto_fix_all on a clean claim."""
        outcome = scrubber.auto_fix_all(clean_claim)

        assert outcome["fixed"] is False
        assert outcome["message"] == "No auto-fixable issues found"


# ============================================================================
# RULE EXECUTION FAULTS
# ============================================================================
class TestExecutionErrors:
    """Rules raising during evaluation."""

    def test_raising_rule_does_not_abort_scrub(self, clean_claim):
        """Test that a raising rule is recorded and the rest still run."""

        def broken_check(context):
            raise RuntimeError("rule bug")

        broken = ValidationRule(
            id="TS003",
            name="Broken",
            description="Test rule",
            category=RuleCategory.COMPLIANCE,
            severity=Severity.ERROR,
            check=broken_check,
            message=lambda claim, result: "never",
        )
        scrubber = _scrubber_with(broken, *default_registry.all_rules())

        result = scrubber.scrub(clean_claim)

        assert result.status == ScrubStatus.PASS
        assert result.errors == []
        assert result.summary.execution_error_count == 1
        failure = result.execution_errors[0]
        assert failure.rule_id == "TS003"
        assert failure.stage == "execute"
        assert failure.error_type == "RuntimeError"
        assert "rule bug" in failure.error

    def test_malformed_claim_data_is_execution_error(self, scrubber, make_claim):
        """Test that malformed values surface as execution errors, not crashes."""
        claim = make_claim(total_charges="lots")

        result = scrubber.scrub(claim)

        assert any(e.rule_id == "BL002" for e in result.execution_errors)


# ============================================================================
# BATCH
# ============================================================================
class TestScrubBatch:
    """Batch scrubbing."""

    def test_batch_partitions_statuses(self, scrubber, make_claim, clean_claim):
        """Test 10 claims with 3 failing: failed == 3 and the rest partition."""
        claims = []
        for i in range(10):
            claim = make_claim(id=f"CLM-{i:03d}")
            if i in (2, 5, 8):
                claim["insurance"]["policy_number"] = None
            elif i in (1, 4):
                claim["total_charges"] = 151.0
            claims.append(claim)

        batch = scrubber.scrub_batch(claims, concurrency=3)

        summary = batch.summary
        assert summary.total_claims == 10
        assert summary.failed == 3
        assert summary.passed + summary.passed_with_warnings + summary.fixed == 7
        assert summary.passed == 5
        assert summary.passed_with_warnings == 2
        assert summary.execution_errors == 0
        assert [r.claim_id for r in batch.results] == [c["id"] for c in claims]

    def test_batch_with_auto_fix_option(self, scrubber, make_claim):
        """Test that scrub options are forwarded to each claim."""
        claims = [make_claim(id="A", total_charges=1.0), make_claim(id="B")]

        batch = scrubber.scrub_batch(claims, auto_fix=True)

        assert batch.summary.fixed == 1
        assert batch.summary.passed == 1
        assert batch.summary.total_fixed == 1

    def test_batch_records_execution_failure(self, scrubber, clean_claim):
        """Test that one bad item becomes an execution failure, not an exception."""
        batch = scrubber.scrub_batch([clean_claim, "garbage"])

        assert isinstance(batch.results[0], ScrubResult)
        failure = batch.results[1]
        assert isinstance(failure, ScrubExecutionFailure)
        assert failure.execution_error is True
        assert failure.error_type == "BadRequestError"
        assert batch.summary.execution_errors == 1
        assert batch.summary.passed == 1

    def test_batch_cancellation(self, scrubber, make_claim):
        """Test that a set cancel event stops unstarted chunks."""
        claims = [make_claim(id=f"CLM-{i}") for i in range(4)]
        cancel = threading.Event()
        cancel.set()

        batch = scrubber.scrub_batch(claims, concurrency=2, cancel_event=cancel)

        assert batch.results == []
        assert batch.summary.cancelled == 4

    @pytest.mark.parametrize("claims, concurrency", [("nope", 5), ([], 0), ([], -1)])
    def test_batch_rejects_bad_input(self, scrubber, claims, concurrency):
        """Test malformed top-level batch input."""
        with pytest.raises(BadRequestError):
            scrubber.scrub_batch(claims, concurrency=concurrency)

    @pytest.mark.parametrize(
        "options, message",
        [
            ({"autoFix": True}, "Unknown scrub option"),
            ({"auto_fix": True, "skipWarnings": True}, "skipWarnings"),
            ({"categories": ["astrology"]}, "Unknown rule category"),
        ],
    )
    def test_batch_rejects_bad_options(self, scrubber, clean_claim, options, message):
        """Test that malformed options fail up front instead of per claim."""
        with pytest.raises(BadRequestError, match=message):
            scrubber.scrub_batch([clean_claim], **options)

    def test_batch_accepts_category_iterator(self, scrubber, clean_claim):
        """Test that a one-shot category iterable still reaches every claim."""
        batch = scrubber.scrub_batch(
            [clean_claim, copy.deepcopy(clean_claim)],
            categories=(c for c in ["patient_info"]),
        )

        assert [r.summary.total_checks for r in batch.results] == [5, 5]

    def test_summarize_batch_without_summary(self, scrubber, clean_claim, make_claim):
        """Test aggregating an arbitrary list of results."""
        results = [
            scrubber.scrub(clean_claim),
            scrubber.scrub(make_claim(diagnosis_codes=[])),
        ]

        summary = summarize_batch(results)

        assert summary.total_claims == 2
        assert summary.passed == 1
        assert summary.failed == 1
        assert summary.total_errors == 2


# ============================================================================
# PRE-SUBMISSION GATE
# ============================================================================
class TestPreSubmitValidation:
    """Pre-submission validation."""

    def test_blocks_claim_with_errors(self, scrubber, make_claim):
        """Test that errors block submission."""
        claim = make_claim(place_of_service=None)

        outcome = scrubber.pre_submit_validation(claim)

        assert outcome["can_submit"] is False
        assert outcome["status"] == "fail"
        assert [b["rule_id"] for b in outcome["blockers"]] == ["BL001"]
        assert outcome["report"]["header"]["claim_id"] == "CLM-001"

    def test_allows_claim_with_warnings(self, scrubber, make_claim):
        """Test that warnings do not block submission and are not fixed."""
        claim = make_claim(total_charges=175.0)

        outcome = scrubber.pre_submit_validation(claim)

        assert outcome["can_submit"] is True
        assert outcome["status"] == "pass_with_warnings"
        assert [w["rule_id"] for w in outcome["warnings"]] == ["BL002"]
        assert claim["total_charges"] == 175.0
        assert outcome["summary"]["review_required"] is True
