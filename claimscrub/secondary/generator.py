"""Secondary claim generation after primary insurance payment."""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from claimscrub import config
from claimscrub.errors import BadRequestError, ExecutionError, NotFoundError
from claimscrub.repository import ClaimRepository
from claimscrub.scrubber import ClaimScrubber
from claimscrub.utils import KeyedLock, days_between

from .amounts import SecondaryClaimAmounts, calculate_secondary_amounts
from .models import PrimaryPaymentData, parse_payment

logger = logging.getLogger(__name__)

# Process-wide; every generator instance locks on the same table.
_primary_locks = KeyedLock()

PROCEDURE_FIELDS = (
    "code",
    "description",
    "charge",
    "units",
    "modifiers",
    "diagnosis_pointers",
    "place_of_service",
    "service_date",
)

INSURANCE_FIELDS = (
    "payer_id",
    "payer_name",
    "policy_number",
    "group_number",
    "plan_name",
    "relationship_to_insured",
    "insured",
    "coverage_start",
    "coverage_end",
)


@dataclass(frozen=True)
class ReadinessCheck:
    check: str
    passed: bool
    message: str | None = None
    days_remaining: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"check": self.check, "passed": self.passed}
        if self.message is not None:
            data["message"] = self.message
        if self.days_remaining is not None:
            data["days_remaining"] = self.days_remaining
        return data


@dataclass(frozen=True)
class ReadinessResult:
    """Ordered readiness checklist; ``ready`` only if every check passed."""

    ready: bool
    validations: list[ReadinessCheck]
    days_remaining: int | None = None
    primary_claim: dict[str, Any] = field(default_factory=dict)

    def get_check(self, name: str) -> ReadinessCheck | None:
        for validation in self.validations:
            if validation.check == name:
                return validation
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ready": self.ready,
            "validations": [v.to_dict() for v in self.validations],
            "days_remaining": self.days_remaining,
            "primary_claim": self.primary_claim,
        }


@dataclass
class SecondaryClaimResult:
    secondary_claim: dict[str, Any]
    primary_claim: dict[str, Any]
    amounts: SecondaryClaimAmounts
    pre_submit: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "secondary_claim": self.secondary_claim,
            "primary_claim": self.primary_claim,
            "amounts": self.amounts.to_dict(),
            "pre_submit": self.pre_submit,
        }


@dataclass
class BatchGenerationResult:
    successful: list[dict[str, Any]] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)
    total_processed: int = 0
    cancelled: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "successful": self.successful,
            "failed": self.failed,
            "total_processed": self.total_processed,
            "cancelled": self.cancelled,
        }


def _cob(claim: dict[str, Any]) -> dict[str, Any]:
    return claim.get("cob") or {}


def _primary_payment_snapshot(payment: PrimaryPaymentData, today: date) -> dict[str, Any]:
    return {
        "amount": payment.amount,
        "date": (payment.date or today).isoformat(),
        "eob_received": True,
        "eob_document": copy.deepcopy(payment.eob_document),
    }


def payment_from_claim(primary_claim: dict[str, Any]) -> dict[str, Any]:
    """Assemble primary payment data from a paid claim document."""
    payment = primary_claim.get("payment") or {}
    primary_payment = _cob(primary_claim).get("primary_payment") or {}
    return {
        "amount": primary_claim.get("amount_paid"),
        "date": payment.get("received_date") or primary_payment.get("date"),
        "patient_responsibility": primary_claim.get("patient_responsibility"),
        "adjustments": payment.get("adjustments"),
        "eob_document": primary_payment.get("eob_document"),
    }


def build_secondary_claim(
    primary_claim: dict[str, Any],
    amounts: SecondaryClaimAmounts,
    payment: PrimaryPaymentData,
    *,
    user_id: str | None = None,
    filing_limit: int = config.SECONDARY_FILING_LIMIT_DAYS,
    today: date | None = None,
) -> dict[str, Any]:
    """Derive the secondary claim document from its primary.

    Clinical and provider data are deep-copied so the two claims can be
    edited independently afterwards.
    """
    today = today or date.today()
    secondary_insurance = primary_claim.get("secondary_insurance") or {}

    insurance = {
        key: copy.deepcopy(secondary_insurance.get(key)) for key in INSURANCE_FIELDS
    }
    insurance["timely_filing_limit"] = secondary_insurance.get("timely_filing_limit")
    if insurance["timely_filing_limit"] is None:
        insurance["timely_filing_limit"] = filing_limit

    procedures = []
    for proc in primary_claim.get("procedures") or []:
        line = {key: copy.deepcopy(proc.get(key)) for key in PROCEDURE_FIELDS}
        line["modifiers"] = line["modifiers"] or []
        line["diagnosis_pointers"] = line["diagnosis_pointers"] or []
        procedures.append(line)

    return {
        "status": "draft",
        "patient": copy.deepcopy(primary_claim.get("patient") or {}),
        "provider": copy.deepcopy(primary_claim.get("provider") or {}),
        "facility": copy.deepcopy(primary_claim.get("facility")),
        "insurance": insurance,
        "secondary_insurance": {"has_secondary": False},
        "service_date": primary_claim.get("service_date"),
        "service_date_end": primary_claim.get("service_date_end"),
        "place_of_service": primary_claim.get("place_of_service"),
        "diagnosis_codes": list(primary_claim.get("diagnosis_codes") or []),
        "procedures": procedures,
        "total_charges": amounts.secondary_charges,
        "amount_paid": 0,
        "patient_responsibility": amounts.patient_responsibility_from_primary,
        "prior_auth_number": primary_claim.get("prior_auth_number"),
        "referral_number": primary_claim.get("referral_number"),
        "notes": (
            f"Secondary claim for primary claim "
            f"{primary_claim.get('claim_number') or primary_claim.get('id')}. "
            f"Primary paid: ${amounts.primary_paid:.2f}"
        ),
        "cob": {
            "is_primary": False,
            "is_secondary": True,
            "primary_claim_id": primary_claim.get("id"),
            "primary_payment": _primary_payment_snapshot(payment, today),
            "patient_responsibility_from_primary": amounts.patient_responsibility_from_primary,
        },
        "additional_info": copy.deepcopy(primary_claim.get("additional_info")),
        "created_by": user_id,
        "metadata": {
            "source": "secondary_generation",
            "version": 1,
            "tags": ["secondary", "cob"],
        },
    }


class SecondaryClaimGenerator:
    """Creates secondary claims for paid primary claims.

    Generation for one primary claim is serialized with a per-id lock, so
    a primary can never end up with two secondary claims in this process.
    """

    def __init__(
        self,
        repository: ClaimRepository,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        scrubber: ClaimScrubber | None = None,
        default_filing_limit: int = config.SECONDARY_FILING_LIMIT_DAYS,
        link_retries: int = 2,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.repository = repository
        self.logger = logger or logging.getLogger(__name__)
        self._scrubber = scrubber
        self.default_filing_limit = default_filing_limit
        self.link_retries = max(0, link_retries)
        self._today = today or date.today
        self._locks = _primary_locks

    @property
    def scrubber(self) -> ClaimScrubber:
        if self._scrubber is None:
            self._scrubber = ClaimScrubber(logger=self.logger)
        return self._scrubber

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    def validate_secondary_readiness(self, primary_claim_id: str) -> ReadinessResult:
        """Run the ordered readiness checklist for a primary claim.

        Raises:
            NotFoundError: If the primary claim does not exist
        """
        primary = self.repository.get(primary_claim_id)
        if primary is None:
            raise NotFoundError("Primary claim", primary_claim_id)

        cob = _cob(primary)
        primary_payment = cob.get("primary_payment") or {}
        secondary_insurance = primary.get("secondary_insurance") or {}
        validations: list[ReadinessCheck] = []

        has_secondary = bool(secondary_insurance.get("has_secondary"))
        validations.append(
            ReadinessCheck(
                check="has_secondary_insurance",
                passed=has_secondary,
                message=None if has_secondary else "No secondary insurance on file",
            )
        )

        paid = primary.get("status") == "paid"
        validations.append(
            ReadinessCheck(
                check="primary_paid",
                passed=paid,
                message=None if paid else "Primary claim not yet paid",
            )
        )

        eob_received = bool(primary_payment.get("eob_received"))
        validations.append(
            ReadinessCheck(
                check="eob_received",
                passed=eob_received,
                message=None if eob_received else "Primary EOB not received",
            )
        )

        not_filed = not cob.get("secondary_claim_id")
        validations.append(
            ReadinessCheck(
                check="secondary_not_filed",
                passed=not_filed,
                message=None if not_filed else "Secondary claim already filed",
            )
        )

        filing_limit = secondary_insurance.get("timely_filing_limit")
        if filing_limit is None:
            filing_limit = self.default_filing_limit
        days_since_payment = days_between(primary_payment.get("date"), self._today()) or 0
        within_limit = days_since_payment <= filing_limit
        days_remaining = max(0, filing_limit - days_since_payment)
        validations.append(
            ReadinessCheck(
                check="timely_filing",
                passed=within_limit,
                message=(
                    f"{'Within' if within_limit else 'Past'} timely filing "
                    f"({days_since_payment}/{filing_limit} days)"
                ),
                days_remaining=days_remaining,
            )
        )

        return ReadinessResult(
            ready=all(v.passed for v in validations),
            validations=validations,
            days_remaining=days_remaining,
            primary_claim={
                "id": primary.get("id"),
                "claim_number": primary.get("claim_number"),
                "status": primary.get("status"),
                "amount_paid": primary.get("amount_paid"),
            },
        )

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _check_preconditions(self, primary: dict[str, Any]) -> None:
        claim_id = primary.get("id")
        if not (primary.get("secondary_insurance") or {}).get("has_secondary"):
            raise BadRequestError(
                "Primary claim does not have secondary insurance", claim_id=claim_id
            )
        if primary.get("status") != "paid":
            raise BadRequestError(
                "Primary claim must be paid before generating secondary claim",
                claim_id=claim_id,
            )
        if _cob(primary).get("secondary_claim_id"):
            raise BadRequestError(
                "Secondary claim already exists for this primary claim", claim_id=claim_id
            )

    def generate_secondary_claim(
        self,
        primary_claim_id: str,
        payment: PrimaryPaymentData | dict[str, Any],
        *,
        user_id: str | None = None,
        auto_submit: bool = False,
    ) -> SecondaryClaimResult:
        """Create the secondary claim for a paid primary and link the two.

        Raises:
            NotFoundError: If the primary claim does not exist
            BadRequestError: If a precondition fails or payment data is malformed
            ExecutionError: If the primary could not be linked; the new
                secondary claim is deleted before raising
        """
        payment_data = parse_payment(payment)

        with self._locks.hold(str(primary_claim_id)):
            primary = self.repository.get(primary_claim_id)
            if primary is None:
                raise NotFoundError("Primary claim", primary_claim_id)
            self._check_preconditions(primary)

            today = self._today()
            amounts = calculate_secondary_amounts(primary, payment_data)
            secondary = self.repository.create(
                build_secondary_claim(
                    primary,
                    amounts,
                    payment_data,
                    user_id=user_id,
                    filing_limit=self.default_filing_limit,
                    today=today,
                )
            )
            primary = self._link_primary(primary, secondary, payment_data, today)

        pre_submit = None
        if auto_submit:
            pre_submit = self.scrubber.pre_submit_validation(secondary)
            status = "ready_to_submit" if pre_submit["can_submit"] else "draft"
            secondary = self.repository.update(secondary["id"], {"status": status})

        self.logger.info(
            "Secondary claim generated",
            extra={
                "primary_claim_id": primary.get("id"),
                "primary_claim_number": primary.get("claim_number"),
                "secondary_claim_id": secondary["id"],
                "total_charges": amounts.total_charges,
                "primary_paid": amounts.primary_paid,
                "remaining_balance": amounts.remaining_balance,
                "user_id": user_id,
            },
        )
        return SecondaryClaimResult(
            secondary_claim=secondary,
            primary_claim=primary,
            amounts=amounts,
            pre_submit=pre_submit,
        )

    def _link_primary(
        self,
        primary: dict[str, Any],
        secondary: dict[str, Any],
        payment: PrimaryPaymentData,
        today: date,
    ) -> dict[str, Any]:
        """Point the primary at its new secondary, retrying transient failures."""
        cob = dict(_cob(primary))
        cob.update(
            {
                "secondary_claim_id": secondary["id"],
                "secondary_filing_date": today.isoformat(),
                "primary_payment": _primary_payment_snapshot(payment, today),
            }
        )

        last_error: Exception | None = None
        for attempt in range(1, self.link_retries + 2):
            try:
                return self.repository.update(primary["id"], {"cob": cob})
            except Exception as e:
                last_error = e
                self.logger.warning(
                    "Linking secondary claim to primary failed",
                    extra={
                        "primary_claim_id": primary["id"],
                        "secondary_claim_id": secondary["id"],
                        "attempt": attempt,
                        "error": str(e),
                    },
                )

        try:
            self.repository.delete(secondary["id"])
        except Exception as e:
            self.logger.error(
                "Failed to delete unlinked secondary claim",
                extra={"secondary_claim_id": secondary["id"], "error": str(e)},
            )
            raise ExecutionError(
                f"Secondary claim {secondary['id']} could not be linked or removed",
                claim_id=primary["id"],
                cause=e,
            ) from e

        raise ExecutionError(
            f"Failed to link secondary claim to primary claim {primary['id']}; "
            "secondary claim was removed",
            claim_id=primary["id"],
            cause=last_error,
        ) from last_error

    # ------------------------------------------------------------------
    # Batch
    # ------------------------------------------------------------------

    def batch_generate_secondary_claims(
        self,
        primary_claims: Sequence[dict[str, Any]],
        user_id: str | None,
        cancel_event: threading.Event | None = None,
    ) -> BatchGenerationResult:
        """Generate secondary claims for many primaries, best effort.

        Each primary either succeeds or gets a failure entry with a reason;
        a single failure never stops the batch.

        Raises:
            BadRequestError: If ``primary_claims`` is not a list
        """
        if not isinstance(primary_claims, (list, tuple)):
            raise BadRequestError("Primary claims must be a list")

        results = BatchGenerationResult()

        for index, primary in enumerate(primary_claims):
            if cancel_event is not None and cancel_event.is_set():
                results.cancelled = len(primary_claims) - index
                self.logger.warning(
                    "Secondary claim batch cancelled",
                    extra={"processed": index, "cancelled": results.cancelled},
                )
                break

            results.total_processed += 1
            if not isinstance(primary, dict):
                results.failed.append(
                    {"primary_claim_id": None, "error": "Invalid claim document"}
                )
                continue
            primary_id = primary.get("id")
            cob = _cob(primary)

            if cob.get("secondary_claim_id"):
                results.failed.append(
                    {"primary_claim_id": primary_id, "error": "Secondary claim already exists"}
                )
                continue
            if not (cob.get("primary_payment") or {}).get("eob_received"):
                results.failed.append(
                    {"primary_claim_id": primary_id, "error": "Primary payment EOB not received"}
                )
                continue

            try:
                result = self.generate_secondary_claim(
                    primary_id, payment_from_claim(primary), user_id=user_id
                )
            except Exception as e:
                self.logger.error(
                    "Failed to generate secondary claim",
                    extra={"primary_claim_id": primary_id, "error": str(e)},
                )
                results.failed.append(
                    {
                        "primary_claim_id": primary_id,
                        "primary_claim_number": primary.get("claim_number"),
                        "error": str(e),
                    }
                )
                continue

            results.successful.append(
                {
                    "primary_claim_id": primary_id,
                    "primary_claim_number": primary.get("claim_number"),
                    "secondary_claim_id": result.secondary_claim["id"],
                    "amounts": result.amounts.to_dict(),
                }
            )

        return results
