"""Secondary claim financial split."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from claimscrub.errors import BadRequestError

from .models import PrimaryPaymentData, parse_payment


def _cents(value: float) -> float:
    return round(value, 2)


@dataclass(frozen=True)
class SecondaryClaimAmounts:
    total_charges: float
    primary_paid: float
    primary_adjustments: float
    allowed_amount: float
    patient_responsibility_from_primary: float
    remaining_balance: float
    secondary_charges: float

    def to_dict(self) -> dict[str, float]:
        return {
            "total_charges": self.total_charges,
            "primary_paid": self.primary_paid,
            "primary_adjustments": self.primary_adjustments,
            "allowed_amount": self.allowed_amount,
            "patient_responsibility_from_primary": self.patient_responsibility_from_primary,
            "remaining_balance": self.remaining_balance,
            "secondary_charges": self.secondary_charges,
        }


def calculate_secondary_amounts(
    primary_claim: dict[str, Any],
    payment: PrimaryPaymentData | dict[str, Any],
) -> SecondaryClaimAmounts:
    """Split the primary claim's charges into what the secondary payer owes.

    allowed = total charges - |sum of adjustments|
    remaining = allowed - primary paid
    secondary charges = max(0, remaining)

    All amounts are rounded to cents. ``secondary_charges`` never goes
    negative and never increases as the primary payment grows.

    Raises:
        BadRequestError: If total charges or the payment data are malformed
    """
    payment = parse_payment(payment)
    total_charges = primary_claim.get("total_charges") or 0
    if isinstance(total_charges, bool) or not isinstance(total_charges, (int, float)):
        raise BadRequestError(
            "Primary claim total charges must be a number",
            claim_id=primary_claim.get("id"),
        )

    adjustments_total = _cents(payment.adjustments_total)
    allowed_amount = _cents(total_charges - abs(adjustments_total))
    remaining_balance = _cents(allowed_amount - payment.amount)

    return SecondaryClaimAmounts(
        total_charges=_cents(total_charges),
        primary_paid=_cents(payment.amount),
        primary_adjustments=adjustments_total,
        allowed_amount=allowed_amount,
        patient_responsibility_from_primary=_cents(payment.patient_responsibility),
        remaining_balance=remaining_balance,
        secondary_charges=max(0.0, remaining_balance),
    )
