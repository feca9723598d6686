"""Secondary (coordination of benefits) claim generation."""

from .amounts import SecondaryClaimAmounts, calculate_secondary_amounts
from .generator import (
    BatchGenerationResult,
    ReadinessCheck,
    ReadinessResult,
    SecondaryClaimGenerator,
    SecondaryClaimResult,
    build_secondary_claim,
    payment_from_claim,
)
from .models import PaymentAdjustment, PrimaryPaymentData, parse_payment

__all__ = [
    "BatchGenerationResult",
    "PaymentAdjustment",
    "PrimaryPaymentData",
    "ReadinessCheck",
    "ReadinessResult",
    "SecondaryClaimAmounts",
    "SecondaryClaimGenerator",
    "SecondaryClaimResult",
    "build_secondary_claim",
    "calculate_secondary_amounts",
    "parse_payment",
    "payment_from_claim",
]
