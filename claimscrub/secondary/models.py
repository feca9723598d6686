"""Pydantic models for primary payer payment data."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from claimscrub.errors import BadRequestError
from claimscrub.utils.date_parser import coerce_date


class PaymentAdjustment(BaseModel):
    """A contractual or other adjustment reported on the primary EOB."""

    amount: float = 0.0
    reason: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def default_missing_amount(cls, v: Any) -> Any:
        return 0.0 if v is None else v


class PrimaryPaymentData(BaseModel):
    """What the primary payer paid and adjusted, as read from its EOB."""

    amount: float = Field(default=0.0, ge=0)
    date: dt.date | None = None
    adjustments: list[PaymentAdjustment] = Field(default_factory=list)
    patient_responsibility: float = Field(default=0.0, ge=0)
    eob_document: Any = None

    @field_validator("amount", "patient_responsibility", mode="before")
    @classmethod
    def default_missing_money(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @field_validator("adjustments", mode="before")
    @classmethod
    def default_missing_adjustments(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("date", mode="before")
    @classmethod
    def parse_payment_date(cls, v: Any) -> Any:
        """Accept the same date formats as claim documents."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            parsed = coerce_date(v)
            if parsed is None:
                raise ValueError(f"Unrecognized date: {v}")
            return parsed
        return v

    @property
    def adjustments_total(self) -> float:
        return sum(adj.amount for adj in self.adjustments)


def parse_payment(data: PrimaryPaymentData | dict[str, Any] | None) -> PrimaryPaymentData:
    """Validate raw payment data.

    Raises:
        BadRequestError: If the payment data is missing or malformed
    """
    if isinstance(data, PrimaryPaymentData):
        return data
    if not isinstance(data, dict):
        raise BadRequestError("Primary payment data is required")

    try:
        return PrimaryPaymentData.model_validate(data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise BadRequestError(f"Invalid primary payment data: {details}") from e
