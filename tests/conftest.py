"""Pytest configuration and fixtures."""

from __future__ import annotations

import copy
from datetime import date
from typing import Any

import pytest

from claimscrub.repository import InMemoryClaimRepository
from claimscrub.scrubber import ClaimScrubber
from claimscrub.secondary import SecondaryClaimGenerator
from claimscrub.settings import DEFAULT_SETTINGS

TODAY = date(2024, 3, 1)


def fixed_today() -> date:
    return TODAY


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def clean_claim() -> dict[str, Any]:
    """Claim that passes every default rule as of TODAY."""
    return {
        "id": "CLM-001",
        "claim_number": "C-1001",
        "status": "draft",
        "patient": {
            "first_name": "Jane",
            "last_name": "Doe",
            "date_of_birth": "1985-06-15",
            "gender": "F",
            "address": {
                "street": "1 Main St",
                "city": "Springfield",
                "state": "IL",
                "zip_code": "62701",
            },
        },
        "provider": {"npi": "1234567890", "tax_id": "12-3456789"},
        "insurance": {
            "payer_id": "AETNA",
            "payer_name": "Aetna",
            "policy_number": "POL123",
            "group_number": "GRP1",
            "relationship_to_insured": "self",
            "coverage_start": "2024-01-01",
            "coverage_end": "2024-12-31",
        },
        "secondary_insurance": {"has_secondary": False},
        "service_date": "2024-02-15",
        "place_of_service": "11",
        "diagnosis_codes": ["J06.9"],
        "procedures": [
            {
                "code": "99213",
                "description": "Office visit",
                "charge": 150.0,
                "units": 1,
                "modifiers": [],
                "diagnosis_pointers": [1],
            }
        ],
        "total_charges": 150.0,
        "cob": {"is_primary": True, "is_secondary": False},
    }


@pytest.fixture
def make_claim(clean_claim: dict[str, Any]):
    """Factory returning independent copies of the clean claim with overrides."""

    def _make(**overrides: Any) -> dict[str, Any]:
        claim = copy.deepcopy(clean_claim)
        claim.update(copy.deepcopy(overrides))
        return claim

    return _make


@pytest.fixture
def paid_primary_claim(clean_claim: dict[str, Any]) -> dict[str, Any]:
    """Paid primary claim with secondary coverage and the EOB on file."""
    claim = copy.deepcopy(clean_claim)
    claim.update(
        {
            "id": "PRIMARY-001",
            "claim_number": "C-2001",
            "status": "paid",
            "procedures": [
                {
                    "code": "99215",
                    "description": "Office visit, high complexity",
                    "charge": 500.0,
                    "units": 1,
                    "modifiers": ["25"],
                    "diagnosis_pointers": [1],
                }
            ],
            "total_charges": 500.0,
            "amount_paid": 350.0,
            "patient_responsibility": 50.0,
            "payment": {
                "received_date": "2024-02-20",
                "adjustments": [{"amount": -100.0, "reason": "CO-45"}],
            },
            "secondary_insurance": {
                "has_secondary": True,
                "payer_id": "MEDIGAP1",
                "payer_name": "Medigap Plan",
                "policy_number": "SEC999",
                "relationship_to_insured": "self",
                "coverage_start": "2024-01-01",
                "timely_filing_limit": 90,
            },
            "cob": {
                "is_primary": True,
                "is_secondary": False,
                "primary_payment": {
                    "amount": 350.0,
                    "date": "2024-02-20",
                    "eob_received": True,
                    "eob_document": "eob-2001.pdf",
                },
            },
            "additional_info": {"source_system": "intake", "flags": ["reviewed"]},
        }
    )
    return claim


@pytest.fixture
def primary_payment() -> dict[str, Any]:
    return {
        "amount": 350.0,
        "date": "2024-02-20",
        "adjustments": [{"amount": -100.0, "reason": "CO-45"}],
        "patient_responsibility": 50.0,
        "eob_document": "eob-2001.pdf",
    }


@pytest.fixture
def scrubber() -> ClaimScrubber:
    return ClaimScrubber(settings=DEFAULT_SETTINGS, today=fixed_today)


@pytest.fixture
def repository(paid_primary_claim: dict[str, Any]) -> InMemoryClaimRepository:
    return InMemoryClaimRepository([paid_primary_claim])


@pytest.fixture
def generator(
    repository: InMemoryClaimRepository, scrubber: ClaimScrubber
) -> SecondaryClaimGenerator:
    return SecondaryClaimGenerator(repository, scrubber=scrubber, today=fixed_today)
