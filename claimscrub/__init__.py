"""Claim scrubbing and coordination-of-benefits package.

This package provides the billing-side claim integrity core for the
practice management backend, including:

- Claim validation rules registry
- Claim scrubber with auto-fix and batch modes
- Coordination of benefits (COB) order resolution
- Secondary claim generation from paid primary claims

Usage:
    from claimscrub import ClaimScrubber, SecondaryClaimGenerator

    scrubber = ClaimScrubber()
    result = scrubber.scrub(claim, auto_fix=True)

Modules:
    rules: Validation rule catalog and registry
    scrubber: Claim scrubbing engine and reporting
    cob: COB precedence rules
    secondary: Secondary claim amounts and generator
    repository: Claim repository protocol and in-memory store
    settings: Scrub settings loaded from YAML/JSON
"""

from .cob import COBDetermination, determine_cob_order
from .errors import BadRequestError, ClaimScrubError, ExecutionError, NotFoundError
from .repository import ClaimRepository, InMemoryClaimRepository
from .scrubber import ClaimScrubber, ScrubResult, ScrubStatus
from .secondary import (
    SecondaryClaimAmounts,
    SecondaryClaimGenerator,
    calculate_secondary_amounts,
)

__version__ = "0.1.0"

__all__ = [
    "BadRequestError",
    "COBDetermination",
    "ClaimRepository",
    "ClaimScrubError",
    "ClaimScrubber",
    "ExecutionError",
    "InMemoryClaimRepository",
    "NotFoundError",
    "ScrubResult",
    "ScrubStatus",
    "SecondaryClaimAmounts",
    "SecondaryClaimGenerator",
    "calculate_secondary_amounts",
    "determine_cob_order",
]
