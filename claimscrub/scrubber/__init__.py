"""Claim scrubber: pre-submission validation with optional auto-fix."""

from . import reporting
from .engine import ClaimScrubber, determine_status, summarize_batch
from .models import (
    BatchScrubResult,
    BatchSummary,
    CategoryCounts,
    FixedIssue,
    FixFailure,
    RuleExecutionFailure,
    ScrubExecutionFailure,
    ScrubResult,
    ScrubStatus,
    ScrubSummary,
)

__all__ = [
    "BatchScrubResult",
    "BatchSummary",
    "CategoryCounts",
    "ClaimScrubber",
    "FixFailure",
    "FixedIssue",
    "RuleExecutionFailure",
    "ScrubExecutionFailure",
    "ScrubResult",
    "ScrubStatus",
    "ScrubSummary",
    "determine_status",
    "reporting",
    "summarize_batch",
]
