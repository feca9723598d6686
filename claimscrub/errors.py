"""Exception types raised by the claim scrubbing core.

Validation findings are returned as data; these exceptions cover system
faults and violated preconditions only.
"""

from __future__ import annotations

from typing import Any


class ClaimScrubError(Exception):
    """Base exception for claim scrubbing errors."""

    def __init__(self, message: str, claim_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.claim_id = claim_id


class NotFoundError(ClaimScrubError):
    """A referenced claim does not exist."""

    def __init__(self, resource: str, identifier: Any) -> None:
        super().__init__(f"{resource} not found: {identifier}", claim_id=str(identifier))
        self.resource = resource
        self.identifier = identifier


class BadRequestError(ClaimScrubError):
    """An operation's precondition is violated or its input is malformed."""

    pass


class ExecutionError(ClaimScrubError):
    """A rule, auto-fix or persistence step failed unexpectedly."""

    def __init__(
        self,
        message: str,
        claim_id: str | None = None,
        rule_id: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, claim_id=claim_id)
        self.rule_id = rule_id
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "claim_id": self.claim_id,
            "error": self.message,
            "error_type": type(self.cause).__name__ if self.cause else None,
        }
