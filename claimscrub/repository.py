"""Claim repository abstraction.

The scrubbing core never talks to a database directly; services receive a
``ClaimRepository`` and work with plain claim documents.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from typing import Any, Protocol

from claimscrub.errors import NotFoundError

logger = logging.getLogger(__name__)


class ClaimRepository(Protocol):
    """Storage operations the secondary claim generator depends on."""

    def get(self, claim_id: str) -> dict[str, Any] | None:
        """Return the claim document, or None if it does not exist."""
        ...

    def create(self, data: dict[str, Any]) -> dict[str, Any]:
        """Persist a new claim and return it with its assigned ``id``."""
        ...

    def update(self, claim_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        """Merge top-level ``patch`` keys into a claim and return the result."""
        ...

    def delete(self, claim_id: str) -> None:
        ...


class InMemoryClaimRepository:
    """Thread-safe dictionary-backed repository.

    Documents are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, claims: list[dict[str, Any]] | None = None) -> None:
        self._lock = threading.Lock()
        self._claims: dict[str, dict[str, Any]] = {}
        for claim in claims or []:
            self.create(claim)

    def get(self, claim_id: str) -> dict[str, Any] | None:
        with self._lock:
            claim = self._claims.get(str(claim_id))
            return copy.deepcopy(claim) if claim is not None else None

    def create(self, data: dict[str, Any]) -> dict[str, Any]:
        document = copy.deepcopy(data)
        claim_id = str(document.get("id") or uuid.uuid4())
        document["id"] = claim_id
        with self._lock:
            self._claims[claim_id] = document
        logger.debug("Claim created", extra={"claim_id": claim_id})
        return copy.deepcopy(document)

    def update(self, claim_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        claim_id = str(claim_id)
        with self._lock:
            if claim_id not in self._claims:
                raise NotFoundError("Claim", claim_id)
            document = self._claims[claim_id]
            document.update(copy.deepcopy(patch))
            document["id"] = claim_id
            return copy.deepcopy(document)

    def delete(self, claim_id: str) -> None:
        with self._lock:
            if self._claims.pop(str(claim_id), None) is None:
                raise NotFoundError("Claim", claim_id)
        logger.debug("Claim deleted", extra={"claim_id": str(claim_id)})

    def __len__(self) -> int:
        with self._lock:
            return len(self._claims)

    def __contains__(self, claim_id: object) -> bool:
        with self._lock:
            return str(claim_id) in self._claims
