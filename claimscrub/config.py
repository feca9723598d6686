"""Shared configuration for the claim scrubbing core.

This module centralizes environment variable access and default values
to prevent drift between modules.
"""

import os

# Batch scrubbing fan-out
BATCH_CONCURRENCY = int(os.getenv("CLAIMSCRUB_BATCH_CONCURRENCY", "5"))

# Days allowed to file a secondary claim after the primary payment
SECONDARY_FILING_LIMIT_DAYS = int(
    os.getenv("CLAIMSCRUB_SECONDARY_FILING_LIMIT_DAYS", "90")
)

# Optional YAML/JSON file with scrub settings overrides
SETTINGS_PATH = os.getenv("CLAIMSCRUB_SETTINGS_PATH")
