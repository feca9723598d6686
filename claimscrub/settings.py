"""Scrub settings and their file loader.

Settings can be loaded from YAML or JSON files so payer-specific limits
live alongside deployment configuration instead of in code.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from . import config

logger = logging.getLogger(__name__)


class SettingsValidationError(Exception):
    """Raised when a settings file fails validation."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class ScrubSettings(BaseModel):
    """Tunable thresholds used by the validation rules."""

    # Default payer timely filing window when the claim's insurance has none
    timely_filing_days: int = Field(default=90, ge=1)
    group_number_required_payers: list[str] = Field(
        default_factory=lambda: ["BCBS", "AETNA", "CIGNA", "UHC"]
    )
    max_diagnosis_codes: int = Field(default=12, ge=1)
    high_dollar_threshold: float = Field(default=10000.0, gt=0)
    # Rounding tolerance when comparing total charges to line charges
    charge_tolerance: float = Field(default=0.01, ge=0)

    @field_validator("group_number_required_payers")
    @classmethod
    def normalize_payers(cls, v: list[str]) -> list[str]:
        return [payer.strip().upper() for payer in v if payer and payer.strip()]


DEFAULT_SETTINGS = ScrubSettings()


def load_settings(file_path: str | Path | None = None) -> ScrubSettings:
    """Load scrub settings from a YAML or JSON file.

    Args:
        file_path: Path to the settings file. Defaults to the
                   CLAIMSCRUB_SETTINGS_PATH environment variable; when
                   neither is set the built-in defaults are returned.

    Returns:
        Validated ScrubSettings

    Raises:
        SettingsValidationError: If the file content is invalid
        FileNotFoundError: If the file doesn't exist
    """
    file_path = file_path or config.SETTINGS_PATH
    if not file_path:
        return DEFAULT_SETTINGS

    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    suffix = path.suffix.lower()
    with open(path) as f:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported settings format: {suffix}")

    return parse_settings(data, str(path))


def parse_settings(data: Any, source: str = "<memory>") -> ScrubSettings:
    """Validate raw settings data, accepting an optional ``scrub`` section."""
    if data is None:
        return DEFAULT_SETTINGS
    if not isinstance(data, dict):
        raise SettingsValidationError(
            f"Invalid settings format in {source}",
            errors=[{"file": source, "error": "Expected a mapping"}],
        )

    section = data.get("scrub", data)
    try:
        settings = ScrubSettings.model_validate(section)
    except ValidationError as e:
        raise SettingsValidationError(
            f"Validation failed for {len(e.errors())} setting(s) in {source}",
            errors=[
                {
                    "file": source,
                    "field": ".".join(str(loc) for loc in err["loc"]),
                    "error": err["msg"],
                }
                for err in e.errors()
            ],
        ) from e

    logger.info(f"Loaded scrub settings from {source}")
    return settings
