from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from gcal_tools import CONFIG_PATH

logger = logging.getLogger(__name__)


# =============================================================================
# ConflictConfig (args/conflicts.yaml)
# =============================================================================

class DetectionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    duplicate_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    block_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    block_on_high_similarity: bool = Field(default=True)

    @model_validator(mode="after")
    def _block_above_surface(self) -> "DetectionConfig":
        if self.block_threshold < self.duplicate_threshold:
            raise ValueError("block_threshold must not be lower than duplicate_threshold")
        return self


class ScanConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    lookaround_minutes: int = Field(default=60, ge=0)
    max_results: int = Field(default=250, ge=1, le=2500)
    max_concurrent_fetches: int = Field(default=1, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)


class ConflictConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)


def load_conflict_config(path: Path | None = None) -> ConflictConfig:
    """Load args/conflicts.yaml, falling back to defaults when missing or invalid."""
    config_path = path or CONFIG_PATH
    if not config_path.exists():
        return ConflictConfig()

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.warning(f"Unparseable conflict config at {config_path}, using defaults: {e}")
        return ConflictConfig()

    try:
        return ConflictConfig.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Invalid conflict config at {config_path}, using defaults: {e}")
        return ConflictConfig()


__all__ = [
    "ConflictConfig",
    "DetectionConfig",
    "ScanConfig",
    "load_conflict_config",
]
