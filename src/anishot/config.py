"""Application configuration."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_tag: str = "anishot-4cut"
    default_layout: str = "grid-1080x1920"
    segmentation_model_path: str = "/opt/models/selfie_segmenter.tflite"
    segmentation_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    background_removal_cuts: str | None = None
    asset_root: str | None = None
    asset_base_url: str | None = None
    asset_timeout_seconds: float = 10.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_cut_indices(raw: str | None) -> frozenset[int] | None:
    """Parse a comma-separated list of cut indices (0-3) from env."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned == "*":
        return frozenset(range(4))
    indices: set[int] = set()
    for chunk in cleaned.split(","):
        value = chunk.strip()
        if value.isdigit() and int(value) < 4:
            indices.add(int(value))
    return frozenset(indices)
