"""Centralised runtime settings loaded from environment / .env file."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# Coherence contribution per label for the bundled three-class model.
DEFAULT_COHERENCE_WEIGHTS: dict[str, float] = {
    "Amused": 1.0,
    "Calm": 0.9,
    "Stressed": -0.2,
}


class Settings(BaseSettings):
    """All runtime configuration for the affect-score pipeline.

    Every variable lives in the flat ``AFFECT_SCORE_`` namespace, e.g.
    ``AFFECT_SCORE_CONFIDENCE_THRESHOLD=0.5``.  Mapping fields such as
    ``coherence_weights`` are given as JSON.
    """

    model_config = SettingsConfigDict(
        env_prefix="AFFECT_SCORE_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # ── Model ─────────────────────────────────────────────────
    classifier_path: str = ""  # empty → bundled default model

    # ── Buffering / windowing ─────────────────────────────────
    buffer_capacity: int = Field(300, ge=1)
    min_window: int = Field(10, ge=1)
    window_size: int = Field(60, ge=1)

    # ── Processing loop ───────────────────────────────────────
    tick_interval_seconds: float = Field(1.0, gt=0)
    confidence_threshold: float = Field(0.6, ge=0.0, le=1.0)

    # ── Score composition ─────────────────────────────────────
    weight_hrv: float = Field(0.5, ge=0.0)
    weight_coherence: float = Field(0.3, ge=0.0)
    coherence_weights: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_COHERENCE_WEIGHTS)
    )

    # ── Result channels ───────────────────────────────────────
    channel_queue_size: int = Field(100, ge=1)

    # ── API server ────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "*"

    # ── Sinks ─────────────────────────────────────────────────
    webhook_url: str = ""
    webhook_timeout: float = 10.0

    @field_validator("window_size")
    @classmethod
    def _window_covers_min(cls, v: int, info) -> int:
        min_window = info.data.get("min_window")
        if min_window is not None and v < min_window:
            raise ValueError("window_size must be >= min_window")
        return v


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
