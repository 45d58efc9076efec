"""Request / response models for the API routes."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SampleRequest(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    hr: float
    hrv: float
    motion: float = 0.0
    timestamp: datetime | None = None


class SessionStartRequest(BaseModel):
    app_id: str = Field(min_length=1)
    metadata: dict[str, Any] = {}


class ModelInfo(BaseModel):
    classes: list[str]
    n_features: int
    feature_order: list[str]
    provenance: dict[str, str]
