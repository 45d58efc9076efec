"""Score engine — combine HRV and emotion coherence into a [0, 100] score.

``score = w_hrv · hrv_score + w_coh · coherence``, with the two weights
renormalised to sum to one.  HRV is mapped linearly from the plausible
SDNN range [20 ms, 100 ms]; coherence is a signed, configurable weighting
of the emotion probabilities.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Mapping

import structlog
from pydantic import BaseModel, Field, ValidationError, model_validator

from affect_score.config import DEFAULT_COHERENCE_WEIGHTS, Settings
from affect_score.errors import InvalidConfigurationError
from affect_score.models import EmotionDistribution, ScoreResult

logger = structlog.get_logger(__name__)

# ── Constants ─────────────────────────────────────────────────

HRV_FLOOR_MS = 20.0
HRV_CEILING_MS = 100.0

# Heart-rate range treated as physiologically plausible.
HR_PLAUSIBLE_MIN = 40.0
HR_PLAUSIBLE_MAX = 200.0
QUALITY_PLAUSIBLE = 1.0
QUALITY_DEGRADED = 0.5


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


# ── Configuration ─────────────────────────────────────────────


class ScoreConfig(BaseModel):
    """Weights used by :class:`ScoreEngine`.

    ``weight_map`` is keyed by the model's class labels; positive values
    raise coherence and negative values lower it.  Labels missing from
    the map do not contribute.
    """

    weight_hrv: float = Field(0.5, ge=0.0)
    weight_coherence: float = Field(0.3, ge=0.0)
    weight_map: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_COHERENCE_WEIGHTS)
    )

    @model_validator(mode="after")
    def _check_weights(self) -> ScoreConfig:
        if self.weight_hrv + self.weight_coherence <= 0:
            raise ValueError("weight_hrv + weight_coherence must be positive")
        for label, w in self.weight_map.items():
            if not math.isfinite(w):
                raise ValueError(f"weight for {label!r} must be finite")
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> ScoreConfig:
        """Build from settings; raises :class:`InvalidConfigurationError`."""
        try:
            return cls(
                weight_hrv=settings.weight_hrv,
                weight_coherence=settings.weight_coherence,
                weight_map=dict(settings.coherence_weights),
            )
        except ValidationError as exc:
            raise InvalidConfigurationError(f"Invalid score configuration: {exc}") from exc

    def normalised_weights(self) -> tuple[float, float]:
        total = self.weight_hrv + self.weight_coherence
        return self.weight_hrv / total, self.weight_coherence / total


# ── Components ────────────────────────────────────────────────


def normalize_hrv(hrv: float) -> float:
    """Map HRV (ms) onto [0, 100]; values outside [20, 100] ms are clamped."""
    scaled = (hrv - HRV_FLOOR_MS) / (HRV_CEILING_MS - HRV_FLOOR_MS) * 100.0
    return _clamp(scaled, 0.0, 100.0)


def coherence(
    distribution: EmotionDistribution | Mapping[str, float],
    weight_map: Mapping[str, float],
) -> float:
    """Signed, weighted sum of label probabilities scaled to [0, 100]."""
    dist = EmotionDistribution.coerce(distribution)
    positive = sum(w * dist.get(label) for label, w in weight_map.items() if w > 0)
    negative = sum(-w * dist.get(label) for label, w in weight_map.items() if w < 0)
    return _clamp((positive - negative) * 100.0, 0.0, 100.0)


def data_quality(hr: float) -> float:
    """Plausibility annotation for a heart-rate value."""
    if HR_PLAUSIBLE_MIN <= hr <= HR_PLAUSIBLE_MAX:
        return QUALITY_PLAUSIBLE
    return QUALITY_DEGRADED


class ScoreEngine:
    """Compute :class:`ScoreResult` objects from vitals and an emotion distribution."""

    def __init__(self, config: ScoreConfig | None = None) -> None:
        self._config = config or ScoreConfig()

    @property
    def config(self) -> ScoreConfig:
        return self._config

    normalize_hrv = staticmethod(normalize_hrv)

    def coherence(
        self,
        distribution: EmotionDistribution | Mapping[str, float],
        weight_map: Mapping[str, float] | None = None,
    ) -> float:
        return coherence(
            distribution, self._config.weight_map if weight_map is None else weight_map
        )

    def compute(
        self,
        hr: float,
        hrv: float,
        distribution: EmotionDistribution | Mapping[str, float],
        config: ScoreConfig | None = None,
        *,
        timestamp: datetime | None = None,
    ) -> ScoreResult:
        """Score one observation.

        ``config`` overrides the engine's configuration for this call only.
        Out-of-range heart rates are not rejected; they lower
        ``data_quality`` to 0.5.
        """
        cfg = config or self._config
        dist = EmotionDistribution.coerce(distribution)

        hrv_score = normalize_hrv(hrv)
        coh_score = coherence(dist, cfg.weight_map)
        w_hrv, w_coh = cfg.normalised_weights()
        score = _clamp(w_hrv * hrv_score + w_coh * coh_score, 0.0, 100.0)
        quality = data_quality(hr)

        if quality < QUALITY_PLAUSIBLE:
            logger.debug("score_engine.implausible_hr", hr=hr, data_quality=quality)

        extra = {"timestamp": timestamp} if timestamp is not None else {}
        return ScoreResult(
            score=score,
            dominant_emotion=dist.dominant,
            distribution=dict(dist.probabilities),
            hr=hr,
            hrv=hrv,
            confidence=min(dist.confidence, 1.0),
            data_quality=quality,
            **extra,
        )
