"""Pydantic models shared across the inference pipeline.

These models represent:
- Physiological samples as ingested from the collector
- Classifier parameters loaded by the model store
- Emotion distributions and the results emitted each processing cycle
- Interpretation bands for scores and data quality
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from enum import Enum
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

# Tolerance on Σ probabilities for a valid distribution.
PROBABILITY_TOLERANCE = 1e-6


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ── Enums ─────────────────────────────────────────────────────


class PipelineState(str, Enum):
    """Lifecycle state of the processing coordinator."""

    ACCUMULATING = "accumulating"  # buffer below min window
    PROCESSING = "processing"  # a cycle is in flight
    IDLE = "idle"  # enough data, waiting for the next tick


class ScoreRange(str, Enum):
    """Interpretation band for a wellness score."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    MILD_STRESS = "mild_stress"
    NEGATIVE = "negative"

    @classmethod
    def for_score(cls, score: float) -> ScoreRange:
        if score >= 80:
            return cls.POSITIVE
        if score >= 60:
            return cls.NEUTRAL
        if score >= 40:
            return cls.MILD_STRESS
        return cls.NEGATIVE

    @property
    def description(self) -> str:
        return _SCORE_RANGE_DESCRIPTIONS[self]


_SCORE_RANGE_DESCRIPTIONS = {
    ScoreRange.POSITIVE: "Relaxed or engaged; the activity supports wellness.",
    ScoreRange.NEUTRAL: "Emotionally stable.",
    ScoreRange.MILD_STRESS: "Cognitive or emotional fatigue.",
    ScoreRange.NEGATIVE: "Stress or emotional load detected.",
}


class DataQualityLevel(str, Enum):
    """Coarse data-quality tier derived from a [0, 1] quality value."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def for_score(cls, quality: float) -> DataQualityLevel:
        if quality >= 0.7:
            return cls.HIGH
        if quality >= 0.4:
            return cls.MEDIUM
        return cls.LOW

    @property
    def is_acceptable(self) -> bool:
        return self is not DataQualityLevel.LOW


# ── Samples ───────────────────────────────────────────────────


class Sample(BaseModel):
    """A single HR/HRV observation from the biosignal collector."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    hr: float = Field(description="Heart rate in beats per minute.")
    hrv: float = Field(description="Heart-rate variability (SDNN-like) in ms.")
    motion: float = Field(0.0, description="Motion magnitude reported by the device.")
    timestamp: datetime = Field(default_factory=_utcnow)


# ── Model parameters ─────────────────────────────────────────


class ModelParameters(BaseModel):
    """Parameters of a one-vs-rest linear classifier with a standard scaler.

    Internal consistency (row/column counts, unique labels, non-zero scale)
    is enforced here; agreement with the feature extractor's dimension is
    checked by :class:`~affect_score.model_store.ModelStore`.
    """

    model_config = ConfigDict(
        frozen=True, extra="ignore", allow_inf_nan=False, protected_namespaces=()
    )

    classes: tuple[str, ...]
    weights: tuple[tuple[float, ...], ...]
    bias: tuple[float, ...]
    scaler_mean: tuple[float, ...]
    scaler_scale: tuple[float, ...]
    feature_order: tuple[str, ...] = ()

    # ── Provenance (opaque)
    type: str = "linear_svm"
    version: str = ""
    model_hash: str = ""
    export_time_utc: str = ""
    training_commit: str = ""
    data_manifest_id: str = ""

    @model_validator(mode="after")
    def _check_shapes(self) -> ModelParameters:
        n_classes = len(self.classes)
        if n_classes == 0:
            raise ValueError("model must define at least one class")
        if len(set(self.classes)) != n_classes:
            raise ValueError(f"class labels must be unique, got {list(self.classes)}")
        if len(self.bias) != n_classes:
            raise ValueError(f"bias has {len(self.bias)} entries for {n_classes} classes")
        if len(self.weights) != n_classes:
            raise ValueError(f"weights has {len(self.weights)} rows for {n_classes} classes")

        n_features = len(self.scaler_mean)
        if len(self.scaler_scale) != n_features:
            raise ValueError(
                f"scaler_scale has {len(self.scaler_scale)} entries, "
                f"scaler_mean has {n_features}"
            )
        for i, row in enumerate(self.weights):
            if len(row) != n_features:
                raise ValueError(
                    f"weights row {i} has {len(row)} columns, expected {n_features}"
                )
        if self.feature_order and len(self.feature_order) != n_features:
            raise ValueError(
                f"feature_order has {len(self.feature_order)} names, expected {n_features}"
            )
        zero_scale = [i for i, s in enumerate(self.scaler_scale) if s == 0]
        if zero_scale:
            raise ValueError(f"scaler_scale is zero at indices {zero_scale}")
        return self

    @property
    def n_classes(self) -> int:
        return len(self.classes)

    @property
    def n_features(self) -> int:
        return len(self.scaler_mean)

    def provenance(self) -> dict[str, str]:
        """Opaque metadata describing where the parameters came from."""
        return {
            "type": self.type,
            "version": self.version,
            "model_hash": self.model_hash,
            "export_time_utc": self.export_time_utc,
            "training_commit": self.training_commit,
            "data_manifest_id": self.data_manifest_id,
        }


# ── Emotion distribution ─────────────────────────────────────


class EmotionDistribution(BaseModel):
    """Probability distribution over the model's class labels.

    Key order follows the model's class order, which is what breaks ties
    when picking the dominant label.
    """

    model_config = ConfigDict(frozen=True)

    probabilities: dict[str, float]

    @model_validator(mode="after")
    def _check_probabilities(self) -> EmotionDistribution:
        if not self.probabilities:
            raise ValueError("distribution must contain at least one label")
        for label, p in self.probabilities.items():
            if not math.isfinite(p) or p < 0.0 or p > 1.0 + PROBABILITY_TOLERANCE:
                raise ValueError(f"probability for {label!r} out of range: {p}")
        total = math.fsum(self.probabilities.values())
        if abs(total - 1.0) > PROBABILITY_TOLERANCE:
            raise ValueError(f"probabilities sum to {total}, expected 1")
        return self

    @classmethod
    def coerce(cls, value: EmotionDistribution | Mapping[str, float]) -> EmotionDistribution:
        """Accept either a distribution or a plain label → probability mapping."""
        if isinstance(value, EmotionDistribution):
            return value
        return cls(probabilities=dict(value))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def dominant(self) -> str:
        best_label = ""
        best_p = -1.0
        for label, p in self.probabilities.items():
            if p > best_p:
                best_label, best_p = label, p
        return best_label

    @computed_field  # type: ignore[prop-decorator]
    @property
    def confidence(self) -> float:
        return self.probabilities[self.dominant]

    def get(self, label: str, default: float = 0.0) -> float:
        return self.probabilities.get(label, default)


# ── Emitted results ──────────────────────────────────────────


class EmotionResult(BaseModel):
    """Emotion classification emitted once per processing cycle."""

    emotion: str
    confidence: float = Field(ge=0.0, le=1.0)
    probabilities: dict[str, float]
    timestamp: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_distribution(
        cls, distribution: EmotionDistribution, timestamp: datetime | None = None
    ) -> EmotionResult:
        return cls(
            emotion=distribution.dominant,
            confidence=distribution.confidence,
            probabilities=dict(distribution.probabilities),
            timestamp=timestamp or _utcnow(),
        )


class ScoreResult(BaseModel):
    """Bounded wellness-impact score for one processing cycle."""

    score: float = Field(ge=0.0, le=100.0)
    dominant_emotion: str
    distribution: dict[str, float]
    hr: float
    hrv: float
    timestamp: datetime = Field(default_factory=_utcnow)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    data_quality: float = Field(1.0, ge=0.0, le=1.0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def score_range(self) -> ScoreRange:
        return ScoreRange.for_score(self.score)

    @property
    def quality_level(self) -> DataQualityLevel:
        return DataQualityLevel.for_score(self.data_quality)
