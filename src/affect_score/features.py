"""Feature engineering — reduce a sample window to a fixed-length vector.

The vector layout is a constant of the extractor, independent of any
model: ``[mean_hr, std_hr, min_hr, max_hr, mean_hrv, rmssd_hrv]``.
Models are validated against :data:`FEATURE_DIM` when loaded.
"""

from __future__ import annotations

import math
import statistics
from typing import Sequence

from affect_score.models import Sample

# ── Constants ─────────────────────────────────────────────────

FEATURE_ORDER: tuple[str, ...] = (
    "mean_hr",
    "std_hr",
    "min_hr",
    "max_hr",
    "mean_hrv",
    "rmssd_hrv",
)
FEATURE_DIM = len(FEATURE_ORDER)

FeatureVector = tuple[float, ...]

ZERO_VECTOR: FeatureVector = (0.0,) * FEATURE_DIM


# ── Statistics helpers ────────────────────────────────────────


def population_std(values: Sequence[float]) -> float:
    """Standard deviation dividing by N; 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    return statistics.pstdev(values)


def rmssd(values: Sequence[float]) -> float:
    """Root-mean-square of successive differences; 0 for fewer than two values."""
    if len(values) < 2:
        return 0.0
    squared = [(b - a) ** 2 for a, b in zip(values, values[1:])]
    return math.sqrt(statistics.fmean(squared))


# ── Extraction ────────────────────────────────────────────────


def extract_features(window: Sequence[Sample]) -> FeatureVector:
    """Build the feature vector for a window of samples.

    An empty window yields the all-zero vector rather than an error.
    """
    if not window:
        return ZERO_VECTOR

    hr_values = [s.hr for s in window]
    hrv_values = [s.hrv for s in window]

    return (
        statistics.fmean(hr_values),
        population_std(hr_values),
        min(hr_values),
        max(hr_values),
        statistics.fmean(hrv_values),
        rmssd(hrv_values),
    )


class FeatureExtractor:
    """Stateless wrapper so the extractor can be injected into the pipeline."""

    dimension: int = FEATURE_DIM
    feature_order: tuple[str, ...] = FEATURE_ORDER

    def extract(self, window: Sequence[Sample]) -> FeatureVector:
        return extract_features(window)

    def as_dict(self, features: FeatureVector) -> dict[str, float]:
        """Label a feature vector for logging / debugging."""
        return dict(zip(self.feature_order, features))
