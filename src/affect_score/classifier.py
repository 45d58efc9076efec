"""One-vs-rest linear discriminant classifier with softmax calibration.

Given a feature vector ``x`` and parameters ``(μ, σ, W, b)``:

1. standardise: ``z[i] = (x[i] - μ[i]) / σ[i]``
2. score each class: ``s[c] = W[c] · z + b[c]``
3. calibrate: ``p = softmax(s)``, computed as ``exp(s - max(s)) / Σ``
   so large raw scores never overflow.

The classifier holds no state; identical inputs give bit-identical
probabilities.
"""

from __future__ import annotations

import math
from typing import Sequence

from affect_score.errors import DimensionMismatchError
from affect_score.models import EmotionDistribution, ModelParameters


def standardise(features: Sequence[float], model: ModelParameters) -> list[float]:
    """Apply the model's scaler to a feature vector."""
    if len(features) != model.n_features:
        raise DimensionMismatchError(expected=model.n_features, actual=len(features))
    return [
        (x - mean) / scale
        for x, mean, scale in zip(features, model.scaler_mean, model.scaler_scale)
    ]


def softmax(scores: Sequence[float]) -> list[float]:
    """Numerically stable softmax."""
    if not scores:
        return []
    top = max(scores)
    exps = [math.exp(s - top) for s in scores]
    total = math.fsum(exps)
    return [e / total for e in exps]


class LinearDiscriminantClassifier:
    """Map feature vectors to a calibrated distribution over model classes."""

    def raw_scores(
        self, features: Sequence[float], model: ModelParameters
    ) -> dict[str, float]:
        """Per-class linear scores before calibration, in class order."""
        z = standardise(features, model)
        return {
            label: math.fsum(w * v for w, v in zip(row, z)) + bias
            for label, row, bias in zip(model.classes, model.weights, model.bias)
        }

    def classify(
        self, features: Sequence[float], model: ModelParameters
    ) -> EmotionDistribution:
        """Return the probability distribution for ``features``.

        Raises
        ------
        DimensionMismatchError
            If ``features`` does not match the model's feature count.
        """
        scores = self.raw_scores(features, model)
        probs = softmax(list(scores.values()))
        return EmotionDistribution(probabilities=dict(zip(scores.keys(), probs)))
