"""Affect score — HR/HRV emotion inference and wellness-impact scoring.

Public API
~~~~~~~~~~
* :class:`PipelineCoordinator` — buffer → features → classifier → score.
* :class:`ModelStore` — load and validate classifier parameters.
* :class:`ScoreEngine` — bounded 0–100 wellness score.
"""

__version__ = "0.1.0"

from affect_score.buffer import SampleBuffer
from affect_score.classifier import LinearDiscriminantClassifier
from affect_score.features import FEATURE_DIM, FEATURE_ORDER, FeatureExtractor
from affect_score.model_store import ModelStore, load_model
from affect_score.models import (
    EmotionDistribution,
    EmotionResult,
    ModelParameters,
    Sample,
    ScoreResult,
)
from affect_score.pipeline import CycleOutcome, CycleStatus, PipelineConfig, PipelineCoordinator
from affect_score.score import ScoreConfig, ScoreEngine

__all__ = [
    "__version__",
    "CycleOutcome",
    "CycleStatus",
    "EmotionDistribution",
    "EmotionResult",
    "FEATURE_DIM",
    "FEATURE_ORDER",
    "FeatureExtractor",
    "LinearDiscriminantClassifier",
    "ModelParameters",
    "ModelStore",
    "PipelineConfig",
    "PipelineCoordinator",
    "Sample",
    "SampleBuffer",
    "ScoreConfig",
    "ScoreEngine",
    "ScoreResult",
    "load_model",
]
