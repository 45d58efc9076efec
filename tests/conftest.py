"""Shared pytest fixtures."""

from __future__ import annotations

import copy
from typing import Any

import pytest

from affect_score.config import get_settings
from affect_score.models import ModelParameters, Sample
from affect_score.pipeline import PipelineConfig, PipelineCoordinator
from affect_score.score import ScoreConfig

# A small, hand-checkable model: low HR + high HRV → Calm,
# high HR + low HRV → Stressed, anything balanced → uniform.
TEST_MODEL: dict[str, Any] = {
    "type": "linear_svm",
    "version": "test",
    "feature_order": ["mean_hr", "std_hr", "min_hr", "max_hr", "mean_hrv", "rmssd_hrv"],
    "scaler_mean": [70.0, 5.0, 60.0, 80.0, 50.0, 20.0],
    "scaler_scale": [10.0, 5.0, 10.0, 10.0, 10.0, 10.0],
    "classes": ["Calm", "Stressed", "Amused"],
    "weights": [
        [-1.0, 0.0, 0.0, 0.0, 2.0, 0.0],
        [2.0, 0.0, 0.0, 0.0, -2.0, 0.0],
        [0.0, 0.0, 0.0, 0.0, 0.0, 0.0],
    ],
    "bias": [0.0, 0.0, 0.0],
    "model_hash": "abc123",
}


def _samples(hr: float, hrv: float, n: int) -> list[Sample]:
    return [Sample(hr=hr, hrv=hrv) for _ in range(n)]


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def model_doc() -> dict[str, Any]:
    return copy.deepcopy(TEST_MODEL)


@pytest.fixture
def test_model() -> ModelParameters:
    return ModelParameters.model_validate(TEST_MODEL)


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    return PipelineConfig(
        buffer_capacity=50,
        min_window=5,
        window_size=10,
        confidence_threshold=0.6,
        interval_seconds=0.01,
        channel_queue_size=10,
    )


@pytest.fixture
def coordinator(test_model: ModelParameters, pipeline_config: PipelineConfig) -> PipelineCoordinator:
    return PipelineCoordinator(
        test_model,
        pipeline_config,
        ScoreConfig(weight_map={"Calm": 0.9, "Amused": 1.0, "Stressed": -0.2}),
    )


@pytest.fixture
def calm_samples() -> list[Sample]:
    return _samples(60.0, 80.0, 10)


@pytest.fixture
def stressed_samples() -> list[Sample]:
    return _samples(110.0, 20.0, 10)


@pytest.fixture
def neutral_samples() -> list[Sample]:
    # Every class scores 0 → uniform distribution, confidence 1/3.
    return _samples(70.0, 50.0, 10)
