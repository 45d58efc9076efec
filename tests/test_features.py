"""Tests for window feature extraction."""

from __future__ import annotations

import math

import pytest

from affect_score.features import (
    FEATURE_DIM,
    FEATURE_ORDER,
    FeatureExtractor,
    extract_features,
    population_std,
    rmssd,
)
from affect_score.models import Sample


@pytest.fixture
def extractor() -> FeatureExtractor:
    return FeatureExtractor()


def test_layout():
    assert FEATURE_DIM == 6
    assert FEATURE_ORDER[0] == "mean_hr"
    assert FEATURE_ORDER[-1] == "rmssd_hrv"


def test_empty_window_is_zero_vector(extractor: FeatureExtractor):
    assert extractor.extract([]) == (0.0, 0.0, 0.0, 0.0, 0.0, 0.0)


def test_single_sample(extractor: FeatureExtractor):
    features = extractor.extract([Sample(hr=75.0, hrv=50.0)])
    assert features == (75.0, 0.0, 75.0, 75.0, 50.0, 0.0)


def test_constant_successive_differences(extractor: FeatureExtractor):
    window = [Sample(hr=70.0, hrv=v) for v in (45.0, 50.0, 55.0, 60.0, 65.0)]
    features = extractor.as_dict(extractor.extract(window))
    assert features["mean_hrv"] == pytest.approx(55.0)
    assert features["rmssd_hrv"] == pytest.approx(5.0)


def test_hr_statistics():
    window = [Sample(hr=v, hrv=40.0) for v in (60.0, 70.0, 80.0)]
    mean_hr, std_hr, min_hr, max_hr, _, _ = extract_features(window)
    assert mean_hr == pytest.approx(70.0)
    # population standard deviation (divide by N)
    assert std_hr == pytest.approx(math.sqrt(200.0 / 3.0))
    assert (min_hr, max_hr) == (60.0, 80.0)


def test_population_std_small_inputs():
    assert population_std([]) == 0.0
    assert population_std([42.0]) == 0.0
    assert population_std([2.0, 4.0]) == pytest.approx(1.0)


def test_rmssd():
    assert rmssd([50.0]) == 0.0
    assert rmssd([10.0, 13.0, 9.0]) == pytest.approx(math.sqrt((9.0 + 16.0) / 2.0))


def test_as_dict_follows_feature_order(extractor: FeatureExtractor):
    labelled = extractor.as_dict((1.0, 2.0, 3.0, 4.0, 5.0, 6.0))
    assert list(labelled) == list(FEATURE_ORDER)
    assert labelled["max_hr"] == 4.0
