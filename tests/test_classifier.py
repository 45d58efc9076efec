"""Tests for the linear discriminant classifier."""

from __future__ import annotations

import math

import pytest

from affect_score.classifier import LinearDiscriminantClassifier, softmax, standardise
from affect_score.errors import DimensionMismatchError
from affect_score.models import EmotionDistribution, ModelParameters


@pytest.fixture
def classifier() -> LinearDiscriminantClassifier:
    return LinearDiscriminantClassifier()


CALM_FEATURES = (60.0, 0.0, 60.0, 60.0, 80.0, 0.0)
STRESSED_FEATURES = (110.0, 0.0, 110.0, 110.0, 20.0, 0.0)


def test_standardise(test_model: ModelParameters):
    z = standardise(CALM_FEATURES, test_model)
    assert z == pytest.approx([-1.0, -1.0, 0.0, -2.0, 3.0, -2.0])


def test_raw_scores_in_class_order(classifier, test_model: ModelParameters):
    scores = classifier.raw_scores(CALM_FEATURES, test_model)
    assert list(scores) == ["Calm", "Stressed", "Amused"]
    assert scores == pytest.approx({"Calm": 7.0, "Stressed": -8.0, "Amused": 0.0})


def test_classify_calm(classifier, test_model: ModelParameters):
    dist = classifier.classify(CALM_FEATURES, test_model)
    assert dist.dominant == "Calm"
    assert dist.confidence == pytest.approx(math.exp(7) / (math.exp(7) + 1 + math.exp(-8)))


def test_classify_stressed(classifier, test_model: ModelParameters):
    dist = classifier.classify(STRESSED_FEATURES, test_model)
    assert dist.dominant == "Stressed"
    assert dist.confidence > 0.99


@pytest.mark.parametrize(
    "features",
    [
        CALM_FEATURES,
        STRESSED_FEATURES,
        (0.0,) * 6,
        (300.0, 50.0, 0.0, 300.0, 1000.0, 500.0),
    ],
)
def test_probabilities_sum_to_one(classifier, test_model: ModelParameters, features):
    dist = classifier.classify(features, test_model)
    assert math.fsum(dist.probabilities.values()) == pytest.approx(1.0, abs=1e-6)
    assert all(0.0 <= p <= 1.0 for p in dist.probabilities.values())


def test_deterministic(classifier, test_model: ModelParameters):
    first = classifier.classify(CALM_FEATURES, test_model)
    for _ in range(5):
        assert classifier.classify(CALM_FEATURES, test_model).probabilities == first.probabilities


def test_tie_picks_first_class(classifier, test_model: ModelParameters):
    # every class scores 0 at this point
    dist = classifier.classify((70.0, 0.0, 70.0, 70.0, 50.0, 0.0), test_model)
    assert dist.probabilities == pytest.approx({"Calm": 1 / 3, "Stressed": 1 / 3, "Amused": 1 / 3})
    assert dist.dominant == "Calm"


def test_dimension_mismatch(classifier, test_model: ModelParameters):
    with pytest.raises(DimensionMismatchError) as excinfo:
        classifier.classify((1.0, 2.0, 3.0), test_model)
    assert excinfo.value.expected == 6
    assert excinfo.value.actual == 3
    assert excinfo.value.code == "E_DIMENSION_MISMATCH"


class TestSoftmax:
    def test_large_scores_do_not_overflow(self):
        probs = softmax([1000.0, 999.0, -1000.0])
        assert math.fsum(probs) == pytest.approx(1.0)
        assert probs[0] == pytest.approx(1 / (1 + math.exp(-1)))

    def test_empty(self):
        assert softmax([]) == []

    def test_uniform(self):
        assert softmax([2.0, 2.0]) == [0.5, 0.5]


class TestEmotionDistribution:
    def test_rejects_bad_sum(self):
        with pytest.raises(ValueError):
            EmotionDistribution(probabilities={"Calm": 0.5, "Stressed": 0.4})

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            EmotionDistribution(probabilities={"Calm": 1.2, "Stressed": -0.2})

    def test_rejects_empty(self):
        with pytest.raises(ValueError):
            EmotionDistribution(probabilities={})

    def test_coerce_and_get(self):
        dist = EmotionDistribution.coerce({"Calm": 0.7, "Amused": 0.3})
        assert EmotionDistribution.coerce(dist) is dist
        assert dist.get("Stressed") == 0.0
        assert dist.dominant == "Calm"
