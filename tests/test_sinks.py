"""Tests for result sinks and the dispatcher."""

from __future__ import annotations

import json

import httpx
import pytest

from affect_score.config import Settings
from affect_score.models import EmotionResult, ScoreResult
from affect_score.sinks import ResultDispatcher, ResultSink, create_dispatcher, forward
from affect_score.sinks.handlers import LogSink, WebhookSink
from affect_score.streaming import BroadcastChannel


class RecordingSink(ResultSink):
    name = "recording"

    def __init__(self) -> None:
        self.received: list = []

    async def send(self, result) -> bool:
        self.received.append(result)
        return True


class BrokenSink(ResultSink):
    name = "broken"

    async def send(self, result) -> bool:
        raise RuntimeError("boom")


@pytest.fixture
def score() -> ScoreResult:
    return ScoreResult(
        score=72.5,
        dominant_emotion="Calm",
        distribution={"Calm": 0.8, "Stressed": 0.2},
        hr=64.0,
        hrv=58.0,
        confidence=0.8,
    )


@pytest.fixture
def emotion() -> EmotionResult:
    return EmotionResult(emotion="Calm", confidence=0.8, probabilities={"Calm": 0.8, "Stressed": 0.2})


@pytest.mark.asyncio
async def test_failing_sink_is_isolated(score: ScoreResult):
    recording = RecordingSink()
    dispatcher = ResultDispatcher(sinks=[BrokenSink(), recording, LogSink()])

    outcome = await dispatcher.dispatch(score)

    assert outcome.kind == "score"
    assert outcome.failed == ["broken"]
    assert outcome.sent == ["recording", "log"]
    assert not outcome.all_ok
    assert recording.received == [score]


def test_add_and_remove_sinks():
    dispatcher = ResultDispatcher()
    assert dispatcher.sink_names == ["log"]
    dispatcher.add_sink(RecordingSink())
    assert dispatcher.remove_sink("log") is True
    assert dispatcher.remove_sink("log") is False
    assert dispatcher.sink_names == ["recording"]


def test_create_dispatcher():
    assert create_dispatcher(Settings()).sink_names == ["log"]
    with_hook = create_dispatcher(Settings(webhook_url="http://hooks.test/affect"))
    assert with_hook.sink_names == ["log", "webhook"]


@pytest.mark.asyncio
async def test_forward_drains_subscription(score: ScoreResult, emotion: EmotionResult):
    channel: BroadcastChannel = BroadcastChannel("results")
    recording = RecordingSink()
    sub = channel.subscribe()
    channel.publish(emotion)
    channel.publish(score)
    channel.close()

    count = await forward(sub, ResultDispatcher(sinks=[recording]))

    assert count == 2
    assert recording.received == [emotion, score]


class TestWebhookSink:
    @pytest.mark.asyncio
    async def test_posts_json(self, score: ScoreResult):
        captured: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(json.loads(request.content))
            return httpx.Response(200)

        sink = WebhookSink("http://hooks.test/affect", transport=httpx.MockTransport(handler))
        assert await sink.send(score) is True
        assert captured[0]["type"] == "score"
        assert captured[0]["data"]["dominant_emotion"] == "Calm"
        assert captured[0]["data"]["score_range"] == "neutral"

    @pytest.mark.asyncio
    async def test_http_error_returns_false(self, emotion: EmotionResult):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        sink = WebhookSink("http://hooks.test/affect", transport=transport)
        assert await sink.send(emotion) is False
