"""Session aggregation — collect emitted results between start and stop.

A :class:`SessionRecorder` subscribes to the coordinator's emotion and
score channels while a session is active and hands back a
:class:`SessionResults` snapshot when the session stops.  Like any other
subscriber it only sees results emitted after it joined.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import BaseModel, Field

from affect_score.errors import SessionError
from affect_score.models import EmotionResult, ScoreResult
from affect_score.pipeline import PipelineCoordinator
from affect_score.streaming import Subscription

logger = structlog.get_logger(__name__)


class SessionResults(BaseModel):
    """Everything recorded during one session."""

    session_id: str
    app_id: str
    start_time: datetime
    end_time: datetime
    scores: list[ScoreResult] = Field(default_factory=list)
    emotions: list[EmotionResult] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    def most_frequent_emotion(self) -> str:
        """Most common dominant emotion across scores (first seen wins ties)."""
        if not self.scores:
            return "Unknown"
        counts = Counter(s.dominant_emotion for s in self.scores)
        return counts.most_common(1)[0][0]

    def summary(self) -> dict[str, Any]:
        if not self.scores:
            return {
                "session_id": self.session_id,
                "duration_seconds": 0,
                "average_score": 0.0,
                "dominant_emotion": "Unknown",
                "score_count": 0,
                "emotion_count": len(self.emotions),
            }
        return {
            "session_id": self.session_id,
            "duration_seconds": round(self.duration_seconds, 3),
            "average_score": sum(s.score for s in self.scores) / len(self.scores),
            "dominant_emotion": self.most_frequent_emotion(),
            "score_count": len(self.scores),
            "emotion_count": len(self.emotions),
        }


class SessionRecorder:
    """Record pipeline output for one session at a time.

    Integration::

        recorder = SessionRecorder(coordinator)
        session_id = await recorder.start("focus-app")
        ...
        results = await recorder.stop()
    """

    def __init__(self, coordinator: PipelineCoordinator) -> None:
        self._coordinator = coordinator
        self._session_id: str | None = None
        self._app_id = ""
        self._metadata: dict[str, Any] = {}
        self._start_time: datetime | None = None
        self._scores: list[ScoreResult] = []
        self._emotions: list[EmotionResult] = []
        self._tasks: list[asyncio.Task] = []
        self._subs: list[Subscription] = []

    @property
    def active_session_id(self) -> str | None:
        return self._session_id

    @property
    def is_active(self) -> bool:
        return self._session_id is not None

    async def start(self, app_id: str, metadata: dict[str, Any] | None = None) -> str:
        """Begin recording; raises :class:`SessionError` if already recording."""
        if self._session_id is not None:
            raise SessionError("Session already in progress.")

        self._start_time = datetime.now(UTC)
        self._session_id = f"{int(self._start_time.timestamp() * 1000)}_{app_id}"
        self._app_id = app_id
        self._metadata = dict(metadata or {})
        self._scores = []
        self._emotions = []

        emotion_sub = self._coordinator.emotions.subscribe()
        score_sub = self._coordinator.scores.subscribe()
        self._subs = [emotion_sub, score_sub]
        self._tasks = [
            asyncio.create_task(self._collect(emotion_sub, self._emotions)),
            asyncio.create_task(self._collect(score_sub, self._scores)),
        ]
        logger.info("session.started", session_id=self._session_id, app_id=app_id)
        return self._session_id

    async def stop(self) -> SessionResults:
        """Finish recording and return the collected results."""
        if self._session_id is None or self._start_time is None:
            raise SessionError("No active session.")

        for sub in self._subs:
            sub.close()
        await asyncio.gather(*self._tasks)

        results = SessionResults(
            session_id=self._session_id,
            app_id=self._app_id,
            start_time=self._start_time,
            end_time=datetime.now(UTC),
            scores=list(self._scores),
            emotions=list(self._emotions),
            metadata=self._metadata,
        )
        logger.info(
            "session.stopped",
            session_id=self._session_id,
            scores=len(results.scores),
            emotions=len(results.emotions),
        )

        self._session_id = None
        self._start_time = None
        self._subs = []
        self._tasks = []
        return results

    def current_score(self) -> ScoreResult | None:
        return self._scores[-1] if self._scores else None

    def current_emotion(self) -> EmotionResult | None:
        return self._emotions[-1] if self._emotions else None

    @staticmethod
    async def _collect(sub: Subscription, into: list) -> None:
        async for item in sub:
            into.append(item)
