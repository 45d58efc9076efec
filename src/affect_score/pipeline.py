"""Pipeline coordinator — buffer → features → classifier → score → channels.

The coordinator owns the sample buffer and runs one processing cycle per
tick:

1. Skip while the buffer holds fewer than ``min_window`` samples.
2. Snapshot the newest ``window_size`` samples.
3. Extract features and classify them.
4. Suppress emission when confidence is below ``confidence_threshold``.
5. Otherwise publish an :class:`EmotionResult`, score the latest sample,
   and publish the :class:`ScoreResult`.

Cycles are serialized.  A failure inside a cycle is logged and aborts only
that cycle; the loop carries on with the next tick.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel, Field, ValidationError, model_validator

from affect_score.buffer import SampleBuffer
from affect_score.classifier import LinearDiscriminantClassifier
from affect_score.config import Settings, get_settings
from affect_score.errors import (
    DimensionMismatchError,
    InsufficientDataError,
    InvalidConfigurationError,
)
from affect_score.features import FeatureExtractor
from affect_score.model_store import ModelStore
from affect_score.models import (
    EmotionDistribution,
    EmotionResult,
    ModelParameters,
    PipelineState,
    Sample,
    ScoreResult,
)
from affect_score.scheduler import IntervalTicker
from affect_score.score import ScoreConfig, ScoreEngine
from affect_score.streaming import BroadcastChannel

logger = structlog.get_logger(__name__)


class PipelineConfig(BaseModel):
    """Windowing, cadence and emission policy for :class:`PipelineCoordinator`."""

    buffer_capacity: int = Field(300, ge=1)
    min_window: int = Field(10, ge=1)
    window_size: int = Field(60, ge=1)
    confidence_threshold: float = Field(0.6, ge=0.0, le=1.0)
    interval_seconds: float = Field(1.0, gt=0)
    channel_queue_size: int = Field(100, ge=1)

    @model_validator(mode="after")
    def _check_windows(self) -> PipelineConfig:
        if self.window_size < self.min_window:
            raise ValueError("window_size must be >= min_window")
        if self.buffer_capacity < self.window_size:
            raise ValueError("buffer_capacity must be >= window_size")
        return self

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        try:
            return cls(
                buffer_capacity=settings.buffer_capacity,
                min_window=settings.min_window,
                window_size=settings.window_size,
                confidence_threshold=settings.confidence_threshold,
                interval_seconds=settings.tick_interval_seconds,
                channel_queue_size=settings.channel_queue_size,
            )
        except ValidationError as exc:
            raise InvalidConfigurationError(f"Invalid pipeline configuration: {exc}") from exc


class CycleStatus(str, Enum):
    SKIPPED = "skipped"  # not enough data
    SUPPRESSED = "suppressed"  # confidence below threshold
    EMITTED = "emitted"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CycleOutcome:
    """What a single processing cycle did."""

    status: CycleStatus
    distribution: EmotionDistribution | None = None
    emotion: EmotionResult | None = None
    score: ScoreResult | None = None
    error: str | None = None

    @property
    def emitted(self) -> bool:
        return self.status is CycleStatus.EMITTED


class PipelineCoordinator:
    """Orchestrates buffering, inference and scoring on a fixed cadence.

    Parameters
    ----------
    model : ModelParameters
        Validated classifier parameters (see :class:`ModelStore`).
    config : PipelineConfig
        Windowing and emission policy.
    score_config : ScoreConfig
        Weights for the score engine.
    """

    def __init__(
        self,
        model: ModelParameters,
        config: PipelineConfig | None = None,
        score_config: ScoreConfig | None = None,
        *,
        extractor: FeatureExtractor | None = None,
        classifier: LinearDiscriminantClassifier | None = None,
    ) -> None:
        self._model = model
        self._config = config or PipelineConfig()
        self._buffer = SampleBuffer(self._config.buffer_capacity)
        self._extractor = extractor or FeatureExtractor()
        self._classifier = classifier or LinearDiscriminantClassifier()
        self._score_engine = ScoreEngine(score_config)

        self.emotions: BroadcastChannel[EmotionResult] = BroadcastChannel(
            "emotions", self._config.channel_queue_size
        )
        self.scores: BroadcastChannel[ScoreResult] = BroadcastChannel(
            "scores", self._config.channel_queue_size
        )

        self._cycle_lock = asyncio.Lock()
        self._processing = False
        self._ticker: IntervalTicker | None = None
        self._task: asyncio.Task | None = None
        self._latest_emotion: EmotionResult | None = None
        self._latest_score: ScoreResult | None = None

        self._stats = {
            "cycles": 0,
            "skipped": 0,
            "suppressed": 0,
            "emitted": 0,
            "failed": 0,
            "last_cycle_at": None,
        }

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> PipelineCoordinator:
        """Build a coordinator from application settings.

        Raises :class:`ModelLoadError` if the configured model is invalid.
        """
        settings = settings or get_settings()
        store = ModelStore()
        if settings.classifier_path:
            model = store.load(settings.classifier_path)
        else:
            model = store.load_default()
        return cls(
            model,
            PipelineConfig.from_settings(settings),
            ScoreConfig.from_settings(settings),
        )

    # ── Ingestion ─────────────────────────────────────────────

    def push(
        self,
        hr: float,
        hrv: float,
        motion: float = 0.0,
        timestamp: datetime | None = None,
    ) -> None:
        """Buffer one observation.  Never blocks and never triggers a cycle.

        Non-finite values are rejected with a :class:`pydantic.ValidationError`
        so a single bad reading cannot poison every window it falls into.
        """
        self._buffer.push(
            Sample(hr=hr, hrv=hrv, motion=motion, timestamp=timestamp or datetime.now(UTC))
        )

    def push_sample(self, sample: Sample) -> None:
        self._buffer.push(sample)

    # ── Processing cycle ──────────────────────────────────────

    async def tick(self) -> CycleOutcome:
        """Run one processing cycle; never raises for per-cycle failures."""
        async with self._cycle_lock:
            self._processing = True
            try:
                outcome = self._run_cycle()
            finally:
                self._processing = False

        self._stats["cycles"] += 1
        self._stats[outcome.status.value] += 1
        self._stats["last_cycle_at"] = datetime.now(UTC).isoformat()
        return outcome

    def _take_window(self) -> tuple[Sample, ...]:
        available = self._buffer.size()
        if available < self._config.min_window:
            raise InsufficientDataError(available, self._config.min_window)
        return self._buffer.window(self._config.window_size)

    def _run_cycle(self) -> CycleOutcome:
        try:
            window = self._take_window()
        except InsufficientDataError as exc:
            logger.debug(
                "pipeline.accumulating", available=exc.available, required=exc.required
            )
            return CycleOutcome(CycleStatus.SKIPPED)

        try:
            features = self._extractor.extract(window)
            distribution = self._classifier.classify(features, self._model)

            if distribution.confidence < self._config.confidence_threshold:
                logger.debug(
                    "pipeline.cycle_suppressed",
                    dominant=distribution.dominant,
                    confidence=round(distribution.confidence, 4),
                    threshold=self._config.confidence_threshold,
                )
                return CycleOutcome(CycleStatus.SUPPRESSED, distribution=distribution)

            emotion = EmotionResult.from_distribution(distribution)
            latest = window[-1]
            score = self._score_engine.compute(latest.hr, latest.hrv, distribution)
        except DimensionMismatchError as exc:
            logger.error(
                "pipeline.dimension_mismatch",
                expected=exc.expected,
                actual=exc.actual,
                exc_info=True,
            )
            return CycleOutcome(CycleStatus.FAILED, error=str(exc))
        except Exception as exc:
            logger.exception("pipeline.cycle_failed", error=str(exc))
            return CycleOutcome(CycleStatus.FAILED, error=str(exc))

        self._latest_emotion = emotion
        self._latest_score = score
        self.emotions.publish(emotion)
        self.scores.publish(score)
        logger.debug(
            "pipeline.cycle_emitted",
            emotion=emotion.emotion,
            confidence=round(emotion.confidence, 4),
            score=round(score.score, 2),
        )
        return CycleOutcome(
            CycleStatus.EMITTED, distribution=distribution, emotion=emotion, score=score
        )

    # ── Lifecycle ─────────────────────────────────────────────

    async def run(self) -> None:
        """Tick until :meth:`stop` is called; cancellation is checked between cycles."""
        if self._ticker is None:
            self._ticker = IntervalTicker(self._config.interval_seconds)
        logger.info(
            "pipeline.started",
            interval_seconds=self._config.interval_seconds,
            min_window=self._config.min_window,
            window_size=self._config.window_size,
            classes=list(self._model.classes),
        )
        async for _ in self._ticker:
            await self.tick()
        logger.info("pipeline.stopped", cycles=self._stats["cycles"])

    async def start(self) -> None:
        """Start the processing loop as a background task."""
        if self.is_running:
            return
        self._ticker = IntervalTicker(self._config.interval_seconds)
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop scheduling ticks and wait for an in-flight cycle to finish."""
        if self._ticker is not None:
            self._ticker.stop()
        if self._task is not None:
            await self._task
            self._task = None
        self._ticker = None

    def reset(self) -> None:
        """Drop buffered samples and cached results."""
        self._buffer.clear()
        self._latest_emotion = None
        self._latest_score = None

    # ── Introspection ─────────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def state(self) -> PipelineState:
        if self._processing:
            return PipelineState.PROCESSING
        if self._buffer.size() < self._config.min_window:
            return PipelineState.ACCUMULATING
        return PipelineState.IDLE

    @property
    def buffer(self) -> SampleBuffer:
        return self._buffer

    @property
    def model(self) -> ModelParameters:
        return self._model

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def score_engine(self) -> ScoreEngine:
        return self._score_engine

    @property
    def latest_emotion(self) -> EmotionResult | None:
        return self._latest_emotion

    @property
    def latest_score(self) -> ScoreResult | None:
        return self._latest_score

    @property
    def stats(self) -> dict[str, Any]:
        return dict(self._stats)
