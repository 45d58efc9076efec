"""Result sinks — log and webhook delivery of emitted results.

Architecture
~~~~~~~~~~~~
* **ResultSink** — abstract base for delivery targets.
* **LogSink / WebhookSink** — concrete targets.
* **ResultDispatcher** — fan-out with error isolation.
* **forward()** — consume a channel subscription into a dispatcher.
* **create_dispatcher()** — factory that wires sinks from settings.

Sinks are ordinary channel subscribers: they see only what is emitted
after they subscribe, and a slow sink loses its oldest queued results
rather than stalling the pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Union

import httpx
import structlog

from affect_score.models import EmotionResult, ScoreResult

if TYPE_CHECKING:
    from affect_score.config import Settings
    from affect_score.streaming import Subscription

logger = structlog.get_logger(__name__)

Result = Union[EmotionResult, ScoreResult]


def _kind(result: Result) -> str:
    return "score" if isinstance(result, ScoreResult) else "emotion"


# ── Dispatch result ───────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome summary for a single ``dispatch()`` call."""

    kind: str
    sent: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def all_ok(self) -> bool:
        return len(self.failed) == 0


# ── Abstract sink ─────────────────────────────────────────────


class ResultSink(ABC):
    """Contract for result delivery targets."""

    name: str = "base"

    @abstractmethod
    async def send(self, result: Result) -> bool:
        """Deliver a result.  Return ``True`` on success."""

    def should_handle(self, result: Result) -> bool:  # noqa: ARG002
        return True


# ── Concrete sinks ───────────────────────────────────────────


class LogSink(ResultSink):
    """Write results to the structured log."""

    name = "log"

    async def send(self, result: Result) -> bool:
        if isinstance(result, ScoreResult):
            logger.info(
                "sink.score",
                score=round(result.score, 2),
                score_range=result.score_range.value,
                dominant=result.dominant_emotion,
                confidence=round(result.confidence, 4),
                data_quality=result.data_quality,
            )
        else:
            logger.info(
                "sink.emotion",
                emotion=result.emotion,
                confidence=round(result.confidence, 4),
            )
        return True


class WebhookSink(ResultSink):
    """POST result JSON to an external webhook URL."""

    name = "webhook"

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def send(self, result: Result) -> bool:
        payload = {"type": _kind(result), "data": result.model_dump(mode="json")}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(self._url, json=payload)
                resp.raise_for_status()
            return True
        except httpx.HTTPError as exc:
            logger.error("sink.webhook_failed", url=self._url, error=str(exc))
            return False


# ── Dispatcher ────────────────────────────────────────────────


class ResultDispatcher:
    """Fan-out results to registered sinks; one failing sink never blocks the rest."""

    def __init__(self, *, sinks: list[ResultSink] | None = None) -> None:
        self._sinks: list[ResultSink] = sinks if sinks is not None else [LogSink()]

    def add_sink(self, sink: ResultSink) -> None:
        self._sinks.append(sink)

    def remove_sink(self, name: str) -> bool:
        for i, s in enumerate(self._sinks):
            if s.name == name:
                self._sinks.pop(i)
                return True
        return False

    @property
    def sink_names(self) -> list[str]:
        return [s.name for s in self._sinks]

    async def dispatch(self, result: Result) -> DispatchResult:
        sent: list[str] = []
        failed: list[str] = []

        for sink in self._sinks:
            if not sink.should_handle(result):
                continue
            try:
                ok = await sink.send(result)
                (sent if ok else failed).append(sink.name)
            except Exception:
                logger.exception("sink.error", sink=sink.name, kind=_kind(result))
                failed.append(sink.name)

        outcome = DispatchResult(kind=_kind(result), sent=sent, failed=failed)
        if outcome.failed:
            logger.warning("sink.partial_failure", kind=outcome.kind, failed=outcome.failed)
        return outcome


async def forward(subscription: Subscription, dispatcher: ResultDispatcher) -> int:
    """Dispatch every item from ``subscription`` until it is closed.

    Returns the number of results forwarded.
    """
    count = 0
    async for result in subscription:
        await dispatcher.dispatch(result)
        count += 1
    return count


# ── Factory ───────────────────────────────────────────────────


def create_dispatcher(settings: Settings) -> ResultDispatcher:
    """Build a dispatcher from settings.

    * **LogSink** is always registered.
    * **WebhookSink** is added when ``settings.webhook_url`` is non-empty.
    """
    dispatcher = ResultDispatcher()
    if settings.webhook_url:
        dispatcher.add_sink(WebhookSink(settings.webhook_url, timeout=settings.webhook_timeout))
    return dispatcher
