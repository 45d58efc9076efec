"""FastAPI application — sample ingestion, result queries, sessions, WebSocket.

This module wires together:
- The pipeline coordinator and its processing loop
- Result sinks (log / webhook) subscribed to both channels
- WebSocket relays for live emotion and score streams
- Session recording
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect

from affect_score import __version__
from affect_score.api.middleware import setup_middleware
from affect_score.api.schemas import ModelInfo, SampleRequest, SessionStartRequest
from affect_score.api.websocket import CHANNELS, ws_manager
from affect_score.config import get_settings
from affect_score.errors import SessionError
from affect_score.pipeline import PipelineCoordinator
from affect_score.session import SessionRecorder
from affect_score.sinks import create_dispatcher, forward

logger = structlog.get_logger(__name__)

# ── Shared state (initialised in lifespan) ────────────────────

_coordinator: PipelineCoordinator | None = None
_recorder: SessionRecorder | None = None
_background: list[asyncio.Task] = []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hooks."""
    global _coordinator, _recorder, _background

    settings = get_settings()

    # 1. Pipeline (model load failures abort startup)
    _coordinator = PipelineCoordinator.from_settings(settings)
    _recorder = SessionRecorder(_coordinator)

    # 2. Sinks and WebSocket relays
    dispatcher = create_dispatcher(settings)
    _background = [
        asyncio.create_task(forward(_coordinator.emotions.subscribe(), dispatcher)),
        asyncio.create_task(forward(_coordinator.scores.subscribe(), dispatcher)),
        asyncio.create_task(ws_manager.relay(_coordinator.emotions.subscribe(), "emotions")),
        asyncio.create_task(ws_manager.relay(_coordinator.scores.subscribe(), "scores")),
    ]

    # 3. Processing loop
    await _coordinator.start()
    logger.info("server.started", port=settings.api_port, sinks=dispatcher.sink_names)

    yield  # ← application runs

    # Shutdown
    if _recorder.is_active:
        await _recorder.stop()
    await _coordinator.stop()
    _coordinator.emotions.close()
    _coordinator.scores.close()
    await asyncio.gather(*_background, return_exceptions=True)
    _background = []
    logger.info("server.stopped")


app = FastAPI(
    title="Affect Score API",
    description="HR/HRV emotion inference and wellness-impact scoring.",
    version=__version__,
    lifespan=lifespan,
)

setup_middleware(app)


def _require_coordinator() -> PipelineCoordinator:
    if _coordinator is None:
        raise HTTPException(503, "Pipeline not ready.")
    return _coordinator


def _require_recorder() -> SessionRecorder:
    if _recorder is None:
        raise HTTPException(503, "Pipeline not ready.")
    return _recorder


# ── Health ────────────────────────────────────────────────────


@app.get("/health", tags=["system"])
async def health():
    return {
        "status": "ok",
        "pipeline_state": _coordinator.state.value if _coordinator else None,
    }


@app.get("/system/info", tags=["system"])
async def system_info():
    """Detailed pipeline status for operational monitoring."""
    coordinator = _require_coordinator()
    return {
        "version": __version__,
        "pipeline": {
            "running": coordinator.is_running,
            "state": coordinator.state.value,
            "buffered": coordinator.buffer.size(),
            "config": coordinator.config.model_dump(),
            "stats": coordinator.stats,
        },
        "channels": {
            "emotions": coordinator.emotions.stats(),
            "scores": coordinator.scores.stats(),
        },
        "session": {"active": _recorder.active_session_id if _recorder else None},
        "websocket": ws_manager.channel_breakdown(),
    }


# ── Model ─────────────────────────────────────────────────────


@app.get("/model", response_model=ModelInfo, tags=["model"])
async def model_info():
    model = _require_coordinator().model
    return ModelInfo(
        classes=list(model.classes),
        n_features=model.n_features,
        feature_order=list(model.feature_order),
        provenance=model.provenance(),
    )


# ── Ingestion ─────────────────────────────────────────────────


@app.post("/samples", status_code=201, tags=["data"])
async def push_sample(req: SampleRequest):
    """Buffer one HR/HRV sample; processing happens on the next tick."""
    coordinator = _require_coordinator()
    coordinator.push(req.hr, req.hrv, req.motion, req.timestamp)
    return {"queued": True, "buffered": coordinator.buffer.size()}


@app.post("/samples/batch", status_code=201, tags=["data"])
async def push_samples(samples: list[SampleRequest]):
    coordinator = _require_coordinator()
    for s in samples:
        coordinator.push(s.hr, s.hrv, s.motion, s.timestamp)
    return {"count": len(samples), "queued": True, "buffered": coordinator.buffer.size()}


# ── Results ───────────────────────────────────────────────────


@app.get("/results/latest", tags=["results"])
async def latest_results():
    coordinator = _require_coordinator()
    emotion = coordinator.latest_emotion
    score = coordinator.latest_score
    return {
        "emotion": emotion.model_dump(mode="json") if emotion else None,
        "score": score.model_dump(mode="json") if score else None,
    }


@app.post("/pipeline/tick", tags=["results"])
async def trigger_tick():
    """Run one processing cycle immediately."""
    outcome = await _require_coordinator().tick()
    return {
        "status": outcome.status.value,
        "emotion": outcome.emotion.model_dump(mode="json") if outcome.emotion else None,
        "score": outcome.score.model_dump(mode="json") if outcome.score else None,
        "error": outcome.error,
    }


# ── Sessions ──────────────────────────────────────────────────


@app.post("/session/start", status_code=201, tags=["session"])
async def start_session(req: SessionStartRequest):
    try:
        session_id = await _require_recorder().start(req.app_id, req.metadata)
    except SessionError as exc:
        raise HTTPException(409, exc.message) from exc
    return {"session_id": session_id}


@app.post("/session/stop", tags=["session"])
async def stop_session():
    try:
        results = await _require_recorder().stop()
    except SessionError as exc:
        raise HTTPException(409, exc.message) from exc
    return {
        "summary": results.summary(),
        "results": results.model_dump(mode="json"),
    }


# ── WebSocket ─────────────────────────────────────────────────


@app.websocket("/ws/{channel}")
async def ws_stream(ws: WebSocket, channel: str):
    """Live stream of ``emotions``, ``scores`` or ``all`` results (no replay)."""
    if channel not in CHANNELS:
        await ws.close(code=1008)
        return
    await ws_manager.connect(ws, channel)
    try:
        while True:
            await ws.receive_text()  # client messages are ignored
    except WebSocketDisconnect:
        await ws_manager.disconnect(ws)
