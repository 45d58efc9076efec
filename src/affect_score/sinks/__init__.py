"""Result sinks — deliver emitted results to logs or external endpoints."""

from affect_score.sinks.handlers import (
    ResultDispatcher,
    ResultSink,
    create_dispatcher,
    forward,
)

__all__ = ["ResultDispatcher", "ResultSink", "create_dispatcher", "forward"]
