"""Result broadcasting — bounded, no-replay fan-out channels."""

from affect_score.streaming.channels import BroadcastChannel, Subscription

__all__ = ["BroadcastChannel", "Subscription"]
