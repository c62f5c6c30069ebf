"""Cross-context change channels."""

from .in_process_channel import InProcessChangeChannel, QueueSubscription

__all__ = [
    "InProcessChangeChannel",
    "QueueSubscription",
]
