"""Reactive layer — change propagation from disk to viewers.

Connects raw filesystem events to store updates and reload broadcasts.
"""

from livemark.reactive.broadcaster import (
    PONG,
    RELOAD,
    Broadcaster,
    MessageKind,
    ServerMessage,
    Subscription,
)
from livemark.reactive.pump import WatchPump

__all__ = [
    "PONG",
    "RELOAD",
    "Broadcaster",
    "MessageKind",
    "ServerMessage",
    "Subscription",
    "WatchPump",
]
