"""Thicket event system."""

from thicket.events.bus import EventBus, Handler, ThicketEvent
from thicket.events.payloads import (
    CompletionFailedPayload,
    ExchangeCompletedPayload,
    ForestPrunedPayload,
    NodeCreatedPayload,
    SubtreeDeletedPayload,
)

__all__ = [
    "EventBus",
    "Handler",
    "ThicketEvent",
    "NodeCreatedPayload",
    "SubtreeDeletedPayload",
    "ForestPrunedPayload",
    "ExchangeCompletedPayload",
    "CompletionFailedPayload",
]
