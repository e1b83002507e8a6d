"""Typed payload definitions for each ThicketEvent.

Usage example::

    from thicket.events.bus import EventBus, ThicketEvent
    from thicket.events.payloads import ForestPrunedPayload

    def on_prune(event: ThicketEvent, payload: ForestPrunedPayload) -> None:
        print(f"Kept {payload['retained_count']} nodes under {payload['root_id']}")

    bus.subscribe(ThicketEvent.FOREST_PRUNED, on_prune)  # type: ignore[arg-type]
"""

from __future__ import annotations

from typing import TypedDict

# ── Store mutations ───────────────────────────────────────────────────────────


class NodeCreatedPayload(TypedDict):
    """Payload for :attr:`ThicketEvent.NODE_CREATED`."""

    node_id: str
    role: str
    """``"user"`` or ``"assistant"``."""
    parent_id: str | None
    root_id: str


class SubtreeDeletedPayload(TypedDict):
    """Payload for :attr:`ThicketEvent.SUBTREE_DELETED`."""

    node_id: str
    """Top of the removed subtree."""
    removed_count: int


class ForestPrunedPayload(TypedDict):
    """Payload for :attr:`ThicketEvent.FOREST_PRUNED`."""

    root_id: str
    """The sole surviving root."""
    retained_count: int
    removed_count: int


# ── Conversation exchanges ────────────────────────────────────────────────────


class ExchangeCompletedPayload(TypedDict):
    """Payload for :attr:`ThicketEvent.EXCHANGE_COMPLETED`."""

    user_node_id: str
    assistant_node_id: str
    completion_failed: bool


class CompletionFailedPayload(TypedDict):
    """Payload for :attr:`ThicketEvent.COMPLETION_FAILED`."""

    user_node_id: str
    error: str
