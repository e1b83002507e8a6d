"""In-process pub/sub event bus for Thicket forest lifecycle events."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Any

import structlog

Handler = Callable[["ThicketEvent", dict[str, Any]], None | Awaitable[None]]


class ThicketEvent(StrEnum):
    """All event types published by Thicket components.

    Typed payload definitions for each event live in
    :mod:`thicket.events.payloads`.

    **Payload schemas by event:**

    ``NODE_CREATED``
        :class:`~thicket.events.payloads.NodeCreatedPayload` —
        ``node_id``, ``role``, ``parent_id``, ``root_id``

    ``SUBTREE_DELETED``
        :class:`~thicket.events.payloads.SubtreeDeletedPayload` —
        ``node_id``, ``removed_count``

    ``FOREST_PRUNED``
        :class:`~thicket.events.payloads.ForestPrunedPayload` —
        ``root_id``, ``retained_count``, ``removed_count``

    ``EXCHANGE_COMPLETED``
        :class:`~thicket.events.payloads.ExchangeCompletedPayload` —
        ``user_node_id``, ``assistant_node_id``, ``completion_failed``

    ``COMPLETION_FAILED``
        :class:`~thicket.events.payloads.CompletionFailedPayload` —
        ``user_node_id``, ``error``
    """

    # Store mutations
    NODE_CREATED = "node.created"
    SUBTREE_DELETED = "subtree.deleted"
    FOREST_PRUNED = "forest.pruned"

    # Conversation exchanges
    EXCHANGE_COMPLETED = "exchange.completed"
    COMPLETION_FAILED = "completion.failed"


class EventBus:
    """
    Simple in-process pub/sub event bus.

    - Sync handlers are called inline within ``publish()``.
    - Async handlers are scheduled on the running loop and tracked until done;
      ``drain()`` awaits whatever is still pending.
    - Handler exceptions are logged but never propagate to the publisher.

    Example::

        bus = EventBus()

        def on_prune(event, payload):
            print(f"Dropped {payload['removed_count']} nodes")

        bus.subscribe(ThicketEvent.FOREST_PRUNED, on_prune)
    """

    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self._handlers: dict[ThicketEvent, list[Handler]] = {}
        self._global_handlers: list[Handler] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._logger = logger or structlog.get_logger("thicket.events")

    def subscribe(self, event: ThicketEvent, handler: Handler) -> None:
        """
        Register a handler for a specific event type.

        Args:
            event: The event type to listen for.
            handler: Callable accepting ``(event, payload)``. May be sync or async.
        """
        self._handlers.setdefault(event, []).append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        """Register a handler for ALL event types."""
        self._global_handlers.append(handler)

    def unsubscribe(self, event: ThicketEvent, handler: Handler) -> None:
        """Remove a previously registered handler. No-op if not found."""
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    @property
    def pending_count(self) -> int:
        """Number of async handler tasks that have not finished yet."""
        return len(self._pending)

    def publish(self, event: ThicketEvent, payload: dict[str, Any]) -> None:
        """
        Publish an event to all registered handlers.

        Specific handlers run first, then global ones, each in registration order.
        A failing handler is logged and skipped; the publisher never sees the error.
        """
        for handler in [*self._handlers.get(event, []), *self._global_handlers]:
            try:
                result = handler(event, payload)
            except Exception as exc:
                self._log_failure(event, handler, exc)
                continue
            if asyncio.iscoroutine(result):
                self._schedule(event, handler, result)

    async def drain(self) -> None:
        """Wait for every scheduled async handler to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule(self, event: ThicketEvent, handler: Handler, coro: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop: the coroutine can never run
            coro.close()
            return

        task = loop.create_task(coro)
        self._pending.add(task)

        def _done(finished: asyncio.Task[None]) -> None:
            self._pending.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                self._log_failure(event, handler, finished.exception())

        task.add_done_callback(_done)

    def _log_failure(
        self, event: ThicketEvent, handler: Handler, exc: BaseException | None
    ) -> None:
        self._logger.error(
            "event_handler_error",
            event_type=str(event),
            handler=getattr(handler, "__qualname__", repr(handler)),
            error=str(exc),
        )
