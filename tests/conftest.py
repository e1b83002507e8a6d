"""Shared fixtures for Thicket tests."""

from __future__ import annotations

from typing import Any

import pytest

from thicket.conversation import Conversation
from thicket.events.bus import EventBus, ThicketEvent
from thicket.models.config import ProviderConfig, ThicketConfig
from thicket.store.forest import ForestStore


class FakeCompletion:
    """Records every call and answers from a queue of scripted replies."""

    def __init__(self, replies: list[Any] | None = None) -> None:
        self.replies = list(replies or [])
        self.calls: list[list[dict[str, str]]] = []

    async def __call__(self, messages: list[dict[str, str]]) -> str | None:
        self.calls.append(messages)
        if not self.replies:
            return f"reply {len(self.calls)}"
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def event_bus():
    """EventBus with a .collected list for asserting events."""
    bus = EventBus()
    collected: list[tuple[ThicketEvent, dict[str, Any]]] = []

    def _collect(event: ThicketEvent, payload: dict[str, Any]) -> None:
        collected.append((event, payload))

    bus.subscribe_all(_collect)
    bus.collected = collected  # type: ignore[attr-defined]
    return bus


@pytest.fixture
def store(event_bus):
    """Empty ForestStore wired to the collecting event bus."""
    return ForestStore(event_bus=event_bus)


@pytest.fixture
def config():
    """ThicketConfig with a short provider timeout."""
    return ThicketConfig(provider=ProviderConfig(model="test-model", timeout=1.0))


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def conversation(store, config, completion):
    """Conversation over the test store with a scripted provider."""
    return Conversation(store, config=config, completion=completion)
