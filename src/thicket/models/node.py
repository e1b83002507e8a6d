"""Core node and snapshot data models for Thicket."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Role = Literal["user", "assistant"]

# Wire payloads use camelCase keys (``parentId``, ``rootIds``); Python attributes stay snake_case.
_WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Error Types ────────────────────────────────────────────────────────────────


class CompletionError(BaseModel):
    """Structured error attached to an assistant node whose reply is the fallback text."""

    model_config = _WIRE_CONFIG

    code: Literal["api_error", "empty_response", "timeout", "unknown"]
    message: str


# ── Node ───────────────────────────────────────────────────────────────────────


class Node(BaseModel):
    """
    A single conversation message held in the ForestStore.

    Nodes are append-only. The only field that changes after creation is
    ``children``, which grows when a reply is attached and is filtered when
    the forest is pruned.
    """

    model_config = _WIRE_CONFIG

    id: str
    """ULID-based sortable ID, e.g. ``node_01JXYZ6K3MNPQR4STUVWXYZ01``."""
    role: Role
    content: str
    parent_id: str | None = None
    """``None`` marks a root."""
    children: list[str] = Field(default_factory=list)
    """Child ids in reply order."""
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    root_id: str
    """Id of the root ancestor, cached at creation."""
    error: CompletionError | None = None
    """Set on assistant nodes carrying the fallback reply after a provider failure."""

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


# ── Snapshot ───────────────────────────────────────────────────────────────────


class ForestSnapshot(BaseModel):
    """Read-only copy of the forest state, suitable for a display layer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    root_ids: list[str] = Field(default_factory=list)
    nodes: dict[str, Node] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase, JSON-ready representation."""
        return self.model_dump(mode="json", by_alias=True)


# ── Result Types ───────────────────────────────────────────────────────────────


class PruneResult(BaseModel):
    """The result of a ``ForestStore.prune_to_root()`` call."""

    pruned: bool
    """False when the requested root did not resolve and the forest was left untouched."""
    retained_count: int = 0
    removed_count: int = 0


class ExchangeResult(BaseModel):
    """
    The result of a single ``Conversation.post_message()`` call.

    Holds the persisted user node, the assistant reply (possibly the fallback
    reply, see ``assistant.error``) and the forest state after pruning.
    """

    model_config = _WIRE_CONFIG

    user: Node
    assistant: Node
    state: ForestSnapshot

    @property
    def completion_failed(self) -> bool:
        return self.assistant.error is not None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
