"""Context window assembly from a node's ancestor path."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from thicket.models.node import Node
from thicket.store.forest import ForestStore


@dataclass
class LLMMessage:
    """A single message formatted for the chat-completion provider."""

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class BuiltContext:
    """The assembled context window ready for a provider call."""

    messages: list[LLMMessage]
    """System instruction first, then the path from root to the target node."""
    system_prompt: str
    path_node_ids: list[str]

    def to_provider_messages(self) -> list[dict[str, str]]:
        return [m.to_dict() for m in self.messages]


class ContextBuilder:
    """
    Assembles the exact message list sent to the provider for one reply.

    Invariants:
    1. The first message is always the system instruction.
    2. Only the target node's ancestors (and the node itself) follow, root first.
    3. Sibling branches never contribute messages.
    """

    def __init__(self, store: ForestStore) -> None:
        self._store = store
        self._logger = structlog.get_logger("thicket.context_builder")

    def build(self, node_id: str, system_prompt: str) -> BuiltContext:
        """
        Build the context for a reply to ``node_id``.

        Args:
            node_id: The node the provider should respond to (usually the new user node).
            system_prompt: Fixed instruction placed before the path.

        Returns:
            BuiltContext with the provider messages and the ids of the path nodes.
        """
        path = self._store.get_context_path(node_id)
        messages = [LLMMessage(role="system", content=system_prompt)]
        messages.extend(self._convert_node(node) for node in path)
        self._logger.debug("context_built", node_id=node_id, path_length=len(path))
        return BuiltContext(
            messages=messages,
            system_prompt=system_prompt,
            path_node_ids=[node.id for node in path],
        )

    @staticmethod
    def _convert_node(node: Node) -> LLMMessage:
        return LLMMessage(role=node.role, content=node.content)
