"""Thicket Conversation — the request-handling layer around the forest store."""

from __future__ import annotations

import asyncio

import structlog

from thicket.context.builder import ContextBuilder
from thicket.events.bus import EventBus, ThicketEvent
from thicket.models.config import ThicketConfig
from thicket.models.node import CompletionError, ExchangeResult, ForestSnapshot, Node
from thicket.provider import CompletionFn, LiteLLMCompletion, ProviderError
from thicket.store.forest import (
    ForestStore,
    InvalidMessageError,
    InvalidParentError,
    NodeNotFoundError,
    RootDeletionError,
)


class Conversation:
    """
    A threaded conversation in which every reply sees only its own lineage.

    Each successful exchange or deletion narrows the forest to the active
    root's subtree, so no other branch can leak into later context.

    Usage::

        store = ForestStore()
        conversation = Conversation(store)

        first = await conversation.post_message("Explain recursion.")
        # Branch off the first answer
        await conversation.post_message("Give an example.", parent_id=first.assistant.id)
        await conversation.post_message("Any pitfalls?", parent_id=first.assistant.id)

        state = conversation.threads()

    **Bring your own provider**

    ``completion`` is any async callable mapping ``[{"role", "content"}, ...]``
    to reply text. It defaults to :class:`~thicket.provider.LiteLLMCompletion`::

        async def complete(messages):
            response = await client.chat.completions.create(model="gpt-4o", messages=messages)
            return response.choices[0].message.content

        conversation = Conversation(store, completion=complete)

    **Provider failures**

    When the provider raises, times out or returns no text, the exchange is
    not aborted: the assistant node is created with the configured fallback
    text and ``node.error`` describes what went wrong. The user node is never
    rolled back.
    """

    def __init__(
        self,
        store: ForestStore,
        *,
        config: ThicketConfig | None = None,
        completion: CompletionFn | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._store = store
        self._config = config or ThicketConfig()
        self._completion = completion or LiteLLMCompletion(self._config.provider)
        self._event_bus = event_bus or store.event_bus
        self._context_builder = ContextBuilder(store)
        self._logger = structlog.get_logger("thicket.conversation")

    @property
    def store(self) -> ForestStore:
        return self._store

    @property
    def config(self) -> ThicketConfig:
        return self._config

    async def post_message(self, content: object, parent_id: str | None = None) -> ExchangeResult:
        """
        Post a user message, obtain the assistant reply and prune to the active root.

        Args:
            content: The user's message text.
            parent_id: The assistant node being replied to, or ``None`` to start a new root.

        Returns:
            ExchangeResult with the user node, the assistant node and the pruned forest.

        Raises:
            InvalidMessageError: If ``content`` is missing, empty or not a string.
            NodeNotFoundError: If ``parent_id`` does not exist.
            InvalidParentError: If ``parent_id`` is not an assistant node.
        """
        if not isinstance(content, str) or not content:
            raise InvalidMessageError("Message content is required and must be a string.")
        if parent_id:
            parent = self._store.find(parent_id)
            if parent is None:
                raise NodeNotFoundError(parent_id)
            if parent.role != "assistant":
                raise InvalidParentError(parent_id, parent.role)
        else:
            parent_id = None

        user_node = self._store.create_node("user", content, parent_id)
        context = self._context_builder.build(user_node.id, self._config.provider.system_prompt)

        reply, error = await self._complete(context.to_provider_messages())
        if error is not None:
            self._logger.warning(
                "completion_failed", user_node_id=user_node.id, code=error.code, error=error.message
            )
            self._event_bus.publish(
                ThicketEvent.COMPLETION_FAILED,
                {"user_node_id": user_node.id, "error": error.message},
            )

        assistant_node = self._store.create_node(
            "assistant",
            reply or self._config.provider.fallback_message,
            user_node.id,
            error=error,
        )

        self._store.prune_to_root(self._store.get_root_id(user_node.id))

        self._logger.info(
            "message_posted",
            user_node_id=user_node.id,
            assistant_node_id=assistant_node.id,
            path_length=len(context.path_node_ids),
        )
        self._event_bus.publish(
            ThicketEvent.EXCHANGE_COMPLETED,
            {
                "user_node_id": user_node.id,
                "assistant_node_id": assistant_node.id,
                "completion_failed": error is not None,
            },
        )
        return ExchangeResult(
            user=user_node.model_copy(deep=True),
            assistant=assistant_node.model_copy(deep=True),
            state=self._store.serialize(),
        )

    async def _complete(
        self, messages: list[dict[str, str]]
    ) -> tuple[str | None, CompletionError | None]:
        """
        Call the provider once. Failures are returned as a CompletionError, never raised.

        A call still running after ``provider.timeout`` seconds is cancelled.
        """
        timeout = self._config.provider.timeout
        try:
            text = await asyncio.wait_for(self._completion(messages), timeout=timeout)
        except TimeoutError:
            return None, CompletionError(
                code="timeout", message=f"No completion within {timeout:g}s"
            )
        except ProviderError as exc:
            return None, CompletionError(code="api_error", message=str(exc))
        except Exception as exc:
            return None, CompletionError(code="unknown", message=str(exc))

        if not text:
            return None, CompletionError(
                code="empty_response", message="Provider returned no content"
            )
        return text, None

    def delete_message(self, node_id: str) -> ForestSnapshot:
        """
        Delete a non-root message and all its replies, then prune to its root.

        Returns:
            The forest state after deletion.

        Raises:
            NodeNotFoundError: If the node does not exist.
            RootDeletionError: If the node is a root. The forest is left unchanged.
        """
        target = self._store.get(node_id)
        if target.is_root:
            raise RootDeletionError(node_id)

        root_id = target.root_id or self._store.get_root_id(target.parent_id)
        removed = self._store.remove_subtree_and_detach(node_id)
        self._store.prune_to_root(root_id)

        self._logger.info("message_deleted", node_id=node_id, removed_count=removed)
        return self._store.serialize()

    def threads(self) -> ForestSnapshot:
        """Return the raw forest state. Never prunes."""
        return self._store.serialize()

    def context_for(self, node_id: str) -> list[Node]:
        """
        Return the lineage a reply to ``node_id`` would see, root first.

        Raises:
            NodeNotFoundError: If the node does not exist.
        """
        self._store.get(node_id)
        return self._store.get_context_path(node_id)
