"""
Thicket — branch-isolated threaded conversations for chat-completion models.

Primary entry point::

    from thicket import Conversation, ForestStore

    conversation = Conversation(ForestStore())
    result = await conversation.post_message("Hello!")
    print(result.assistant.content)
"""

from thicket.context.builder import BuiltContext, ContextBuilder, LLMMessage
from thicket.conversation import Conversation
from thicket.events.bus import EventBus, ThicketEvent
from thicket.models import (
    CompletionError,
    ExchangeResult,
    ForestSnapshot,
    Node,
    ProviderConfig,
    PruneResult,
    ServerConfig,
    ThicketConfig,
)
from thicket.provider import CompletionFn, LiteLLMCompletion, ProviderError
from thicket.store.forest import (
    ConstraintViolationError,
    ForestStore,
    InvalidMessageError,
    InvalidParentError,
    NodeNotFoundError,
    RootDeletionError,
    ThicketError,
    make_id,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "ForestStore",
    "Conversation",
    "make_id",
    # Config
    "ThicketConfig",
    "ProviderConfig",
    "ServerConfig",
    # Models
    "Node",
    "CompletionError",
    "ForestSnapshot",
    "PruneResult",
    "ExchangeResult",
    # Context
    "ContextBuilder",
    "BuiltContext",
    "LLMMessage",
    # Provider
    "CompletionFn",
    "LiteLLMCompletion",
    # Events
    "EventBus",
    "ThicketEvent",
    # Errors
    "ThicketError",
    "NodeNotFoundError",
    "ConstraintViolationError",
    "RootDeletionError",
    "InvalidParentError",
    "InvalidMessageError",
    "ProviderError",
]
