"""Thicket data models."""

from thicket.models.config import (
    DEFAULT_FALLBACK_MESSAGE,
    DEFAULT_SYSTEM_PROMPT,
    ProviderConfig,
    ServerConfig,
    ThicketConfig,
)
from thicket.models.node import (
    CompletionError,
    ExchangeResult,
    ForestSnapshot,
    Node,
    PruneResult,
    Role,
)

__all__ = [
    # Config
    "DEFAULT_FALLBACK_MESSAGE",
    "DEFAULT_SYSTEM_PROMPT",
    "ProviderConfig",
    "ServerConfig",
    "ThicketConfig",
    # Nodes
    "Role",
    "Node",
    "CompletionError",
    # Snapshot and results
    "ForestSnapshot",
    "PruneResult",
    "ExchangeResult",
]
